import logging
import pytest


@pytest.fixture(autouse=True)
def silence_django_request_logger():
    """Reduce noise from expected 4xx in passing tests.

    Many tests intentionally exercise 400/404/409 paths to validate the
    integrity rules. Django logs these at WARNING via 'django.request'.
    Lower that logger to ERROR during tests to avoid clutter.
    """
    logger = logging.getLogger("django.request")
    old = logger.level
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(old)


@pytest.fixture
def service():
    from registry.services import RegistryService

    return RegistryService()


@pytest.fixture
def seeded(service):
    """Two courses, two students and one enrolment created through the service."""
    cs = service.create_course({"code": "CS101", "title": "Intro to CS", "credits": 3})
    ma = service.create_course({"code": "MA201", "title": "Linear Algebra", "credits": 4})
    ann = service.create_student({"email": "ann@example.com", "name": "Ann Lee", "course": "CS101"})
    bob = service.create_student({"email": "bob@example.com", "name": "Bob Ray"})
    enrolment = service.enrol("ann@example.com", "CS101")
    return {"cs": cs, "ma": ma, "ann": ann, "bob": bob, "enrolment": enrolment}
