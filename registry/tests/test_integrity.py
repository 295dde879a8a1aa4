from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

from registry.integrity import (
    COURSE_DEACTIVATION_WARNING,
    STUDENT_DEACTIVATION_WARNING,
    Action,
    Allowed,
    Entity,
    NeedsConfirmation,
    Reason,
    Rejected,
    propose_create_course,
    propose_create_enrolment,
    propose_create_student,
    propose_delete_course,
    propose_delete_student,
    propose_update_course,
    propose_update_enrolment,
    propose_update_student,
    same_key,
)
from registry.models import Status


def student(email, status=Status.ACTIVE, name="Ann", course=None):
    return {"email": email, "name": name, "status": status, "course": course}


def course(code, status=Status.ACTIVE, title="Title"):
    return {"code": code, "title": title, "credits": 3, "status": status}


def enrolment(id, email, code):
    return {"id": id, "student_email": email, "course_code": code}


def test_same_key_is_case_insensitive_and_none_never_matches():
    assert same_key("Ann@X.com", "ann@x.com")
    assert not same_key(None, None)
    assert not same_key("a", None)


def test_create_student_rejects_duplicate_email_ignoring_case():
    outcome = propose_create_student({"email": "ANN@x.com", "name": "A"}, [student("ann@x.com")])
    assert outcome == Rejected(Reason.DUPLICATE_EMAIL)
    assert outcome.message == "A student with this e-mail already exists."


def test_create_student_canonicalises_course_pointer():
    outcome = propose_create_student(
        {"email": "ann@x.com", "name": "A", "course": "cs101"}, [], [course("CS101")]
    )
    assert isinstance(outcome, Allowed)
    assert outcome.plan.primary.values["course"] == "CS101"
    assert outcome.plan.cascade == ()


def test_create_student_with_unknown_course_pointer_is_rejected():
    outcome = propose_create_student({"email": "ann@x.com", "name": "A", "course": "NOPE"}, [], [course("CS101")])
    assert outcome == Rejected(Reason.COURSE_NOT_FOUND)


def test_create_course_rejects_duplicate_code_ignoring_case():
    assert propose_create_course({"code": "cs101", "title": "x"}, [course("CS101")]) == Rejected(Reason.DUPLICATE_CODE)
    assert isinstance(propose_create_course({"code": "CS102", "title": "x"}, [course("CS101")]), Allowed)


def test_update_student_email_rewrites_every_referencing_enrolment():
    students = [student("ann@x.com"), student("bob@x.com")]
    enrolments = [enrolment(1, "ann@x.com", "CS101"), enrolment(2, "ANN@x.com", "MA201"), enrolment(3, "bob@x.com", "CS101")]
    outcome = propose_update_student("ann@x.com", {"email": "ann@y.com"}, students, enrolments)
    assert isinstance(outcome, Allowed)
    plan = outcome.plan
    assert plan.primary.action == Action.UPDATE and plan.primary.key == "ann@x.com"
    assert [s.key for s in plan.cascade] == [1, 2]
    assert all(s.entity == Entity.ENROLMENT and s.values == {"student_email": "ann@y.com"} for s in plan.cascade)
    # Primary first for updates
    assert plan.ordered()[0] is plan.primary


def test_update_student_case_only_change_is_not_a_duplicate():
    students = [student("ann@x.com")]
    enrolments = [enrolment(1, "ann@x.com", "CS101")]
    outcome = propose_update_student("ann@x.com", {"email": "Ann@x.com"}, students, enrolments)
    assert isinstance(outcome, Allowed)
    assert len(outcome.plan.cascade) == 1


def test_update_student_to_another_students_email_is_rejected():
    students = [student("ann@x.com"), student("bob@x.com")]
    outcome = propose_update_student("ann@x.com", {"email": "BOB@x.com"}, students, [])
    assert outcome == Rejected(Reason.DUPLICATE_EMAIL)


def test_update_missing_student_is_rejected():
    assert propose_update_student("nobody@x.com", {"name": "N"}, [], []) == Rejected(Reason.STUDENT_NOT_FOUND)


def test_deactivating_student_with_enrolments_needs_confirmation():
    students = [student("ann@x.com")]
    enrolments = [enrolment(1, "ann@x.com", "CS101")]
    outcome = propose_update_student("ann@x.com", {"status": Status.INACTIVE}, students, enrolments)
    assert isinstance(outcome, NeedsConfirmation)
    assert outcome.warning == STUDENT_DEACTIVATION_WARNING
    # Enrolments are kept, only the status changes
    assert outcome.plan.cascade == ()
    assert outcome.confirm() == Allowed(outcome.plan)

    acknowledged = propose_update_student(
        "ann@x.com", {"status": Status.INACTIVE}, students, enrolments, acknowledged=True
    )
    assert acknowledged == Allowed(outcome.plan)


def test_deactivating_student_without_enrolments_needs_no_confirmation():
    outcome = propose_update_student("ann@x.com", {"status": Status.INACTIVE}, [student("ann@x.com")], [])
    assert isinstance(outcome, Allowed)


def test_update_course_code_rewrites_enrolments_and_student_pointers():
    courses = [course("CS101"), course("MA201")]
    students = [student("ann@x.com", course="cs101"), student("bob@x.com", course="MA201")]
    enrolments = [enrolment(1, "ann@x.com", "CS101"), enrolment(2, "bob@x.com", "MA201")]
    outcome = propose_update_course("CS101", {"code": "CS110"}, courses, enrolments, students)
    assert isinstance(outcome, Allowed)
    cascade = outcome.plan.cascade
    assert [(s.entity, s.key, dict(s.values)) for s in cascade] == [
        (Entity.ENROLMENT, 1, {"course_code": "CS110"}),
        (Entity.STUDENT, "ann@x.com", {"course": "CS110"}),
    ]


def test_deactivating_course_with_enrolments_needs_confirmation():
    outcome = propose_update_course(
        "CS101", {"status": Status.INACTIVE}, [course("CS101")], [enrolment(1, "ann@x.com", "CS101")], []
    )
    assert isinstance(outcome, NeedsConfirmation)
    assert outcome.warning == COURSE_DEACTIVATION_WARNING


def test_update_course_to_existing_code_is_rejected():
    outcome = propose_update_course("CS101", {"code": "ma201"}, [course("CS101"), course("MA201")], [], [])
    assert outcome == Rejected(Reason.DUPLICATE_CODE)


def test_delete_student_deletes_enrolments_before_the_student():
    enrolments = [enrolment(1, "ann@x.com", "CS101"), enrolment(2, "bob@x.com", "CS101")]
    outcome = propose_delete_student("ANN@x.com", enrolments, [student("ann@x.com")])
    assert isinstance(outcome, Allowed)
    ordered = outcome.plan.ordered()
    assert [(s.action, s.entity, s.key) for s in ordered] == [
        (Action.DELETE, Entity.ENROLMENT, 1),
        (Action.DELETE, Entity.STUDENT, "ann@x.com"),
    ]


def test_delete_course_deletes_enrolments_and_clears_pointers():
    students = [student("ann@x.com", course="CS101"), student("bob@x.com")]
    enrolments = [enrolment(1, "ann@x.com", "cs101")]
    outcome = propose_delete_course("CS101", enrolments, students, [course("CS101")])
    cascade = outcome.plan.cascade
    assert [(s.action, s.entity, s.key) for s in cascade] == [
        (Action.DELETE, Entity.ENROLMENT, 1),
        (Action.UPDATE, Entity.STUDENT, "ann@x.com"),
    ]
    assert cascade[1].values == {"course": None}


def test_delete_missing_course_is_rejected():
    assert propose_delete_course("NOPE", [], [], [course("CS101")]) == Rejected(Reason.COURSE_NOT_FOUND)


def test_enrolment_checks_run_in_order():
    active, inactive = student("ann@x.com"), student("ann@x.com", status=Status.INACTIVE)
    open_, closed = course("CS101"), course("CS101", status=Status.INACTIVE)

    def check(students, courses, enrolments=()):
        return propose_create_enrolment("ann@x.com", "CS101", students, courses, list(enrolments))

    assert check([], []) == Rejected(Reason.STUDENT_NOT_FOUND)
    assert check([active], []) == Rejected(Reason.COURSE_NOT_FOUND)
    assert check([inactive], [closed]) == Rejected(Reason.STUDENT_INACTIVE)
    assert check([active], [closed]) == Rejected(Reason.COURSE_INACTIVE)
    assert check([active], [open_], [enrolment(1, "ANN@x.com", "cs101")]) == Rejected(Reason.DUPLICATE_ENROLMENT)
    assert Rejected(Reason.DUPLICATE_ENROLMENT).message == "Already enrolled in this course."


def test_create_enrolment_stores_canonical_keys():
    now = datetime(2026, 10, 19, 8, 30, tzinfo=dt_timezone.utc)
    outcome = propose_create_enrolment(
        "ANN@X.COM", "cs101", [student("ann@x.com")], [course("CS101")], [], now=now
    )
    assert isinstance(outcome, Allowed)
    assert outcome.plan.primary.values == {"student_email": "ann@x.com", "course_code": "CS101", "created_at": now}


def test_update_enrolment_to_its_own_pair_is_not_a_duplicate():
    enrolments = [enrolment(1, "ann@x.com", "CS101"), enrolment(2, "ann@x.com", "MA201")]
    students = [student("ann@x.com")]
    courses = [course("CS101"), course("MA201")]
    assert isinstance(propose_update_enrolment(1, "ann@x.com", "CS101", students, courses, enrolments), Allowed)
    assert propose_update_enrolment(1, "ann@x.com", "MA201", students, courses, enrolments) == Rejected(
        Reason.DUPLICATE_ENROLMENT
    )


def test_update_missing_enrolment_is_rejected():
    outcome = propose_update_enrolment(9, "ann@x.com", "CS101", [student("ann@x.com")], [course("CS101")], [])
    assert outcome == Rejected(Reason.ENROLMENT_NOT_FOUND)


def test_engine_does_not_mutate_its_inputs():
    candidate = {"email": "ann@x.com", "name": "A", "course": "cs101"}
    propose_create_student(candidate, [], [course("CS101")])
    assert candidate["course"] == "cs101"
