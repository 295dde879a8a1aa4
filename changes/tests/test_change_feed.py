from __future__ import annotations

import pytest
from django.test import Client

from changes.events import current_revision, events_since
from registry.exceptions import ConstraintError


@pytest.mark.django_db
def test_revision_starts_at_zero_and_grows_per_mutation(service):
    assert current_revision() == 0
    service.create_course({"code": "CS101", "title": "Intro"})
    first = current_revision()
    service.update_course("CS101", {"title": "Introduction"})
    assert current_revision() == first + 1
    assert [e.action for e in events_since(first)] == ["update"]


@pytest.mark.django_db
def test_broadcast_is_deferred_until_commit(service, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks() as callbacks:
        service.create_course({"code": "CS101", "title": "Intro"})
    assert len(callbacks) == 1

    with django_capture_on_commit_callbacks() as callbacks:
        with pytest.raises(ConstraintError):
            service.create_course({"code": "cs101", "title": "Again"})
    assert callbacks == []


@pytest.mark.django_db
def test_recent_endpoint_replays_after_since(seeded):
    c = Client()
    r = c.get("/changes/recent/")
    assert r.status_code == 200
    data = r.json()
    # Two courses, two students and one enrolment
    assert [e["entity"] for e in data["results"]] == ["course", "course", "student", "student", "enrolment"]
    revisions = [e["revision"] for e in data["results"]]
    assert data["revision"] == revisions[-1]

    r = c.get("/changes/recent/", {"since": revisions[2], "limit": 1})
    assert [e["revision"] for e in r.json()["results"]] == [revisions[3]]

    r = c.get("/changes/recent/", {"since": "junk"})
    assert len(r.json()["results"]) == 5
