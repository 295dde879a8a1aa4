"""Referential integrity rules for students, courses and enrolments.

Every `propose_*` function is pure: it reads the current collections and
returns an outcome saying whether the mutation may proceed and which
secondary writes (the cascade plan) must accompany it. Nothing here
touches the database; `registry.services` applies allowed plans inside a
single transaction.

Records are read duck-typed, so model instances and plain dicts both
work. Natural keys (student e-mail, course code) compare
case-insensitively.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Union

from django.db import models
from django.utils import timezone

from .models import Status


class Entity(models.TextChoices):
    STUDENT = "student", "Student"
    COURSE = "course", "Course"
    ENROLMENT = "enrolment", "Enrolment"


class Action(models.TextChoices):
    INSERT = "insert", "Insert"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"


class Reason(models.TextChoices):
    """Rejection reasons; labels double as user-facing messages."""

    DUPLICATE_EMAIL = "DUPLICATE_EMAIL", "A student with this e-mail already exists."
    DUPLICATE_CODE = "DUPLICATE_CODE", "A course with this code already exists."
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND", "Student not found."
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND", "Course not found."
    ENROLMENT_NOT_FOUND = "ENROLMENT_NOT_FOUND", "Enrolment not found."
    STUDENT_INACTIVE = "STUDENT_INACTIVE", "Student is inactive."
    COURSE_INACTIVE = "COURSE_INACTIVE", "Course is inactive."
    DUPLICATE_ENROLMENT = "DUPLICATE_ENROLMENT", "Already enrolled in this course."


STUDENT_DEACTIVATION_WARNING = (
    "Student has enrolments; they will not be deleted, only blocked from new ones."
)
COURSE_DEACTIVATION_WARNING = (
    "Course has enrolments; they will not be deleted, only blocked from new ones."
)


@dataclass(frozen=True)
class Step:
    """One write against the store: `key` is the natural key or enrolment id."""

    action: str
    entity: str
    key: Any = None
    values: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CascadePlan:
    primary: Step
    cascade: tuple[Step, ...] = ()

    def ordered(self) -> tuple[Step, ...]:
        """Steps in application order.

        Dependants go first when the primary record is deleted, and after
        it otherwise.
        """
        if self.primary.action == Action.DELETE:
            return (*self.cascade, self.primary)
        return (self.primary, *self.cascade)


@dataclass(frozen=True)
class Allowed:
    plan: CascadePlan


@dataclass(frozen=True)
class Rejected:
    reason: Reason

    @property
    def message(self) -> str:
        return self.reason.label


@dataclass(frozen=True)
class NeedsConfirmation:
    """Advisory gate: the plan runs only once the caller acknowledges `warning`."""

    warning: str
    plan: CascadePlan

    def confirm(self) -> Allowed:
        return Allowed(self.plan)


Outcome = Union[Allowed, Rejected, NeedsConfirmation]


def _get(record, name: str, default=None):
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def same_key(a, b) -> bool:
    """Case-insensitive natural-key comparison; None never matches."""
    if a is None or b is None:
        return False
    return str(a).lower() == str(b).lower()


def _find(records: Iterable, key_field: str, key):
    for record in records:
        if same_key(_get(record, key_field), key):
            return record
    return None


def _referencing(enrolments: Iterable, key_field: str, key) -> list:
    return [e for e in enrolments if same_key(_get(e, key_field), key)]


def _deactivates(current, values: Mapping[str, Any]) -> bool:
    new_status = values.get("status", _get(current, "status"))
    return _get(current, "status") == Status.ACTIVE and new_status == Status.INACTIVE


def _resolve_course_pointer(values: dict, courses: Iterable | None) -> Rejected | None:
    """Canonicalise `values["course"]` against `courses` in place."""
    if "course" not in values:
        return None
    if not values["course"]:
        values["course"] = None
        return None
    if courses is None:
        return None
    match = _find(courses, "code", values["course"])
    if match is None:
        return Rejected(Reason.COURSE_NOT_FOUND)
    values["course"] = _get(match, "code")
    return None


def propose_create_student(candidate: Mapping[str, Any], students: Iterable, courses: Iterable | None = None) -> Outcome:
    values = dict(candidate)
    email = values.get("email")
    if _find(students, "email", email) is not None:
        return Rejected(Reason.DUPLICATE_EMAIL)
    rejected = _resolve_course_pointer(values, courses)
    if rejected:
        return rejected
    return Allowed(CascadePlan(Step(Action.INSERT, Entity.STUDENT, email, values)))


def propose_create_course(candidate: Mapping[str, Any], courses: Iterable) -> Outcome:
    values = dict(candidate)
    code = values.get("code")
    if _find(courses, "code", code) is not None:
        return Rejected(Reason.DUPLICATE_CODE)
    return Allowed(CascadePlan(Step(Action.INSERT, Entity.COURSE, code, values)))


def propose_update_student(
    old_email: str,
    new_values: Mapping[str, Any],
    students: Iterable,
    enrolments: Iterable,
    courses: Iterable | None = None,
    acknowledged: bool = False,
) -> Outcome:
    """Validate an edit of the student keyed by `old_email`.

    An e-mail change is rewritten into every enrolment that references the
    old address. Deactivating a student who still has enrolments needs
    acknowledgement; the enrolments themselves are kept.
    """
    students = list(students)
    enrolments = list(enrolments)
    current = _find(students, "email", old_email)
    if current is None:
        return Rejected(Reason.STUDENT_NOT_FOUND)
    stored_email = _get(current, "email")
    values = dict(new_values)
    new_email = values.get("email", stored_email)
    if not same_key(new_email, stored_email) and _find(students, "email", new_email) is not None:
        return Rejected(Reason.DUPLICATE_EMAIL)
    rejected = _resolve_course_pointer(values, courses)
    if rejected:
        return rejected

    owned = _referencing(enrolments, "student_email", stored_email)
    cascade: tuple[Step, ...] = ()
    if new_email != stored_email:
        cascade = tuple(
            Step(Action.UPDATE, Entity.ENROLMENT, _get(e, "id"), {"student_email": new_email})
            for e in owned
        )
    plan = CascadePlan(Step(Action.UPDATE, Entity.STUDENT, stored_email, values), cascade)
    if owned and _deactivates(current, values) and not acknowledged:
        return NeedsConfirmation(STUDENT_DEACTIVATION_WARNING, plan)
    return Allowed(plan)


def propose_update_course(
    old_code: str,
    new_values: Mapping[str, Any],
    courses: Iterable,
    enrolments: Iterable,
    students: Iterable,
    acknowledged: bool = False,
) -> Outcome:
    """Validate an edit of the course keyed by `old_code`.

    A code change is rewritten into matching enrolments and into every
    student whose `course` pointer names the old code.
    """
    courses = list(courses)
    enrolments = list(enrolments)
    current = _find(courses, "code", old_code)
    if current is None:
        return Rejected(Reason.COURSE_NOT_FOUND)
    stored_code = _get(current, "code")
    values = dict(new_values)
    new_code = values.get("code", stored_code)
    if not same_key(new_code, stored_code) and _find(courses, "code", new_code) is not None:
        return Rejected(Reason.DUPLICATE_CODE)

    owned = _referencing(enrolments, "course_code", stored_code)
    cascade: list[Step] = []
    if new_code != stored_code:
        cascade += [
            Step(Action.UPDATE, Entity.ENROLMENT, _get(e, "id"), {"course_code": new_code})
            for e in owned
        ]
        cascade += [
            Step(Action.UPDATE, Entity.STUDENT, _get(s, "email"), {"course": new_code})
            for s in students
            if same_key(_get(s, "course"), stored_code)
        ]
    plan = CascadePlan(Step(Action.UPDATE, Entity.COURSE, stored_code, values), tuple(cascade))
    if owned and _deactivates(current, values) and not acknowledged:
        return NeedsConfirmation(COURSE_DEACTIVATION_WARNING, plan)
    return Allowed(plan)


def propose_delete_student(email: str, enrolments: Iterable, students: Iterable) -> Outcome:
    current = _find(students, "email", email)
    if current is None:
        return Rejected(Reason.STUDENT_NOT_FOUND)
    stored_email = _get(current, "email")
    cascade = tuple(
        Step(Action.DELETE, Entity.ENROLMENT, _get(e, "id"))
        for e in _referencing(enrolments, "student_email", stored_email)
    )
    return Allowed(CascadePlan(Step(Action.DELETE, Entity.STUDENT, stored_email), cascade))


def propose_delete_course(code: str, enrolments: Iterable, students: Iterable, courses: Iterable | None = None) -> Outcome:
    """Plan a course deletion.

    Enrolments in the course are deleted and student `course` pointers
    naming it are cleared. When `courses` is given, a missing course is
    rejected instead of planning an empty cascade.
    """
    stored_code = code
    if courses is not None:
        current = _find(courses, "code", code)
        if current is None:
            return Rejected(Reason.COURSE_NOT_FOUND)
        stored_code = _get(current, "code")
    cascade: list[Step] = [
        Step(Action.DELETE, Entity.ENROLMENT, _get(e, "id"))
        for e in _referencing(enrolments, "course_code", stored_code)
    ]
    cascade += [
        Step(Action.UPDATE, Entity.STUDENT, _get(s, "email"), {"course": None})
        for s in students
        if same_key(_get(s, "course"), stored_code)
    ]
    return Allowed(CascadePlan(Step(Action.DELETE, Entity.COURSE, stored_code), tuple(cascade)))


def _check_enrolment(student_email, course_code, students, courses, enrolments, exclude_id=None):
    """Shared create/update checks, first failure wins.

    Returns `(student, course, rejected)`.
    """
    student = _find(students, "email", student_email)
    if student is None:
        return None, None, Rejected(Reason.STUDENT_NOT_FOUND)
    course = _find(courses, "code", course_code)
    if course is None:
        return student, None, Rejected(Reason.COURSE_NOT_FOUND)
    if _get(student, "status") != Status.ACTIVE:
        return student, course, Rejected(Reason.STUDENT_INACTIVE)
    if _get(course, "status") != Status.ACTIVE:
        return student, course, Rejected(Reason.COURSE_INACTIVE)
    for e in enrolments:
        if exclude_id is not None and _get(e, "id") == exclude_id:
            continue
        if same_key(_get(e, "student_email"), student_email) and same_key(_get(e, "course_code"), course_code):
            return student, course, Rejected(Reason.DUPLICATE_ENROLMENT)
    return student, course, None


def propose_create_enrolment(
    student_email: str,
    course_code: str,
    students: Iterable,
    courses: Iterable,
    enrolments: Iterable,
    now: datetime | None = None,
) -> Outcome:
    """Plan a new enrolment.

    Checks run in order: student exists, course exists, student active,
    course active, pair not already enrolled. The new record stores the
    canonical spelling of both keys; its id is assigned on insert.
    """
    student, course, rejected = _check_enrolment(student_email, course_code, students, courses, enrolments)
    if rejected:
        return rejected
    values = {
        "student_email": _get(student, "email"),
        "course_code": _get(course, "code"),
        "created_at": now or timezone.now(),
    }
    return Allowed(CascadePlan(Step(Action.INSERT, Entity.ENROLMENT, None, values)))


def propose_update_enrolment(
    enrolment_id: int,
    new_student_email: str,
    new_course_code: str,
    students: Iterable,
    courses: Iterable,
    enrolments: Iterable,
) -> Outcome:
    """Re-point an enrolment; matching its own current pair is not a duplicate."""
    enrolments = list(enrolments)
    if not any(_get(e, "id") == enrolment_id for e in enrolments):
        return Rejected(Reason.ENROLMENT_NOT_FOUND)
    student, course, rejected = _check_enrolment(
        new_student_email, new_course_code, students, courses, enrolments, exclude_id=enrolment_id
    )
    if rejected:
        return rejected
    values = {"student_email": _get(student, "email"), "course_code": _get(course, "code")}
    return Allowed(CascadePlan(Step(Action.UPDATE, Entity.ENROLMENT, enrolment_id, values)))
