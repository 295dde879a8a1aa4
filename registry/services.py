"""Registry service: the single writer for students, courses and enrolments.

Each public method runs in one transaction. It snapshots the current
collections, asks the integrity engine for a decision and applies every
step of an allowed plan. If any step fails the whole transaction rolls
back, so a primary write never lands without its cascade.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from django.db import transaction

from changes.events import record_change

from . import integrity
from .exceptions import ConfirmationRequired, ConstraintError
from .integrity import Action, Allowed, Entity, NeedsConfirmation, Rejected
from .store import EntityStore

logger = logging.getLogger(__name__)


_KEY_FIELDS = {Entity.STUDENT: "email", Entity.COURSE: "code", Entity.ENROLMENT: "pk"}


def _record_key(step: integrity.Step, record):
    key = getattr(record, _KEY_FIELDS[step.entity], None)
    return step.key if key is None else key


class RegistryService:
    def __init__(self, store: EntityStore | None = None):
        self.store = store or EntityStore()

    # Students

    @transaction.atomic
    def create_student(self, values: Mapping[str, Any]):
        outcome = integrity.propose_create_student(
            values, self.store.list(Entity.STUDENT), self.store.list(Entity.COURSE)
        )
        return self._apply(outcome)

    @transaction.atomic
    def update_student(self, email: str, values: Mapping[str, Any], *, acknowledged: bool = False):
        outcome = integrity.propose_update_student(
            email,
            values,
            self.store.list(Entity.STUDENT),
            self.store.list(Entity.ENROLMENT),
            self.store.list(Entity.COURSE),
            acknowledged=acknowledged,
        )
        return self._apply(outcome)

    @transaction.atomic
    def delete_student(self, email: str):
        outcome = integrity.propose_delete_student(
            email, self.store.list(Entity.ENROLMENT), self.store.list(Entity.STUDENT)
        )
        return self._apply(outcome)

    # Courses

    @transaction.atomic
    def create_course(self, values: Mapping[str, Any]):
        outcome = integrity.propose_create_course(values, self.store.list(Entity.COURSE))
        return self._apply(outcome)

    @transaction.atomic
    def update_course(self, code: str, values: Mapping[str, Any], *, acknowledged: bool = False):
        outcome = integrity.propose_update_course(
            code,
            values,
            self.store.list(Entity.COURSE),
            self.store.list(Entity.ENROLMENT),
            self.store.list(Entity.STUDENT),
            acknowledged=acknowledged,
        )
        return self._apply(outcome)

    @transaction.atomic
    def delete_course(self, code: str):
        outcome = integrity.propose_delete_course(
            code,
            self.store.list(Entity.ENROLMENT),
            self.store.list(Entity.STUDENT),
            self.store.list(Entity.COURSE),
        )
        return self._apply(outcome)

    # Enrolments

    @transaction.atomic
    def enrol(self, student_email: str, course_code: str):
        outcome = integrity.propose_create_enrolment(
            student_email,
            course_code,
            self.store.list(Entity.STUDENT),
            self.store.list(Entity.COURSE),
            self.store.list(Entity.ENROLMENT),
        )
        return self._apply(outcome)

    @transaction.atomic
    def update_enrolment(self, enrolment_id: int, student_email: str, course_code: str):
        outcome = integrity.propose_update_enrolment(
            enrolment_id,
            student_email,
            course_code,
            self.store.list(Entity.STUDENT),
            self.store.list(Entity.COURSE),
            self.store.list(Entity.ENROLMENT),
        )
        return self._apply(outcome)

    @transaction.atomic
    def delete_enrolment(self, enrolment_id: int):
        removed = self.store.delete(Entity.ENROLMENT, enrolment_id)
        record_change(Entity.ENROLMENT, Action.DELETE, enrolment_id)
        logger.info("Deleted enrolment %s", enrolment_id)
        return removed

    def _apply(self, outcome):
        """Apply an allowed plan and return the primary record."""
        if isinstance(outcome, Rejected):
            logger.info("Rejected: %s", outcome.reason)
            raise ConstraintError(outcome.reason)
        if isinstance(outcome, NeedsConfirmation):
            logger.info("Confirmation required: %s", outcome.warning)
            raise ConfirmationRequired(outcome.warning)
        assert isinstance(outcome, Allowed)

        plan = outcome.plan
        primary = None
        for step in plan.ordered():
            record = self._apply_step(step)
            if step is plan.primary:
                primary = record

        key = _record_key(plan.primary, primary)
        record_change(plan.primary.entity, plan.primary.action, key, cascade_count=len(plan.cascade))
        logger.info(
            "Applied %s %s %s (%d cascade steps)",
            plan.primary.action, plan.primary.entity, key, len(plan.cascade),
        )
        return primary

    def _apply_step(self, step: integrity.Step):
        if step.action == Action.INSERT:
            return self.store.insert(step.entity, step.values)
        if step.action == Action.UPDATE:
            return self.store.update(step.entity, step.key, step.values)
        if step.action == Action.DELETE:
            return self.store.delete(step.entity, step.key)
        raise ValueError(f"Unknown action: {step.action!r}")
