"""ORM-backed entity store.

Plain CRUD over the registry models, keyed by natural key for students
and courses (case-insensitive) and by id for enrolments. The store
validates fields and surfaces storage constraints but knows nothing
about cascades; those come from the integrity engine.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from django.db import DatabaseError, IntegrityError, transaction

from .exceptions import ConstraintViolation, NotFound, StorageError
from .integrity import Entity
from .models import Course, Enrolment, Student

logger = logging.getLogger(__name__)

_MODELS = {
    Entity.STUDENT: (Student, "email"),
    Entity.COURSE: (Course, "code"),
    Entity.ENROLMENT: (Enrolment, "pk"),
}

# Constraint name -> natural key it protects
_UNIQUE_KEYS = {
    "uq_student_email_ci": "email",
    "uq_course_code_ci": "code",
    "uq_enrolment_pair_ci": "student_email,course_code",
    "ck_course_credits_min_1": "credits",
}


def _unique_key(exc: IntegrityError) -> str:
    text = str(exc)
    for name, key in _UNIQUE_KEYS.items():
        if name in text:
            return key
    return "unknown"


class EntityStore:
    """CRUD per entity type; each write runs in its own savepoint."""

    def _model(self, entity: str):
        try:
            return _MODELS[entity]
        except KeyError:
            raise ValueError(f"Unknown entity: {entity!r}") from None

    def list(self, entity: str) -> list:
        model, _ = self._model(entity)
        try:
            return list(model.objects.all())
        except DatabaseError as exc:
            raise StorageError(str(exc)) from exc

    def get(self, entity: str, key):
        model, key_field = self._model(entity)
        if key_field == "pk":
            try:
                lookup = {"pk": int(key)}
            except (TypeError, ValueError):
                raise NotFound(entity, key) from None
        else:
            lookup = {f"{key_field}__iexact": key}
        try:
            return model.objects.get(**lookup)
        except model.DoesNotExist:
            raise NotFound(entity, key) from None
        except DatabaseError as exc:
            raise StorageError(str(exc)) from exc

    def insert(self, entity: str, values: Mapping[str, Any]):
        model, _ = self._model(entity)
        obj = model(**values)
        self._save(obj)
        return obj

    def update(self, entity: str, key, patch: Mapping[str, Any]):
        obj = self.get(entity, key)
        for name, value in patch.items():
            setattr(obj, name, value)
        self._save(obj)
        return obj

    def delete(self, entity: str, key):
        obj = self.get(entity, key)
        try:
            with transaction.atomic():
                obj.delete()
        except DatabaseError as exc:
            logger.error("Delete failed for %s %r: %s", entity, key, exc)
            raise StorageError(str(exc)) from exc
        return obj

    def _save(self, obj) -> None:
        # Field-level validation only; uniqueness is left to the engine and the DB.
        obj.full_clean(validate_unique=False, validate_constraints=False)
        try:
            with transaction.atomic():
                obj.save()
        except IntegrityError as exc:
            raise ConstraintViolation(_unique_key(exc), str(exc)) from exc
        except DatabaseError as exc:
            logger.error("Write failed for %s: %s", type(obj).__name__, exc)
            raise StorageError(str(exc)) from exc
