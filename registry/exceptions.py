"""Exceptions raised by the registry store and service."""
from __future__ import annotations


class RegistryError(Exception):
    """Base class for registry failures."""


class NotFound(RegistryError):
    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class ConstraintViolation(RegistryError):
    """A storage-level uniqueness or check constraint rejected a write."""

    def __init__(self, unique_key: str, message: str = ""):
        self.unique_key = unique_key
        super().__init__(message or f"Constraint violated: {unique_key}")


class StorageError(RegistryError):
    """The database failed for a reason other than a constraint."""


class ConstraintError(RegistryError):
    """The integrity engine rejected a mutation.

    `reason` is a `registry.integrity.Reason` member; its label is the
    message shown to users.
    """

    def __init__(self, reason, detail: str = ""):
        self.reason = reason
        self.detail = detail or getattr(reason, "label", str(reason))
        super().__init__(self.detail)


class ConfirmationRequired(Exception):
    """A write is paused until the caller acknowledges `warning`.

    Not a failure: re-issue the request with acknowledgement to proceed.
    """

    def __init__(self, warning: str):
        self.warning = warning
        super().__init__(warning)
