"""
Partner Sync - Error Taxonomy
=============================
Failures raised while reconciling a single Partner.

Every per-partner failure derives from ReconciliationError and is caught
at the driver's partner boundary, so one bad record never aborts a batch.
Repository implementations translate store-level uniqueness violations
into DuplicateRecordError so the core never imports a database driver.
"""

from typing import Dict, Optional


class ReconciliationError(Exception):
    """Base class for failures scoped to one Partner."""

    def __init__(self, message: str, partner_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.partner_id = partner_id

    @property
    def kind(self) -> str:
        return type(self).__name__


class IdentityResolutionFailure(ReconciliationError):
    """The shared User could not be found or created."""


class CategoryLookupFailure(ReconciliationError):
    """
    The category catalog could not be read.

    The mapper downgrades this to "zero categories resolved"; it is never
    propagated to the driver.
    """


class ProfileValidationFailure(ReconciliationError):
    """The ServicePartner profile was rejected by its structural constraints."""

    def __init__(
        self,
        message: str,
        partner_id: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None
    ):
        super().__init__(message, partner_id)
        self.field_errors = dict(field_errors or {})

    def __str__(self) -> str:
        if not self.field_errors:
            return self.message
        details = "; ".join(f"{field}: {msg}" for field, msg in self.field_errors.items())
        return f"{self.message} ({details})"


class SourceRecordAccessFailure(ReconciliationError):
    """The Partner store could not be read for a record or for the whole scope."""


class DuplicateRecordError(Exception):
    """A create collided with a uniqueness constraint in the store."""

    def __init__(self, entity: str, detail: str = ""):
        super().__init__(f"Duplicate {entity}: {detail}" if detail else f"Duplicate {entity}")
        self.entity = entity
        self.detail = detail
