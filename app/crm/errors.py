"""
Error taxonomy shared by validation, the store gateway and the order workflow.

Handlers in app.crm.api translate these into HTTP statuses; nothing below the
API layer knows about HTTP.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Violation:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


class CrmError(Exception):
    pass


class ValidationError(CrmError):
    """Client-correctable payload problems; carries every field violation found."""

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        super().__init__("; ".join(f"{v.field}: {v.message}" for v in self.violations))


class NotFound(CrmError):
    pass


class Conflict(CrmError):
    """Business-rule rejection (e.g. deleting a shipped order)."""


class StoreError(CrmError):
    """Underlying persistence failure; not client-correctable."""
