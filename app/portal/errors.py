"""
Failure taxonomy for the portal.

Each error maps onto one HTTP status so callers can branch on 400 vs 409 vs 500.
Handlers raise these; the app-level error handler in ``create_app()`` turns them
into ``{"success": false, "message": ...}`` bodies.
"""
from __future__ import annotations

from typing import Any


class PortalError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class FieldInvalid(PortalError):
    """A single field failed a format or range check."""

    status_code = 400


class ReferentialMissing(PortalError):
    """A declared product type has no matching catalog entry."""

    status_code = 400

    def __init__(self, message: str, *, value: str | None = None):
        super().__init__(message)
        self.value = value


class DuplicateConflict(PortalError):
    status_code = 409

    def __init__(self, existing: dict[str, Any], message: str = "Duplicate entry detected"):
        super().__init__(message)
        self.existing = existing

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["existing"] = self.existing
        return body


class PersistenceFailure(PortalError):
    status_code = 500


class NotFound(PortalError):
    status_code = 404


class Forbidden(PortalError):
    status_code = 403
