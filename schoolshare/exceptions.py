"""
Domain exceptions.

Every error a client can trigger carries a stable ``kind`` and an HTTP status,
rendered by the handler registered in ``schoolshare.main`` as
``{"success": false, "error_kind": kind, "detail": message}`` plus ``field``
when the error names one.
"""
from typing import Optional


class SchoolShareError(Exception):
    """Base class for errors surfaced to API clients."""

    kind = "error"
    status_code = 400
    default_message = "Request failed"
    field: Optional[str] = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ============== Creation-time ==============

class InvalidRequest(SchoolShareError):
    kind = "invalid_request"
    status_code = 400
    default_message = "Invalid request"


class InvalidShareRequest(InvalidRequest):
    default_message = "Invalid share request"


class ScopeNotFound(SchoolShareError):
    """The scope anchor (or a listed photo) does not exist in the stated event."""

    kind = "scope_not_found"
    status_code = 400
    default_message = "Share scope not found"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class EntityNotFound(SchoolShareError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found"


class OwnershipError(SchoolShareError):
    """An entity referenced in the request belongs to another event."""

    kind = "ownership_mismatch"
    status_code = 400
    default_message = "Resource does not belong to this event"


# ============== Store ==============

class StoreError(SchoolShareError):
    """Opaque data-access failure; callers may retry."""

    kind = "store_error"
    status_code = 503
    default_message = "Data store unavailable"


class MaterializationError(StoreError):
    kind = "materialization_failed"
    default_message = "Failed to materialize share contents"


# ============== Validation-time ==============

class ShareAccessError(SchoolShareError):
    """Base for token validation outcomes; never mutates state."""

    kind = "access_denied"
    status_code = 403


class ShareNotFound(ShareAccessError):
    kind = "not_found"
    status_code = 404
    default_message = "Share link not found"


class ShareRevoked(ShareAccessError):
    kind = "revoked"
    status_code = 410
    default_message = "Share link has been revoked"


class ShareExpired(ShareAccessError):
    kind = "expired"
    status_code = 410
    default_message = "Share link has expired"


class ViewLimitExceeded(ShareAccessError):
    kind = "view_limit_exceeded"
    status_code = 429
    default_message = "Share link view limit reached"


class ShareUnauthorized(ShareAccessError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Incorrect password"

    PASSWORD_REQUIRED = "Password required"

    def __init__(self, message: Optional[str] = None, password_required: bool = False):
        self.password_required = password_required
        if message is None and password_required:
            message = self.PASSWORD_REQUIRED
        super().__init__(message)
