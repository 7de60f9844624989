"""
Domain Errors

Typed failures raised by the lifecycle manager, the identity and fleet services and the
repositories. Each error carries a discriminating ``kind`` and a human-readable ``detail``;
the HTTP layer maps them to responses in ``tms_api.errors``.
"""

from typing import Optional


class TransportError(Exception):
    """Base class for all domain errors."""

    kind: str = "TransportError"
    http_status: int = 500

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.field = field

    def to_dict(self) -> dict:
        """Serialize as the ``{"detail", "error_type"}`` body used by every error response."""
        body = {"detail": self.detail, "error_type": self.kind}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(TransportError):
    """A required input is missing or malformed (e.g. driver absent on forward)."""

    kind = "ValidationError"
    http_status = 400


class InvalidTransition(TransportError):
    """The operation is not allowed from the request's current status."""

    kind = "InvalidTransition"
    http_status = 409

    def __init__(self, transition: str, current_status: str):
        super().__init__(f"Cannot {transition} a request in status '{current_status}'")
        self.transition = transition
        self.current_status = current_status


class NotFound(TransportError):
    """Unknown request, user, driver or vehicle id."""

    kind = "NotFound"
    http_status = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateEntity(TransportError):
    """A uniqueness rule was violated (duplicate driver, username, vehicle id)."""

    kind = "DuplicateEntity"
    http_status = 409


class CredentialError(TransportError):
    """Credentials did not verify."""

    kind = "CredentialError"
    http_status = 401


class PermissionDenied(TransportError):
    """The acting user's role or ownership does not entitle them to the operation."""

    kind = "PermissionDenied"
    http_status = 403


class EntityInUse(TransportError):
    """The entity is still referenced and cannot be deleted."""

    kind = "EntityInUse"
    http_status = 409


class StorageError(TransportError):
    """The database reported a failure; nothing was committed."""

    kind = "StorageError"
    http_status = 503
