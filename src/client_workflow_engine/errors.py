"""Error taxonomy shared by every engine component.

Each error carries the HTTP status the request/response surface maps it to, so
callers outside the HTTP layer (CLI, background workers) can still report a
uniform error code.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for expected, caller-visible failures."""

    status_code: int = 500
    code: str = "unexpected"

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"success": False, "error": self.code, "detail": self.message}
        if self.details:
            out["details"] = self.details
        return out


class InvalidInputError(EngineError):
    """Missing or malformed fields. Never retried."""

    status_code = 400
    code = "invalid_input"


class NotFoundError(EngineError):
    """A referenced entity does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidStateError(EngineError):
    """The operation is not legal for the entity's current status."""

    status_code = 400
    code = "invalid_state"


class AuthorizationDeniedError(EngineError):
    """An automated agent is not allowed to perform an action.

    Kept distinct from NotFoundError even when the cause is a missing agent or
    scope, so denials are reported uniformly.
    """

    status_code = 403
    code = "authorization_denied"


class UnexpectedError(EngineError):
    status_code = 500
    code = "unexpected"
