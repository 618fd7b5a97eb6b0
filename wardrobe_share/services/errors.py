"""Error taxonomy shared by every service operation."""

from __future__ import annotations


class WardrobeShareError(Exception):
    """Base class for recoverable domain errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WardrobeShareError):
    """Malformed or missing input, or garment ids the owner does not own."""

    code = "validation_error"


class AuthorizationError(WardrobeShareError):
    """No grant, collection or ownership admits the caller."""

    code = "forbidden"


class NotFoundError(WardrobeShareError):
    """Unknown id, or a record in the wrong state for the requested transition."""

    code = "not_found"


class ConflictError(WardrobeShareError):
    """Unique constraint violation such as a reused invite code."""

    code = "conflict"


class InternalError(WardrobeShareError):
    """Unexpected persistence fault with an opaque message."""

    code = "internal_error"


SUGGESTION_UNAVAILABLE = "Suggestion not found or already processed"
