"""Typed service errors.

Services raise these instead of HTTP exceptions; ``app.main`` renders them
into responses using the ``status_code`` carried by each class.
"""


class CardflowError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class BadRequest(CardflowError):
    """Missing or invalid input."""

    status_code = 400


class Unauthorized(CardflowError):
    """Missing, invalid or expired credential, or failed login."""

    status_code = 401


class Forbidden(CardflowError):
    """Valid identity lacking the required role."""

    status_code = 403


class NotFound(CardflowError):
    """Referenced entity does not exist."""

    status_code = 404


class Conflict(CardflowError):
    """Unique constraint violation (duplicate email or batch)."""

    status_code = 409


class InvalidTransition(CardflowError):
    """Card request status change that is not exactly one step forward."""

    status_code = 400

    def __init__(self, current_status: str, requested_status: str, allowed_next: str | None):
        if allowed_next is None:
            allowed = f"none, '{current_status}' is final"
        else:
            allowed = f"'{allowed_next}'"
        super().__init__(
            f"Invalid status transition from '{current_status}' to '{requested_status}'. "
            f"Allowed next status: {allowed}"
        )
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed_next = allowed_next


class StorageFailure(CardflowError):
    """Underlying persistence error, not further interpreted."""

    status_code = 500


def card_request_not_found(request_id: int) -> str:
    """Return message for missing card request."""
    return f"Card request {request_id} not found"


def card_profile_not_found(profile_id: int) -> str:
    """Return message for missing card profile."""
    return f"Card profile {profile_id} not found"
