from __future__ import annotations


class SantaError(Exception):
    """
    Base for request-scoped failures raised by the services.

    status_code / code are what the API error envelope reports, so callers can
    tell "not allowed" from "nobody left to draw" from a generic failure.
    """

    status_code: int = 500
    code: str = "error"
    default_message: str = "An error occurred"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotAuthorized(SantaError):
    status_code = 403
    code = "not_authorized"
    default_message = "You are not authorized to perform this action"


class NotAuthenticated(NotAuthorized):
    status_code = 401
    code = "unauthenticated"
    default_message = "Unauthorized"


class ValidationError(SantaError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class NoCandidatesAvailable(SantaError):
    status_code = 409
    code = "no_candidates"
    default_message = "No available team members to assign"


class ReceiverRaceConflict(SantaError):
    # Only surfaced once the engine has exhausted its retries.
    status_code = 503
    code = "draw_conflict"
    default_message = "The draw is busy, please try again"


class PersistenceError(SantaError):
    status_code = 500
    code = "persistence_error"
    default_message = "An error occurred while saving your request"


class DeliveryError(SantaError):
    status_code = 502
    code = "delivery_failed"
    default_message = "Failed to send email"
