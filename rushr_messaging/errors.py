"""Typed messaging errors.

Every failure surfaced by the services is a ``MessagingError`` carrying a
stable code and the HTTP status the API maps it to. Callers own retry
policy; nothing here is retried internally.
"""

from enum import Enum
from typing import Dict


class MessagingErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    E_FORBIDDEN = "E_FORBIDDEN"
    E_NOT_FOUND = "E_NOT_FOUND"
    E_INVALID_PARTICIPANTS = "E_INVALID_PARTICIPANTS"
    E_EMPTY_PAYLOAD = "E_EMPTY_PAYLOAD"
    E_INVALID_OFFER = "E_INVALID_OFFER"
    E_INVALID_TRANSITION = "E_INVALID_TRANSITION"
    E_WINDOW_EXPIRED = "E_WINDOW_EXPIRED"


ERROR_CODE_TO_STATUS: Dict[MessagingErrorCode, int] = {
    MessagingErrorCode.E_FORBIDDEN: 403,
    MessagingErrorCode.E_NOT_FOUND: 404,
    MessagingErrorCode.E_INVALID_PARTICIPANTS: 400,
    MessagingErrorCode.E_EMPTY_PAYLOAD: 400,
    MessagingErrorCode.E_INVALID_OFFER: 400,
    # A lost race is a conflict: the client should refresh and retry
    MessagingErrorCode.E_INVALID_TRANSITION: 409,
    MessagingErrorCode.E_WINDOW_EXPIRED: 410,
}


class MessagingError(Exception):
    """Base exception for messaging failures.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    code: MessagingErrorCode = MessagingErrorCode.E_NOT_FOUND
    default_message = "Messaging error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        self.status_code = ERROR_CODE_TO_STATUS.get(self.code, 500)
        super().__init__(self.message)


class ForbiddenError(MessagingError):
    """Actor is not a participant or not allowed to perform the action."""

    code = MessagingErrorCode.E_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(MessagingError):
    """Entity id does not resolve."""

    code = MessagingErrorCode.E_NOT_FOUND
    default_message = "Not found"


class InvalidParticipantsError(MessagingError):
    code = MessagingErrorCode.E_INVALID_PARTICIPANTS
    default_message = "Requester and provider must be different users"


class EmptyPayloadError(MessagingError):
    code = MessagingErrorCode.E_EMPTY_PAYLOAD
    default_message = "Message payload is empty"


class InvalidOfferError(MessagingError):
    """Offer or counter-offer numeric fields are invalid."""

    code = MessagingErrorCode.E_INVALID_OFFER
    default_message = "Invalid offer"


class InvalidTransitionError(MessagingError):
    """Offer state machine violation, or the loser of a concurrent response."""

    code = MessagingErrorCode.E_INVALID_TRANSITION
    default_message = "Invalid offer transition"


class WindowExpiredError(MessagingError):
    code = MessagingErrorCode.E_WINDOW_EXPIRED
    default_message = "Undo window has expired"
