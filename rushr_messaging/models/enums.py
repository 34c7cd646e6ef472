from enum import Enum


class ConversationStatus(str, Enum):
    """Global conversation status (per-user visibility lives on participants)."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    CLOSED = "closed"
    DELETED = "deleted"


class ParticipantRole(str, Enum):
    REQUESTER = "requester"
    PROVIDER = "provider"


class Visibility(str, Enum):
    """Per-participant overlay for archive/delete-for-me."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class MessageKind(str, Enum):
    TEXT = "text"
    OFFER = "offer"
    SYSTEM = "system"
    FILE = "file"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COUNTERED = "countered"
    EXPIRED = "expired"


class OfferAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    COUNTER = "counter"
