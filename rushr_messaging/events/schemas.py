"""Domain events published after a messaging transaction commits.

Consumed by:
- WebSocket subscribers of a conversation (live UI updates)
- NotificationDispatcher (email/push trigger points)
- Any external listener, e.g. a payment flow waiting for accepted offers
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.models.api.offers import OfferResponse
from rushr_messaging.models.enums import OfferStatus
from rushr_messaging.timeutils import utc_now


class EventType(str, Enum):
    """Event types published by the messaging service."""

    MESSAGE_APPENDED = "message.appended"
    MESSAGE_DELETED = "message.deleted"
    OFFER_TRANSITIONED = "offer.transitioned"
    READ_ADVANCED = "read.advanced"
    TYPING_CHANGED = "typing.changed"


class BaseEvent(BaseModel):
    """Base event schema with common fields."""

    event_type: EventType
    conversation_id: UUID
    occurred_at: datetime = Field(default_factory=utc_now)


class MessageAppendedEvent(BaseEvent):
    event_type: EventType = EventType.MESSAGE_APPENDED
    message: MessageResponse
    recipient_id: UUID


class MessageDeletedEvent(BaseEvent):
    event_type: EventType = EventType.MESSAGE_DELETED
    message_id: UUID
    deleted_by: UUID


class OfferTransitionedEvent(BaseEvent):
    """Published on every offer status change.

    ``actor_id`` is None for time-based expiry. ``recipient_id`` is the
    party who did not act (the proposer on expiry).
    """

    event_type: EventType = EventType.OFFER_TRANSITIONED
    offer: OfferResponse
    previous_status: OfferStatus
    actor_id: Optional[UUID] = None
    recipient_id: UUID


class ReadAdvancedEvent(BaseEvent):
    event_type: EventType = EventType.READ_ADVANCED
    user_id: UUID
    last_read_message_id: UUID
    last_read_seq: int


class TypingChangedEvent(BaseEvent):
    """Transient; delivery is best-effort."""

    event_type: EventType = EventType.TYPING_CHANGED
    user_id: UUID
    is_typing: bool


DomainEvent = Union[
    MessageAppendedEvent,
    MessageDeletedEvent,
    OfferTransitionedEvent,
    ReadAdvancedEvent,
    TypingChangedEvent,
]
