from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from rushr_messaging.models.enums import ParticipantRole, Visibility


class ParticipantResponse(BaseModel):
    """Response model for one user's state in a conversation."""

    conversation_id: UUID
    user_id: UUID
    role: ParticipantRole
    last_read_message_id: Optional[UUID]
    last_read_seq: Optional[int]
    last_read_at: Optional[datetime]
    visibility: Visibility
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkReadRequest(BaseModel):
    up_to_message_id: UUID


class TypingRequest(BaseModel):
    is_typing: bool


class TypingResponse(BaseModel):
    """Counterparts currently typing, after staleness filtering."""

    conversation_id: UUID
    typing_user_ids: List[UUID]
