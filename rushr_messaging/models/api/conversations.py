from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rushr_messaging.models.enums import (
    ConversationStatus,
    ParticipantRole,
    Visibility,
)


class CreateConversationRequest(BaseModel):
    """Request model for starting (or reopening) a conversation."""

    requester_id: UUID = Field(..., description="Homeowner side of the thread")
    provider_id: UUID = Field(..., description="Contractor side of the thread")
    title: str = Field(..., description="Human label, usually the job title")
    job_ref: Optional[UUID] = Field(default=None, description="Linked job id")
    initial_message: Optional[str] = Field(
        default=None, description="Optional first text message"
    )


class ConversationResponse(BaseModel):
    """Response model for conversation data."""

    id: UUID
    requester_id: UUID
    provider_id: UUID
    title: str
    job_ref: Optional[UUID]
    status: ConversationStatus
    last_activity_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationSummary(BaseModel):
    """Directory entry for one conversation, from one user's point of view."""

    id: UUID
    title: str
    job_ref: Optional[UUID]
    role: ParticipantRole
    counterpart_id: UUID
    counterpart_name: Optional[str]
    last_message_preview: Optional[str]
    last_activity_at: datetime
    unread_count: int
    message_count: int
    visibility: Visibility
