from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, RootModel

from rushr_messaging.models.api.offers import OfferFields, OfferResponse
from rushr_messaging.models.enums import MessageKind


class AttachmentIn(BaseModel):
    """Metadata of a file already uploaded to object storage."""

    file_name: str
    url: str
    mime_type: str
    size_bytes: Optional[int] = None


class AttachmentResponse(BaseModel):
    """Response model for attachment metadata."""

    id: UUID
    file_name: str
    url: str
    mime_type: str
    size_bytes: Optional[int]

    model_config = ConfigDict(from_attributes=True)


class TextPayload(BaseModel):
    kind: Literal["text"] = "text"
    content: str = Field(..., description="Message text")
    attachments: List[AttachmentIn] = Field(default_factory=list)
    reply_to_id: Optional[UUID] = None


class FilePayload(BaseModel):
    kind: Literal["file"] = "file"
    content: Optional[str] = Field(default=None, description="Optional caption")
    attachments: List[AttachmentIn] = Field(default_factory=list)
    reply_to_id: Optional[UUID] = None


class SystemPayload(BaseModel):
    kind: Literal["system"] = "system"
    content: str


class OfferPayload(BaseModel):
    kind: Literal["offer"] = "offer"
    offer: OfferFields


MessagePayload = Annotated[
    Union[TextPayload, FilePayload, SystemPayload, OfferPayload],
    Field(discriminator="kind"),
]


class SendMessageRequest(RootModel[MessagePayload]):
    """Request body for appending a message, keyed by ``kind``."""

    root: MessagePayload


class MessageResponse(BaseModel):
    """Response model for message data.

    Deleted messages keep their row but never expose content,
    attachments or offer terms.
    """

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    kind: MessageKind
    seq: int
    content: Optional[str]
    attachments: List[AttachmentResponse]
    offer: Optional[OfferResponse]
    reply_to_id: Optional[UUID]
    deleted: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
