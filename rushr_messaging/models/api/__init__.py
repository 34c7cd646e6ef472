# API models for request/response contracts
from .conversations import (
    ConversationResponse,
    ConversationSummary,
    CreateConversationRequest,
)
from .messages import (
    AttachmentIn,
    AttachmentResponse,
    FilePayload,
    MessagePayload,
    MessageResponse,
    OfferPayload,
    SendMessageRequest,
    SystemPayload,
    TextPayload,
)
from .offers import CounterFields, OfferFields, OfferResponse, RespondToOfferRequest
from .participants import (
    MarkReadRequest,
    ParticipantResponse,
    TypingRequest,
    TypingResponse,
)

__all__ = [
    "AttachmentIn",
    "AttachmentResponse",
    "ConversationResponse",
    "ConversationSummary",
    "CounterFields",
    "CreateConversationRequest",
    "FilePayload",
    "MarkReadRequest",
    "MessagePayload",
    "MessageResponse",
    "OfferFields",
    "OfferPayload",
    "OfferResponse",
    "ParticipantResponse",
    "RespondToOfferRequest",
    "SendMessageRequest",
    "SystemPayload",
    "TextPayload",
    "TypingRequest",
    "TypingResponse",
]
