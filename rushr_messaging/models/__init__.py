# Export all models
from .api import (
    ConversationResponse,
    ConversationSummary,
    MessageResponse,
    OfferResponse,
    ParticipantResponse,
)
from .db import (
    AttachmentModel,
    ConversationModel,
    MessageModel,
    OfferModel,
    ParticipantModel,
    UserProfileModel,
)

__all__ = [
    # API models
    "ConversationResponse",
    "ConversationSummary",
    "MessageResponse",
    "OfferResponse",
    "ParticipantResponse",
    # DB models
    "AttachmentModel",
    "ConversationModel",
    "MessageModel",
    "OfferModel",
    "ParticipantModel",
    "UserProfileModel",
]
