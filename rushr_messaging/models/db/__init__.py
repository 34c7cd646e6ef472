# SQLAlchemy database models
from .attachment_model import AttachmentModel
from .conversation_model import ConversationModel
from .message_model import MessageModel
from .offer_model import OfferModel
from .participant_model import ParticipantModel
from .user_profile_model import UserProfileModel

__all__ = [
    "AttachmentModel",
    "ConversationModel",
    "MessageModel",
    "OfferModel",
    "ParticipantModel",
    "UserProfileModel",
]
