# Repository classes for database operations
from .attachment_repository import AttachmentRepository
from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .offer_repository import OfferRepository
from .participant_repository import ParticipantRepository
from .user_profile_repository import UserProfileRepository

__all__ = [
    "AttachmentRepository",
    "BaseRepository",
    "ConversationRepository",
    "MessageRepository",
    "OfferRepository",
    "ParticipantRepository",
    "UserProfileRepository",
]
