from typing import Tuple
from uuid import UUID

from rushr_messaging.errors import ForbiddenError, NotFoundError
from rushr_messaging.models.db.conversation_model import ConversationModel
from rushr_messaging.models.db.participant_model import ParticipantModel
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository


async def require_participant(
    conversation_repo: ConversationRepository,
    participant_repo: ParticipantRepository,
    conversation_id: UUID,
    user_id: UUID,
) -> Tuple[ConversationModel, ParticipantModel]:
    """Load a conversation and the caller's participant row.

    Raises:
        NotFoundError: The conversation does not exist.
        ForbiddenError: The user is not one of its two parties.
    """
    conversation = await conversation_repo.get_model(conversation_id)
    if conversation is None:
        raise NotFoundError(f"Conversation {conversation_id} not found")

    participant = await participant_repo.get(conversation_id, user_id)
    if participant is None:
        raise ForbiddenError("Not a participant of this conversation")

    return conversation, participant


def counterpart_of(conversation: ConversationModel, user_id: UUID) -> UUID:
    """The other party of a two-party conversation."""
    if user_id == conversation.requester_id:
        return conversation.provider_id
    return conversation.requester_id
