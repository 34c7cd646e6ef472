from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.errors import NotFoundError
from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.models.api.offers import OfferResponse
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.repositories.offer_repository import OfferRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import require_participant


class GetConversationMessagesService:
    """Service for reading messages and offers of a conversation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.message_repo = MessageRepository(db)
        self.offer_repo = OfferRepository(db)

    async def get_conversation_messages(
        self,
        conversation_id: UUID,
        user_id: UUID,
        limit: Optional[int] = 100,
        before_seq: Optional[int] = None,
        after_seq: Optional[int] = None,
    ) -> List[MessageResponse]:
        """
        Get a window of messages for a conversation:

        1. Verify the conversation exists and the user is a participant
        2. Retrieve the window in append order
        3. Return formatted responses (deleted messages are redacted)
        """
        # Validate parameters
        if limit is not None and (limit <= 0 or limit > 1000):
            raise ValueError("Limit must be between 1 and 1000")
        if before_seq is not None and after_seq is not None:
            raise ValueError("Use either before_seq or after_seq, not both")

        # Use default values if None
        limit = limit or 100

        # Step 1: Verify access
        await require_participant(
            self.conversation_repo, self.participant_repo, conversation_id, user_id
        )

        # Step 2: Get messages from repository
        messages = await self.message_repo.get_window(
            conversation_id, limit=limit, before_seq=before_seq, after_seq=after_seq
        )

        # Step 3: Transform to response format
        return [self.message_repo.to_response(message) for message in messages]

    async def get_message_details(
        self, message_id: UUID, user_id: UUID
    ) -> MessageResponse:
        """Get detailed information about a specific message."""
        message = await self.message_repo.get_model(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        await require_participant(
            self.conversation_repo,
            self.participant_repo,
            message.conversation_id,
            user_id,
        )
        return self.message_repo.to_response(message)

    async def get_offer(self, offer_id: UUID, user_id: UUID) -> OfferResponse:
        """Get an offer visible to a participant of its conversation."""
        offer = await self.offer_repo.get_with_message(offer_id)
        if offer is None:
            raise NotFoundError(f"Offer {offer_id} not found")
        await require_participant(
            self.conversation_repo,
            self.participant_repo,
            offer.message.conversation_id,
            user_id,
        )
        return self.offer_repo.to_response(offer)
