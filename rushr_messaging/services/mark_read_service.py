from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.errors import NotFoundError
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.events.schemas import ReadAdvancedEvent
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.participants import ParticipantResponse
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import require_participant
from rushr_messaging.timeutils import utc_now

logger = get_logger(__name__)


class MarkReadService:
    """Service for advancing a participant's read cursor."""

    def __init__(self, db: AsyncSession, broker: Optional[EventBroker] = None):
        self.db = db
        self.broker = broker or get_broker()
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.message_repo = MessageRepository(db)

    async def mark_read(
        self, conversation_id: UUID, user_id: UUID, up_to_message_id: UUID
    ) -> ParticipantResponse:
        """Mark everything up to ``up_to_message_id`` as read.

        The cursor only moves forward. Pointing it at an older or the
        same message leaves it where it is and still returns the current
        cursor.
        """
        try:
            await require_participant(
                self.conversation_repo, self.participant_repo, conversation_id, user_id
            )
            message = await self.message_repo.get_in_conversation(
                conversation_id, up_to_message_id
            )
            if message is None:
                raise NotFoundError(
                    f"Message {up_to_message_id} not found in conversation"
                )

            advanced = await self.participant_repo.advance_read_cursor(
                conversation_id, user_id, message.id, message.seq, utc_now()
            )
            participant = await self.participant_repo.get(conversation_id, user_id)
            response = self.participant_repo.to_response(participant)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if not advanced:
            return response

        logger.info(
            "read_cursor_advanced",
            conversation_id=str(conversation_id),
            user_id=str(user_id),
            seq=response.last_read_seq,
        )
        await self.broker.publish(
            ReadAdvancedEvent(
                conversation_id=conversation_id,
                user_id=user_id,
                last_read_message_id=response.last_read_message_id,
                last_read_seq=response.last_read_seq,
            )
        )
        return response
