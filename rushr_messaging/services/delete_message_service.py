from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging import config
from rushr_messaging.errors import ForbiddenError, NotFoundError, WindowExpiredError
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.events.schemas import MessageDeletedEvent
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.timeutils import as_utc, utc_now

logger = get_logger(__name__)


class DeleteMessageService:
    """Service for soft-deleting a message within the undo window."""

    def __init__(
        self,
        db: AsyncSession,
        broker: Optional[EventBroker] = None,
        undo_window: Optional[timedelta] = None,
    ):
        self.db = db
        self.broker = broker or get_broker()
        self.undo_window = undo_window or timedelta(hours=config.UNDO_WINDOW_HOURS)
        self.message_repo = MessageRepository(db)

    async def delete_message(
        self, message_id: UUID, acting_user_id: UUID
    ) -> MessageResponse:
        """
        Delete a message on behalf of its author:

        1. Only the author may delete
        2. Deleting an already deleted message succeeds without changes
        3. Past the undo window the message can no longer be deleted
        """
        try:
            message = await self.message_repo.get_model(message_id)
            if message is None:
                raise NotFoundError(f"Message {message_id} not found")
            if message.sender_id != acting_user_id:
                raise ForbiddenError("Only the author can delete a message")

            if message.deleted:
                response = self.message_repo.to_response(message)
                await self.db.commit()
                return response

            now = utc_now()
            if now - as_utc(message.created_at) > self.undo_window:
                raise WindowExpiredError()

            deleted = await self.message_repo.soft_delete(message_id, now)
            response = await self.message_repo.get_by_id(message_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if not deleted:
            # A concurrent delete of the same message already published
            return response

        logger.info(
            "message_deleted",
            conversation_id=str(response.conversation_id),
            message_id=str(message_id),
            seq=response.seq,
        )
        await self.broker.publish(
            MessageDeletedEvent(
                conversation_id=response.conversation_id,
                message_id=message_id,
                deleted_by=acting_user_id,
            )
        )
        return response
