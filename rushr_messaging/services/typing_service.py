from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging import config
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.events.schemas import TypingChangedEvent
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.participants import TypingResponse
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import require_participant
from rushr_messaging.timeutils import as_utc, utc_now

logger = get_logger(__name__)


def is_typing_active(
    is_typing: bool,
    typing_updated_at: Optional[datetime],
    now: datetime,
    ttl: timedelta,
) -> bool:
    """A typing flag counts only while it is fresher than ``ttl``."""
    if not is_typing or typing_updated_at is None:
        return False
    return now - as_utc(typing_updated_at) <= ttl


class TypingService:
    """Best-effort typing indicators."""

    def __init__(
        self,
        db: AsyncSession,
        broker: Optional[EventBroker] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.db = db
        self.broker = broker or get_broker()
        self.ttl = ttl or timedelta(seconds=config.TYPING_TTL_SECONDS)
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)

    async def set_typing(
        self, conversation_id: UUID, user_id: UUID, is_typing: bool
    ) -> None:
        try:
            await require_participant(
                self.conversation_repo, self.participant_repo, conversation_id, user_id
            )
            await self.participant_repo.set_typing(
                conversation_id, user_id, is_typing, utc_now()
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.debug(
            "typing_changed",
            conversation_id=str(conversation_id),
            user_id=str(user_id),
            is_typing=is_typing,
        )
        await self.broker.publish(
            TypingChangedEvent(
                conversation_id=conversation_id,
                user_id=user_id,
                is_typing=is_typing,
            )
        )

    async def get_typing(
        self, conversation_id: UUID, user_id: UUID, now: Optional[datetime] = None
    ) -> TypingResponse:
        """Counterparts currently typing, as seen by ``user_id``."""
        await require_participant(
            self.conversation_repo, self.participant_repo, conversation_id, user_id
        )
        participants = await self.participant_repo.get_by_conversation(conversation_id)
        now = now or utc_now()

        typing_user_ids: List[UUID] = [
            participant.user_id
            for participant in participants
            if participant.user_id != user_id
            and is_typing_active(
                participant.is_typing, participant.typing_updated_at, now, self.ttl
            )
        ]
        return TypingResponse(
            conversation_id=conversation_id, typing_user_ids=typing_user_ids
        )
