from datetime import datetime
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.models.api.conversations import ConversationResponse
from rushr_messaging.models.db.conversation_model import ConversationModel
from rushr_messaging.models.db.participant_model import ParticipantModel
from rushr_messaging.models.enums import Visibility
from rushr_messaging.repositories.base_repository import BaseRepository
from rushr_messaging.timeutils import as_utc, utc_now


def job_scope_for(job_ref: Optional[UUID]) -> str:
    """Uniqueness key component for an optional job reference."""
    return str(job_ref) if job_ref else ""


class ConversationRepository(BaseRepository[ConversationModel, ConversationResponse]):
    """Repository for conversation operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ConversationModel)

    async def get_by_parties(
        self, requester_id: UUID, provider_id: UUID, job_ref: Optional[UUID]
    ) -> Optional[ConversationModel]:
        """Find the conversation for a (requester, provider, job) triple."""
        query = self._select().where(
            self.model_class.requester_id == requester_id,
            self.model_class.provider_id == provider_id,
            self.model_class.job_scope == job_scope_for(job_ref),
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        requester_id: UUID,
        provider_id: UUID,
        title: str,
        job_ref: Optional[UUID],
        now: datetime,
    ) -> ConversationModel:
        """Stage a new conversation row."""
        db_model = ConversationModel(
            requester_id=requester_id,
            provider_id=provider_id,
            title=title,
            job_ref=job_ref,
            job_scope=job_scope_for(job_ref),
            status="active",
            next_seq=1,
            last_activity_at=now,
            created_at=now,
            updated_at=now,
        )
        return await self.add(db_model)

    async def assign_next_seq(
        self, conversation_id: UUID
    ) -> Optional[Tuple[int, datetime]]:
        """Atomically claim the next append position for a conversation.

        The first UPDATE increments ``next_seq`` and locks the row until
        the surrounding transaction ends. The append timestamp is read
        only after that, clamped to the previous ``last_activity_at``, so
        timestamps never decrease along ``seq``.

        Returns:
            ``(seq, appended_at)`` for the new message, or None if the
            conversation does not exist.
        """
        claim = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(next_seq=ConversationModel.next_seq + 1)
            .returning(ConversationModel.next_seq, ConversationModel.last_activity_at)
            .execution_options(synchronize_session=False)
        )
        row = (await self.db.execute(claim)).one_or_none()
        if row is None:
            return None
        new_next_seq, last_activity_at = row

        appended_at = utc_now()
        previous = as_utc(last_activity_at)
        if previous is not None and previous > appended_at:
            appended_at = previous

        touch = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_activity_at=appended_at, updated_at=appended_at)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(touch)
        return int(new_next_seq) - 1, appended_at

    async def list_for_user(
        self,
        user_id: UUID,
        limit: int = 50,
        offset: int = 0,
        include_archived: bool = True,
    ) -> List[Tuple[ConversationModel, ParticipantModel]]:
        """List a user's conversations with their own participant row.

        Conversations the user deleted for themselves are never returned.
        Ordered by most recent activity first.
        """
        hidden = [Visibility.DELETED.value]
        if not include_archived:
            hidden.append(Visibility.ARCHIVED.value)

        query = (
            select(ConversationModel, ParticipantModel)
            .execution_options(populate_existing=True)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .where(
                ParticipantModel.user_id == user_id,
                ParticipantModel.visibility.not_in(hidden),
            )
            .order_by(
                ConversationModel.last_activity_at.desc(), ConversationModel.id
            )
            .limit(limit)
            .offset(offset)
        )
        result = await self.db.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    def _to_pydantic(self, db_model: Any) -> ConversationResponse:
        """Convert SQLAlchemy ConversationModel to Pydantic ConversationResponse."""
        return ConversationResponse(
            id=db_model.id,
            requester_id=db_model.requester_id,
            provider_id=db_model.provider_id,
            title=db_model.title,
            job_ref=db_model.job_ref,
            status=db_model.status,
            last_activity_at=as_utc(db_model.last_activity_at),
            created_at=as_utc(db_model.created_at),
            updated_at=as_utc(db_model.updated_at),
        )
