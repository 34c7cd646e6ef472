from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.models.api.participants import ParticipantResponse
from rushr_messaging.models.db.participant_model import ParticipantModel
from rushr_messaging.models.enums import ParticipantRole, Visibility
from rushr_messaging.repositories.base_repository import BaseRepository
from rushr_messaging.timeutils import as_utc


class ParticipantRepository(BaseRepository[ParticipantModel, ParticipantResponse]):
    """Repository for per-user conversation state."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ParticipantModel)

    async def get(
        self, conversation_id: UUID, user_id: UUID
    ) -> Optional[ParticipantModel]:
        """Get one user's state row in a conversation."""
        query = self._select().where(
            self.model_class.conversation_id == conversation_id,
            self.model_class.user_id == user_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_conversation(
        self, conversation_id: UUID
    ) -> List[ParticipantModel]:
        """Get both participant rows for a conversation."""
        query = self._select().where(
            self.model_class.conversation_id == conversation_id
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add_participant(
        self,
        conversation_id: UUID,
        user_id: UUID,
        role: ParticipantRole,
        now: datetime,
    ) -> ParticipantModel:
        """Stage a participant row with an unset read cursor."""
        db_model = ParticipantModel(
            conversation_id=conversation_id,
            user_id=user_id,
            role=role.value,
            is_typing=False,
            visibility=Visibility.ACTIVE.value,
            joined_at=now,
        )
        return await self.add(db_model)

    async def advance_read_cursor(
        self,
        conversation_id: UUID,
        user_id: UUID,
        message_id: UUID,
        seq: int,
        now: datetime,
    ) -> bool:
        """Move the read cursor forward only.

        Returns:
            True if the cursor moved, False if it already pointed at or
            past ``seq``.
        """
        stmt = (
            update(ParticipantModel)
            .where(
                ParticipantModel.conversation_id == conversation_id,
                ParticipantModel.user_id == user_id,
                or_(
                    ParticipantModel.last_read_seq.is_(None),
                    ParticipantModel.last_read_seq < seq,
                ),
            )
            .values(
                last_read_message_id=message_id,
                last_read_seq=seq,
                last_read_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def set_typing(
        self, conversation_id: UUID, user_id: UUID, is_typing: bool, now: datetime
    ) -> bool:
        """Last-write-wins typing flag."""
        stmt = (
            update(ParticipantModel)
            .where(
                ParticipantModel.conversation_id == conversation_id,
                ParticipantModel.user_id == user_id,
            )
            .values(is_typing=is_typing, typing_updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def set_visibility(
        self,
        conversation_id: UUID,
        user_id: UUID,
        visibility: Visibility,
        now: datetime,
        only_from: Optional[Visibility] = None,
    ) -> bool:
        """Change one user's archive/delete overlay.

        Args:
            only_from: When given, the change applies only if the current
                overlay equals this value.
        """
        conditions = [
            ParticipantModel.conversation_id == conversation_id,
            ParticipantModel.user_id == user_id,
        ]
        if only_from is not None:
            conditions.append(ParticipantModel.visibility == only_from.value)

        stmt = (
            update(ParticipantModel)
            .where(*conditions)
            .values(visibility=visibility.value, visibility_changed_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    def _to_pydantic(self, db_model: Any) -> ParticipantResponse:
        """Convert SQLAlchemy ParticipantModel to Pydantic ParticipantResponse."""
        return ParticipantResponse(
            conversation_id=db_model.conversation_id,
            user_id=db_model.user_id,
            role=db_model.role,
            last_read_message_id=db_model.last_read_message_id,
            last_read_seq=db_model.last_read_seq,
            last_read_at=as_utc(db_model.last_read_at),
            visibility=db_model.visibility,
            joined_at=as_utc(db_model.joined_at),
        )
