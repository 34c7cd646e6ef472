from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rushr_messaging.models.api.messages import AttachmentResponse, MessageResponse
from rushr_messaging.models.db.attachment_model import AttachmentModel
from rushr_messaging.models.db.message_model import MessageModel
from rushr_messaging.models.db.offer_model import OfferModel
from rushr_messaging.models.db.participant_model import ParticipantModel
from rushr_messaging.repositories.base_repository import BaseRepository
from rushr_messaging.repositories.offer_repository import offer_to_response
from rushr_messaging.timeutils import as_utc


class MessageRepository(BaseRepository[MessageModel, MessageResponse]):
    """Repository for message operations.

    Messages are always returned in append order (``seq``), never by
    timestamp.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    def _select(self) -> Select:
        return super()._select().options(
            selectinload(MessageModel.attachments),
            selectinload(MessageModel.offer),
        )

    async def get_in_conversation(
        self, conversation_id: UUID, message_id: UUID
    ) -> Optional[MessageModel]:
        """Get a message only if it belongs to the given conversation."""
        query = self._select().where(
            self.model_class.id == message_id,
            self.model_class.conversation_id == conversation_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_window(
        self,
        conversation_id: UUID,
        limit: int = 100,
        before_seq: Optional[int] = None,
        after_seq: Optional[int] = None,
    ) -> List[MessageModel]:
        """Get a page of messages in ascending append order.

        With ``after_seq`` the first ``limit`` messages after it are
        returned; otherwise the latest ``limit`` messages (optionally
        before ``before_seq``).
        """
        query = self._select().where(self.model_class.conversation_id == conversation_id)

        if after_seq is not None:
            query = query.where(self.model_class.seq > after_seq)
            query = query.order_by(self.model_class.seq.asc()).limit(limit)
            result = await self.db.execute(query)
            return list(result.scalars().all())

        if before_seq is not None:
            query = query.where(self.model_class.seq < before_seq)
        query = query.order_by(self.model_class.seq.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(reversed(result.scalars().all()))

    async def count_by_conversation(
        self, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, int]:
        """Total messages per conversation."""
        if not conversation_ids:
            return {}
        query = (
            select(MessageModel.conversation_id, func.count(MessageModel.id))
            .where(MessageModel.conversation_id.in_(conversation_ids))
            .group_by(MessageModel.conversation_id)
        )
        result = await self.db.execute(query)
        return {row[0]: int(row[1]) for row in result.all()}

    async def count_unread_by_conversation(
        self, user_id: UUID, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, int]:
        """Messages past the user's read cursor that the user did not author."""
        if not conversation_ids:
            return {}
        query = (
            select(MessageModel.conversation_id, func.count(MessageModel.id))
            .join(
                ParticipantModel,
                (ParticipantModel.conversation_id == MessageModel.conversation_id)
                & (ParticipantModel.user_id == user_id),
            )
            .where(
                MessageModel.conversation_id.in_(conversation_ids),
                MessageModel.sender_id != user_id,
                MessageModel.seq > func.coalesce(ParticipantModel.last_read_seq, 0),
            )
            .group_by(MessageModel.conversation_id)
        )
        result = await self.db.execute(query)
        return {row[0]: int(row[1]) for row in result.all()}

    async def get_latest_by_conversation(
        self, conversation_ids: Sequence[UUID]
    ) -> Dict[UUID, MessageModel]:
        """Last appended message of each conversation."""
        if not conversation_ids:
            return {}
        latest = (
            select(
                MessageModel.conversation_id.label("conversation_id"),
                func.max(MessageModel.seq).label("seq"),
            )
            .where(MessageModel.conversation_id.in_(conversation_ids))
            .group_by(MessageModel.conversation_id)
            .subquery()
        )
        query = self._select().join(
            latest,
            (MessageModel.conversation_id == latest.c.conversation_id)
            & (MessageModel.seq == latest.c.seq),
        )
        result = await self.db.execute(query)
        return {message.conversation_id: message for message in result.scalars().all()}

    async def soft_delete(self, message_id: UUID, now: datetime) -> bool:
        """Flag a message as deleted; the row is kept."""
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.deleted.is_(False))
            .values(deleted=True, deleted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def get_purge_candidates(
        self, deleted_before: datetime, limit: int = 500
    ) -> List[MessageModel]:
        """Soft-deleted messages whose deletion is older than the cutoff."""
        query = (
            self._select()
            .where(
                MessageModel.deleted.is_(True),
                MessageModel.deleted_at.is_not(None),
                MessageModel.deleted_at < deleted_before,
            )
            .order_by(MessageModel.deleted_at)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def hard_delete(self, message_ids: Sequence[UUID]) -> int:
        """Physically remove messages with their attachments and offers.

        Replies pointing at removed messages keep existing with a null
        ``reply_to_id``.
        """
        if not message_ids:
            return 0
        await self.db.execute(
            update(MessageModel)
            .where(MessageModel.reply_to_id.in_(message_ids))
            .values(reply_to_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(AttachmentModel)
            .where(AttachmentModel.message_id.in_(message_ids))
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(OfferModel)
            .where(OfferModel.message_id.in_(message_ids))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            delete(MessageModel)
            .where(MessageModel.id.in_(message_ids))
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse.

        Content, attachments and offer terms of deleted messages are
        suppressed.
        """
        if db_model.deleted:
            content = None
            attachments: List[AttachmentResponse] = []
            offer = None
        else:
            content = db_model.content
            attachments = [
                AttachmentResponse(
                    id=attachment.id,
                    file_name=attachment.file_name,
                    url=attachment.url,
                    mime_type=attachment.mime_type,
                    size_bytes=attachment.size_bytes,
                )
                for attachment in db_model.attachments
            ]
            offer = (
                offer_to_response(db_model.offer, db_model)
                if db_model.offer is not None
                else None
            )

        return MessageResponse(
            id=db_model.id,
            conversation_id=db_model.conversation_id,
            sender_id=db_model.sender_id,
            kind=db_model.kind,
            seq=db_model.seq,
            content=content,
            attachments=attachments,
            offer=offer,
            reply_to_id=db_model.reply_to_id,
            deleted=db_model.deleted,
            created_at=as_utc(db_model.created_at),
        )
