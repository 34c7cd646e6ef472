from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rushr_messaging.models.api.offers import CounterFields, OfferFields, OfferResponse
from rushr_messaging.models.db.message_model import MessageModel
from rushr_messaging.models.db.offer_model import OfferModel
from rushr_messaging.models.enums import OfferStatus
from rushr_messaging.repositories.base_repository import BaseRepository
from rushr_messaging.timeutils import as_utc


def offer_to_response(offer: Any, message: Any) -> OfferResponse:
    """Convert an OfferModel and its owning MessageModel to OfferResponse."""
    return OfferResponse(
        id=offer.id,
        message_id=offer.message_id,
        conversation_id=message.conversation_id,
        proposer_id=message.sender_id,
        title=offer.title,
        price=offer.price,
        delivery_days=offer.delivery_days,
        notes=offer.notes,
        status=offer.status,
        counter_price=offer.counter_price,
        counter_days=offer.counter_days,
        counter_notes=offer.counter_notes,
        expires_at=as_utc(offer.expires_at),
        responded_by=offer.responded_by,
        responded_at=as_utc(offer.responded_at),
        created_at=as_utc(offer.created_at),
        updated_at=as_utc(offer.updated_at),
    )


class OfferRepository(BaseRepository[OfferModel, OfferResponse]):
    """Repository for offer operations.

    Status changes go through ``transition``, a conditional update that
    only succeeds while the row still holds the expected status. This is
    what makes concurrent responses safe without application locks.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, OfferModel)

    def _select(self) -> Select:
        return super()._select().options(selectinload(OfferModel.message))

    async def create(
        self, message_id: UUID, fields: OfferFields, now: datetime
    ) -> OfferModel:
        """Stage a pending offer for an offer message."""
        db_model = OfferModel(
            message_id=message_id,
            title=fields.title.strip(),
            price=fields.price,
            delivery_days=fields.delivery_days,
            notes=fields.notes,
            status=OfferStatus.PENDING.value,
            expires_at=fields.expires_at,
            created_at=now,
            updated_at=now,
        )
        return await self.add(db_model)

    async def transition(
        self,
        offer_id: UUID,
        expected: OfferStatus,
        new: OfferStatus,
        now: datetime,
        actor_id: Optional[UUID] = None,
        counter: Optional[CounterFields] = None,
    ) -> bool:
        """Compare-and-set the offer status.

        Returns:
            True if this call performed the transition, False if the
            status no longer matched ``expected``.
        """
        values = {
            "status": new.value,
            "updated_at": now,
            "responded_by": actor_id,
            "responded_at": now,
        }
        if counter is not None:
            values["counter_price"] = counter.counter_price
            values["counter_days"] = counter.counter_days
            values["counter_notes"] = counter.counter_notes

        stmt = (
            update(OfferModel)
            .where(OfferModel.id == offer_id, OfferModel.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def get_due_for_expiry(self, now: datetime, limit: int = 500) -> List[UUID]:
        """Ids of open offers whose expiry time has passed."""
        query = (
            select(OfferModel.id)
            .where(
                OfferModel.status.in_(
                    [OfferStatus.PENDING.value, OfferStatus.COUNTERED.value]
                ),
                OfferModel.expires_at.is_not(None),
                OfferModel.expires_at <= now,
            )
            .order_by(OfferModel.expires_at)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_with_message(self, offer_id: UUID) -> Optional[OfferModel]:
        """Get an offer with its owning message loaded."""
        return await self.get_model(offer_id)

    def _to_pydantic(self, db_model: Any) -> OfferResponse:
        """Convert SQLAlchemy OfferModel to Pydantic OfferResponse."""
        return offer_to_response(db_model, db_model.message)
