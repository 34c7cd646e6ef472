from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.errors import (
    ForbiddenError,
    InvalidOfferError,
    InvalidTransitionError,
    NotFoundError,
)
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.events.schemas import OfferTransitionedEvent
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.offers import CounterFields, OfferResponse
from rushr_messaging.models.enums import OfferAction, OfferStatus
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.offer_repository import OfferRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import counterpart_of
from rushr_messaging.services.offer_state import (
    can_transition,
    is_terminal,
    is_valid_delivery_days,
    is_valid_price,
    next_status,
)
from rushr_messaging.timeutils import utc_now

logger = get_logger(__name__)


class RespondToOfferService:
    """Service for moving offers through their lifecycle."""

    def __init__(self, db: AsyncSession, broker: Optional[EventBroker] = None):
        self.db = db
        self.broker = broker or get_broker()
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.offer_repo = OfferRepository(db)

    async def respond_to_offer(
        self,
        offer_id: UUID,
        acting_user_id: UUID,
        action: OfferAction,
        counter_fields: Optional[CounterFields] = None,
    ) -> OfferResponse:
        """
        Accept, decline or counter an offer:

        1. Load the offer and reject terminal or withdrawn ones
        2. Check the actor may answer the offer in its current status
        3. Validate counter terms
        4. Compare-and-set the status; losing a race is an invalid transition
        5. Commit, then publish offer.transitioned
        """
        try:
            # Step 1: Load
            offer = await self.offer_repo.get_with_message(offer_id)
            if offer is None:
                raise NotFoundError(f"Offer {offer_id} not found")

            current = OfferStatus(offer.status)
            if is_terminal(current):
                raise InvalidTransitionError(f"Offer is already {current.value}")
            message = offer.message
            if message.deleted:
                raise InvalidTransitionError("Offer was withdrawn with its message")

            # Step 2: Authorize
            proposer_id = message.sender_id
            participant = await self.participant_repo.get(
                message.conversation_id, acting_user_id
            )
            if participant is None:
                raise ForbiddenError("Not a participant of this conversation")

            if current == OfferStatus.PENDING and acting_user_id == proposer_id:
                raise ForbiddenError("The proposer cannot answer their own offer")
            if current == OfferStatus.COUNTERED:
                if acting_user_id != proposer_id:
                    raise ForbiddenError("Only the proposer can answer a counter-offer")
                if action == OfferAction.COUNTER:
                    raise InvalidTransitionError("A counter-offer cannot be countered")

            target = next_status(current, action)
            if target is None:
                raise InvalidTransitionError(
                    f"Cannot {action.value} an offer that is {current.value}"
                )

            # Step 3: Validate counter terms
            counter = None
            if action == OfferAction.COUNTER:
                counter = self._validate_counter(counter_fields)

            # Step 4: Conditional update
            now = utc_now()
            changed = await self.offer_repo.transition(
                offer_id,
                expected=current,
                new=target,
                now=now,
                actor_id=acting_user_id,
                counter=counter,
            )
            if not changed:
                raise InvalidTransitionError("Offer was changed by another response")

            response = await self._load_response(offer_id)
            conversation = await self.conversation_repo.get_model(message.conversation_id)
            recipient_id = counterpart_of(conversation, acting_user_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        # Step 5: Publish
        logger.info(
            "offer_transitioned",
            offer_id=str(offer_id),
            conversation_id=str(response.conversation_id),
            previous_status=current.value,
            status=target.value,
        )
        await self.broker.publish(
            OfferTransitionedEvent(
                conversation_id=response.conversation_id,
                offer=response,
                previous_status=current,
                actor_id=acting_user_id,
                recipient_id=recipient_id,
            )
        )
        return response

    async def expire_offer(
        self, offer_id: UUID, now: Optional[datetime] = None
    ) -> Optional[OfferResponse]:
        """Expire an open offer.

        Returns:
            The expired offer, or None if it was already terminal or
            another writer got there first.
        """
        try:
            offer = await self.offer_repo.get_with_message(offer_id)
            if offer is None:
                raise NotFoundError(f"Offer {offer_id} not found")

            current = OfferStatus(offer.status)
            if not can_transition(current, OfferStatus.EXPIRED):
                await self.db.commit()
                return None

            changed = await self.offer_repo.transition(
                offer_id,
                expected=current,
                new=OfferStatus.EXPIRED,
                now=now or utc_now(),
            )
            if not changed:
                await self.db.commit()
                return None

            response = await self._load_response(offer_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "offer_expired",
            offer_id=str(offer_id),
            conversation_id=str(response.conversation_id),
            previous_status=current.value,
        )
        await self.broker.publish(
            OfferTransitionedEvent(
                conversation_id=response.conversation_id,
                offer=response,
                previous_status=current,
                recipient_id=response.proposer_id,
            )
        )
        return response

    async def expire_due_offers(
        self, now: Optional[datetime] = None, batch_size: int = 500
    ) -> List[OfferResponse]:
        """Expire every open offer whose expiry time has passed."""
        now = now or utc_now()
        offer_ids = await self.offer_repo.get_due_for_expiry(now, limit=batch_size)
        await self.db.commit()

        expired = []
        for offer_id in offer_ids:
            response = await self.expire_offer(offer_id, now=now)
            if response is not None:
                expired.append(response)

        logger.info("offers_expired", count=len(expired), candidates=len(offer_ids))
        return expired

    def _validate_counter(self, counter_fields: Optional[CounterFields]) -> CounterFields:
        if counter_fields is None:
            raise InvalidOfferError("Counter-offer terms are required")
        if not is_valid_price(counter_fields.counter_price):
            raise InvalidOfferError(
                "Counter price must be positive with at most two decimal places"
            )
        if not is_valid_delivery_days(counter_fields.counter_days):
            raise InvalidOfferError(
                "Counter delivery days must be a positive whole number"
            )
        return counter_fields

    async def _load_response(self, offer_id: UUID) -> OfferResponse:
        response = await self.offer_repo.get_by_id(offer_id)
        if response is None:
            raise NotFoundError(f"Offer {offer_id} not found")
        return response

