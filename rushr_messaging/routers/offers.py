from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.database import get_db
from rushr_messaging.dependencies import get_current_user_id
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.models.api.offers import OfferResponse, RespondToOfferRequest
from rushr_messaging.services.get_conversation_messages_service import (
    GetConversationMessagesService,
)
from rushr_messaging.services.respond_to_offer_service import RespondToOfferService

router = APIRouter()


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OfferResponse:
    service = GetConversationMessagesService(db)
    return await service.get_offer(offer_id, user_id)


@router.post("/{offer_id}/respond", response_model=OfferResponse)
async def respond_to_offer(
    offer_id: UUID,
    request: RespondToOfferRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> OfferResponse:
    """Accept, decline or counter an offer."""
    service = RespondToOfferService(db, broker)
    return await service.respond_to_offer(
        offer_id, user_id, request.action, request.counter_fields()
    )
