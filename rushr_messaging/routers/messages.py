from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.database import get_db
from rushr_messaging.dependencies import get_current_user_id
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.services.delete_message_service import DeleteMessageService
from rushr_messaging.services.get_conversation_messages_service import (
    GetConversationMessagesService,
)

router = APIRouter()


@router.get("/{message_id}", response_model=MessageResponse)
async def get_message(
    message_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Get a single message visible to the caller."""
    service = GetConversationMessagesService(db)
    return await service.get_message_details(message_id, user_id)


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> MessageResponse:
    """Delete one of the caller's messages within the undo window."""
    service = DeleteMessageService(db, broker)
    return await service.delete_message(message_id, user_id)
