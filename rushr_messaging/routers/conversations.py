import asyncio
import contextlib
from typing import List, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.database import get_db
from rushr_messaging.dependencies import (
    USER_ID_HEADER,
    get_current_user_id,
    parse_user_id,
)
from rushr_messaging.errors import MessagingError
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.conversations import (
    ConversationSummary,
    CreateConversationRequest,
)
from rushr_messaging.models.api.messages import MessageResponse, SendMessageRequest
from rushr_messaging.models.api.offers import OfferFields
from rushr_messaging.models.api.participants import (
    MarkReadRequest,
    ParticipantResponse,
    TypingRequest,
    TypingResponse,
)
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import require_participant
from rushr_messaging.services.conversation_directory_service import (
    ConversationDirectoryService,
)
from rushr_messaging.services.get_conversation_messages_service import (
    GetConversationMessagesService,
)
from rushr_messaging.services.list_conversations_service import ListConversationsService
from rushr_messaging.services.mark_read_service import MarkReadService
from rushr_messaging.services.send_message_service import SendMessageService
from rushr_messaging.services.typing_service import TypingService

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    limit: Optional[int] = Query(
        50, description="Maximum number of conversations to return", ge=1, le=1000
    ),
    offset: Optional[int] = Query(
        0, description="Number of conversations to skip", ge=0
    ),
    include_archived: bool = Query(
        True, description="Include conversations the user archived"
    ),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationSummary]:
    """
    List the caller's conversations, most recent activity first.

    Query parameters:
    - limit: Maximum number of conversations to return (default: 50, max: 1000)
    - offset: Number of conversations to skip (default: 0)
    - include_archived: Whether archived conversations are listed (default: true)
    """
    try:
        service = ListConversationsService(db)
        return await service.list_conversations(
            user_id, limit=limit, offset=offset, include_archived=include_archived
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("", response_model=ConversationSummary)
async def start_conversation(
    request: CreateConversationRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> ConversationSummary:
    """Create the conversation for a requester, provider and job, or return it."""
    directory = ConversationDirectoryService(db, broker)
    conversation, _ = await directory.start_conversation(
        acting_user_id=user_id,
        requester_id=request.requester_id,
        provider_id=request.provider_id,
        title=request.title,
        job_ref=request.job_ref,
        initial_message=request.initial_message,
    )
    service = ListConversationsService(db)
    return await service.get_conversation_summary(conversation.id, user_id)


@router.get("/{conversation_id}", response_model=ConversationSummary)
async def get_conversation(
    conversation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ConversationSummary:
    """
    Get the caller's view of a specific conversation.

    Path parameters:
    - conversation_id: UUID of the conversation
    """
    service = ListConversationsService(db)
    return await service.get_conversation_summary(conversation_id, user_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_conversation_messages(
    conversation_id: UUID,
    limit: Optional[int] = Query(
        100, description="Maximum number of messages to return", ge=1, le=1000
    ),
    before_seq: Optional[int] = Query(
        None, description="Only messages appended before this position", ge=1
    ),
    after_seq: Optional[int] = Query(
        None, description="Only messages appended after this position", ge=0
    ),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[MessageResponse]:
    """
    Get a window of messages in append order.

    Query parameters:
    - limit: Maximum number of messages to return (default: 100, max: 1000)
    - before_seq: Page backwards from this position
    - after_seq: Catch up from this position
    """
    try:
        service = GetConversationMessagesService(db)
        return await service.get_conversation_messages(
            conversation_id,
            user_id,
            limit=limit,
            before_seq=before_seq,
            after_seq=after_seq,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    conversation_id: UUID,
    request: SendMessageRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> MessageResponse:
    """Append a text, file, system or offer message."""
    service = SendMessageService(db, broker)
    return await service.send_message(conversation_id, user_id, request.root)


@router.post(
    "/{conversation_id}/offers",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_offer(
    conversation_id: UUID,
    fields: OfferFields,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> MessageResponse:
    """Append an offer message with a pending offer."""
    service = SendMessageService(db, broker)
    return await service.send_offer(conversation_id, user_id, fields)


@router.post("/{conversation_id}/read", response_model=ParticipantResponse)
async def mark_read(
    conversation_id: UUID,
    request: MarkReadRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> ParticipantResponse:
    """Advance the caller's read cursor."""
    service = MarkReadService(db, broker)
    return await service.mark_read(conversation_id, user_id, request.up_to_message_id)


@router.put("/{conversation_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
async def set_typing(
    conversation_id: UUID,
    request: TypingRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> Response:
    service = TypingService(db, broker)
    await service.set_typing(conversation_id, user_id, request.is_typing)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/typing", response_model=TypingResponse)
async def get_typing(
    conversation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TypingResponse:
    service = TypingService(db)
    return await service.get_typing(conversation_id, user_id)


@router.post("/{conversation_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
async def archive_conversation(
    conversation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Archive the conversation for the caller only."""
    await ConversationDirectoryService(db).archive(conversation_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{conversation_id}/unarchive", status_code=status.HTTP_204_NO_CONTENT)
async def unarchive_conversation(
    conversation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await ConversationDirectoryService(db).unarchive(conversation_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Remove the conversation from the caller's directory."""
    await ConversationDirectoryService(db).delete(conversation_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/{conversation_id}/events")
async def conversation_events(
    websocket: WebSocket,
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    broker: EventBroker = Depends(get_broker),
) -> None:
    """
    Stream domain events of one conversation to a participant.

    The user id is read from the X-User-Id header, or from the ``user_id``
    query parameter for clients that cannot set headers.
    """
    user_id = parse_user_id(
        websocket.headers.get(USER_ID_HEADER) or websocket.query_params.get("user_id")
    )
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        await require_participant(
            ConversationRepository(db),
            ParticipantRepository(db),
            conversation_id,
            user_id,
        )
    except MessagingError as e:
        logger.info(
            "event_stream_rejected",
            conversation_id=str(conversation_id),
            code=e.code.value,
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        await db.close()

    async with broker.subscribe(conversation_id) as subscription:
        await websocket.accept()
        logger.info("event_stream_opened", conversation_id=str(conversation_id))

        async def forward_events() -> None:
            async for event in subscription:
                await websocket.send_json(event.model_dump(mode="json"))

        forwarder = asyncio.create_task(forward_events())
        try:
            # Inbound frames are ignored; the loop only watches for disconnect
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        finally:
            forwarder.cancel()
            with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
                await forwarder
            logger.info("event_stream_closed", conversation_id=str(conversation_id))
