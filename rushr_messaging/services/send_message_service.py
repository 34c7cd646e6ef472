from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.errors import EmptyPayloadError, InvalidOfferError, NotFoundError
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.events.schemas import MessageAppendedEvent
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.messages import (
    AttachmentIn,
    FilePayload,
    MessagePayload,
    MessageResponse,
    OfferPayload,
    SystemPayload,
    TextPayload,
)
from rushr_messaging.models.api.offers import OfferFields
from rushr_messaging.models.db.message_model import MessageModel
from rushr_messaging.models.enums import MessageKind
from rushr_messaging.repositories.attachment_repository import AttachmentRepository
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.repositories.offer_repository import OfferRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import counterpart_of, require_participant
from rushr_messaging.services.offer_state import is_valid_delivery_days, is_valid_price
from rushr_messaging.timeutils import as_utc, utc_now

logger = get_logger(__name__)


class SendMessageService:
    """Service for appending messages and offers to a conversation."""

    def __init__(self, db: AsyncSession, broker: Optional[EventBroker] = None):
        self.db = db
        self.broker = broker or get_broker()
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.message_repo = MessageRepository(db)
        self.attachment_repo = AttachmentRepository(db)
        self.offer_repo = OfferRepository(db)

    async def send_message(
        self, conversation_id: UUID, sender_id: UUID, payload: MessagePayload
    ) -> MessageResponse:
        """
        Main business logic for sending a message:
        1. Validate the payload for its kind
        2. Check the sender is a participant
        3. Claim the next sequence number and append the message
        4. Commit, then publish message.appended
        """
        if isinstance(payload, OfferPayload):
            return await self.send_offer(conversation_id, sender_id, payload.offer)

        # Step 1: Validate before touching the store
        kind, content, attachments, reply_to_id = self._validate_payload(payload)

        try:
            # Step 2: Authorize
            conversation, _ = await require_participant(
                self.conversation_repo,
                self.participant_repo,
                conversation_id,
                sender_id,
            )
            if reply_to_id is not None:
                await self._require_reply_target(conversation_id, reply_to_id)

            # Step 3: Append
            message = await self._append(
                conversation_id=conversation_id,
                sender_id=sender_id,
                kind=kind,
                content=content,
                reply_to_id=reply_to_id,
            )
            if attachments:
                await self.attachment_repo.add_many(
                    message.id, attachments, message.created_at
                )

            response = await self._load_response(message.id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        # Step 4: Fan out after the append is durable
        logger.info(
            "message_appended",
            conversation_id=str(conversation_id),
            message_id=str(response.id),
            kind=kind.value,
            seq=response.seq,
        )
        await self.broker.publish(
            MessageAppendedEvent(
                conversation_id=conversation_id,
                message=response,
                recipient_id=counterpart_of(conversation, sender_id),
            )
        )
        return response

    async def send_offer(
        self, conversation_id: UUID, sender_id: UUID, fields: OfferFields
    ) -> MessageResponse:
        """Append an offer message carrying a pending Offer."""
        self._validate_offer(fields)

        try:
            conversation, _ = await require_participant(
                self.conversation_repo,
                self.participant_repo,
                conversation_id,
                sender_id,
            )

            message = await self._append(
                conversation_id=conversation_id,
                sender_id=sender_id,
                kind=MessageKind.OFFER,
                content=fields.title.strip(),
                reply_to_id=None,
            )
            await self.offer_repo.create(message.id, fields, message.created_at)

            response = await self._load_response(message.id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "offer_sent",
            conversation_id=str(conversation_id),
            message_id=str(response.id),
            offer_id=str(response.offer.id) if response.offer else None,
            seq=response.seq,
        )
        await self.broker.publish(
            MessageAppendedEvent(
                conversation_id=conversation_id,
                message=response,
                recipient_id=counterpart_of(conversation, sender_id),
            )
        )
        return response

    def _validate_payload(
        self, payload: MessagePayload
    ) -> Tuple[MessageKind, Optional[str], List[AttachmentIn], Optional[UUID]]:
        """Normalize a payload into (kind, content, attachments, reply_to_id)."""
        if isinstance(payload, TextPayload):
            content = (payload.content or "").strip()
            if not content:
                raise EmptyPayloadError("Text message content is empty")
            self._validate_attachments(payload.attachments)
            return MessageKind.TEXT, content, list(payload.attachments), payload.reply_to_id

        if isinstance(payload, FilePayload):
            if not payload.attachments:
                raise EmptyPayloadError("File message requires at least one attachment")
            self._validate_attachments(payload.attachments)
            caption = (payload.content or "").strip() or None
            return MessageKind.FILE, caption, list(payload.attachments), payload.reply_to_id

        if isinstance(payload, SystemPayload):
            content = (payload.content or "").strip()
            if not content:
                raise EmptyPayloadError("System message content is empty")
            return MessageKind.SYSTEM, content, [], None

        raise EmptyPayloadError("Unsupported message kind")

    def _validate_attachments(self, attachments: Sequence[AttachmentIn]) -> None:
        for attachment in attachments:
            if not attachment.url.strip() or not attachment.file_name.strip():
                raise EmptyPayloadError("Attachment requires a file name and url")
            if attachment.size_bytes is not None and attachment.size_bytes < 0:
                raise EmptyPayloadError("Attachment size cannot be negative")

    def _validate_offer(self, fields: OfferFields) -> None:
        if not fields.title.strip():
            raise InvalidOfferError("Offer title is required")
        if not is_valid_price(fields.price):
            raise InvalidOfferError(
                "Offer price must be positive with at most two decimal places"
            )
        if not is_valid_delivery_days(fields.delivery_days):
            raise InvalidOfferError(
                "Offer delivery days must be a positive whole number"
            )
        expires_at = as_utc(fields.expires_at)
        if expires_at is not None and expires_at <= utc_now():
            raise InvalidOfferError("Offer expiry must be in the future")

    async def _require_reply_target(
        self, conversation_id: UUID, reply_to_id: UUID
    ) -> None:
        target = await self.message_repo.get_in_conversation(
            conversation_id, reply_to_id
        )
        if target is None:
            raise NotFoundError(f"Message {reply_to_id} not found in conversation")

    async def _append(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        kind: MessageKind,
        content: Optional[str],
        reply_to_id: Optional[UUID],
    ) -> MessageModel:
        """Insert a message at the next sequence position.

        The message is stamped with the time taken under the sequence
        claim, which also becomes the conversation's last activity.
        """
        claimed = await self.conversation_repo.assign_next_seq(conversation_id)
        if claimed is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        seq, now = claimed

        message = MessageModel(
            conversation_id=conversation_id,
            sender_id=sender_id,
            kind=kind.value,
            content=content,
            reply_to_id=reply_to_id,
            seq=seq,
            deleted=False,
            created_at=now,
            updated_at=now,
        )
        return await self.message_repo.add(message)

    async def _load_response(self, message_id: UUID) -> MessageResponse:
        response = await self.message_repo.get_by_id(message_id)
        if response is None:
            raise NotFoundError(f"Message {message_id} not found")
        return response
