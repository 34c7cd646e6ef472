from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.errors import ForbiddenError, InvalidParticipantsError
from rushr_messaging.events.broker import EventBroker, get_broker
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.api.conversations import ConversationResponse
from rushr_messaging.models.api.messages import MessageResponse, TextPayload
from rushr_messaging.models.enums import ParticipantRole, Visibility
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.services.access import require_participant
from rushr_messaging.services.send_message_service import SendMessageService
from rushr_messaging.timeutils import utc_now

logger = get_logger(__name__)

DEFAULT_TITLE = "Conversation"


class ConversationDirectoryService:
    """Creates conversations and manages each participant's view of them."""

    def __init__(self, db: AsyncSession, broker: Optional[EventBroker] = None):
        self.db = db
        self.broker = broker or get_broker()
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)

    async def create_or_get(
        self,
        requester_id: UUID,
        provider_id: UUID,
        title: str,
        job_ref: Optional[UUID] = None,
    ) -> ConversationResponse:
        """Return the conversation for (requester, provider, job), creating it once.

        An existing conversation is returned unchanged; its title is never
        overwritten.
        """
        conversation, _ = await self._create_or_get(
            requester_id, provider_id, title, job_ref
        )
        return conversation

    async def start_conversation(
        self,
        acting_user_id: UUID,
        requester_id: UUID,
        provider_id: UUID,
        title: str,
        job_ref: Optional[UUID] = None,
        initial_message: Optional[str] = None,
    ) -> Tuple[ConversationResponse, Optional[MessageResponse]]:
        """Open a conversation on behalf of one of its parties.

        When ``initial_message`` has text it is sent from the acting user
        right after the conversation is resolved.
        """
        if acting_user_id not in (requester_id, provider_id):
            raise ForbiddenError("Only a party to the conversation can start it")

        conversation, _ = await self._create_or_get(
            requester_id, provider_id, title, job_ref
        )

        message = None
        if initial_message is not None and initial_message.strip():
            sender = SendMessageService(self.db, self.broker)
            message = await sender.send_message(
                conversation.id,
                acting_user_id,
                TextPayload(content=initial_message),
            )

        return conversation, message

    async def archive(self, conversation_id: UUID, acting_user_id: UUID) -> None:
        """Archive the conversation for the acting user only."""
        await self._change_visibility(
            conversation_id,
            acting_user_id,
            Visibility.ARCHIVED,
            only_from=Visibility.ACTIVE,
        )

    async def unarchive(self, conversation_id: UUID, acting_user_id: UUID) -> None:
        """Bring an archived conversation back; a deleted one stays deleted."""
        await self._change_visibility(
            conversation_id,
            acting_user_id,
            Visibility.ACTIVE,
            only_from=Visibility.ARCHIVED,
        )

    async def delete(self, conversation_id: UUID, acting_user_id: UUID) -> None:
        """Hide the conversation from the acting user's directory.

        The counterpart's view and all messages are left untouched.
        """
        await self._change_visibility(
            conversation_id, acting_user_id, Visibility.DELETED
        )

    async def _create_or_get(
        self,
        requester_id: UUID,
        provider_id: UUID,
        title: str,
        job_ref: Optional[UUID],
    ) -> Tuple[ConversationResponse, bool]:
        if requester_id == provider_id:
            raise InvalidParticipantsError()

        existing = await self.conversation_repo.get_by_parties(
            requester_id, provider_id, job_ref
        )
        if existing is not None:
            response = self.conversation_repo.to_response(existing)
            await self.db.commit()
            return response, False

        now = utc_now()
        try:
            conversation = await self.conversation_repo.create(
                requester_id=requester_id,
                provider_id=provider_id,
                title=(title or "").strip() or DEFAULT_TITLE,
                job_ref=job_ref,
                now=now,
            )
            await self.participant_repo.add_participant(
                conversation.id, requester_id, ParticipantRole.REQUESTER, now
            )
            await self.participant_repo.add_participant(
                conversation.id, provider_id, ParticipantRole.PROVIDER, now
            )
            response = self.conversation_repo.to_response(conversation)
            await self.db.commit()
        except IntegrityError:
            # Lost a creation race for the same triple: use the winner's row
            await self.db.rollback()
            existing = await self.conversation_repo.get_by_parties(
                requester_id, provider_id, job_ref
            )
            if existing is None:
                raise
            response = self.conversation_repo.to_response(existing)
            await self.db.commit()
            return response, False
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "conversation_created",
            conversation_id=str(response.id),
            requester_id=str(requester_id),
            provider_id=str(provider_id),
            job_ref=str(job_ref) if job_ref else None,
        )
        return response, True

    async def _change_visibility(
        self,
        conversation_id: UUID,
        user_id: UUID,
        visibility: Visibility,
        only_from: Optional[Visibility] = None,
    ) -> None:
        try:
            await require_participant(
                self.conversation_repo,
                self.participant_repo,
                conversation_id,
                user_id,
            )
            changed = await self.participant_repo.set_visibility(
                conversation_id, user_id, visibility, utc_now(), only_from=only_from
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "conversation_visibility_changed",
            conversation_id=str(conversation_id),
            visibility=visibility.value,
            changed=changed,
        )
