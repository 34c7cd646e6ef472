from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rushr_messaging.models.api.conversations import ConversationSummary
from rushr_messaging.models.db.conversation_model import ConversationModel
from rushr_messaging.models.db.participant_model import ParticipantModel
from rushr_messaging.repositories.conversation_repository import ConversationRepository
from rushr_messaging.repositories.message_repository import MessageRepository
from rushr_messaging.repositories.participant_repository import ParticipantRepository
from rushr_messaging.repositories.user_profile_repository import UserProfileRepository
from rushr_messaging.services.access import counterpart_of, require_participant
from rushr_messaging.services.message_preview import build_preview
from rushr_messaging.timeutils import as_utc


class ListConversationsService:
    """Service for a user's conversation directory."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.message_repo = MessageRepository(db)
        self.profile_repo = UserProfileRepository(db)

    async def list_conversations(
        self,
        user_id: UUID,
        limit: Optional[int] = 50,
        offset: Optional[int] = 0,
        include_archived: bool = True,
    ) -> List[ConversationSummary]:
        """
        List the user's conversations, most recent activity first:

        1. Retrieve conversations the user has not deleted for themselves
        2. Aggregate unread counts, message counts and latest messages
        3. Return summaries from the user's point of view
        """
        # Validate parameters
        if limit is not None and (limit <= 0 or limit > 1000):
            raise ValueError("Limit must be between 1 and 1000")
        if offset is not None and offset < 0:
            raise ValueError("Offset must be non-negative")

        # Use default values if None
        limit = limit or 50
        offset = offset or 0

        # Step 1: Get conversations from repository
        rows = await self.conversation_repo.list_for_user(
            user_id, limit=limit, offset=offset, include_archived=include_archived
        )

        # Step 2 and 3: Annotate
        return await self._summarize(user_id, rows)

    async def get_conversation_summary(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationSummary:
        """Get the directory entry for one conversation the user belongs to."""
        conversation, participant = await require_participant(
            self.conversation_repo, self.participant_repo, conversation_id, user_id
        )
        summaries = await self._summarize(user_id, [(conversation, participant)])
        return summaries[0]

    async def _summarize(
        self,
        user_id: UUID,
        rows: Sequence[Tuple[ConversationModel, ParticipantModel]],
    ) -> List[ConversationSummary]:
        if not rows:
            return []

        conversation_ids = [conversation.id for conversation, _ in rows]
        counterpart_ids = [counterpart_of(conversation, user_id) for conversation, _ in rows]

        unread = await self.message_repo.count_unread_by_conversation(
            user_id, conversation_ids
        )
        totals = await self.message_repo.count_by_conversation(conversation_ids)
        latest = await self.message_repo.get_latest_by_conversation(conversation_ids)
        names = await self.profile_repo.get_display_names(counterpart_ids)

        summaries = []
        for (conversation, participant), counterpart_id in zip(rows, counterpart_ids):
            last_message = latest.get(conversation.id)
            preview = (
                build_preview(self.message_repo.to_response(last_message))
                if last_message is not None
                else None
            )
            summaries.append(
                ConversationSummary(
                    id=conversation.id,
                    title=conversation.title,
                    job_ref=conversation.job_ref,
                    role=participant.role,
                    counterpart_id=counterpart_id,
                    counterpart_name=names.get(counterpart_id),
                    last_message_preview=preview,
                    last_activity_at=as_utc(conversation.last_activity_at),
                    unread_count=unread.get(conversation.id, 0),
                    message_count=totals.get(conversation.id, 0),
                    visibility=participant.visibility,
                )
            )
        return summaries
