from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from rushr_messaging.errors import ForbiddenError, NotFoundError
from rushr_messaging.models.api.messages import TextPayload
from rushr_messaging.models.api.offers import OfferFields
from rushr_messaging.models.db.user_profile_model import UserProfileModel
from rushr_messaging.models.enums import ParticipantRole, Visibility
from rushr_messaging.services.conversation_directory_service import (
    ConversationDirectoryService,
)
from rushr_messaging.services.delete_message_service import DeleteMessageService
from rushr_messaging.services.list_conversations_service import ListConversationsService
from rushr_messaging.services.mark_read_service import MarkReadService
from rushr_messaging.services.send_message_service import SendMessageService


class TestListConversationsValidation:
    """Unit tests for parameter validation."""

    @pytest.fixture
    def service(self, mock_db: AsyncMock) -> ListConversationsService:
        """ListConversationsService instance."""
        return ListConversationsService(mock_db)

    @pytest.mark.parametrize("limit", [0, -1, 1001])
    async def test_invalid_limit(self, service: ListConversationsService, limit) -> None:
        with pytest.raises(ValueError, match="Limit must be between 1 and 1000"):
            await service.list_conversations(uuid4(), limit=limit)

    async def test_negative_offset(self, service: ListConversationsService) -> None:
        with pytest.raises(ValueError, match="Offset must be non-negative"):
            await service.list_conversations(uuid4(), offset=-1)


class TestListConversationsService:
    """Integration tests for the conversation directory."""

    async def test_unread_counts_follow_the_read_cursor(
        self, test_db, broker, parties
    ) -> None:
        sender = SendMessageService(test_db, broker)
        messages = [
            await sender.send_message(
                parties.conversation_id, parties.provider_id, TextPayload(content=f"m{i}")
            )
            for i in range(3)
        ]
        await sender.send_message(
            parties.conversation_id, parties.requester_id, TextPayload(content="mine")
        )
        service = ListConversationsService(test_db)

        [before] = await service.list_conversations(parties.requester_id)
        assert before.unread_count == 3
        assert before.message_count == 4

        await MarkReadService(test_db, broker).mark_read(
            parties.conversation_id, parties.requester_id, messages[1].id
        )

        [after] = await service.list_conversations(parties.requester_id)
        assert after.unread_count == 1

        [provider_view] = await service.list_conversations(parties.provider_id)
        assert provider_view.unread_count == 1

    async def test_summary_is_from_the_callers_point_of_view(
        self, test_db, broker, parties
    ) -> None:
        test_db.add(UserProfileModel(id=parties.provider_id, name="Ace Plumbing"))
        test_db.add(
            UserProfileModel(id=parties.requester_id, name=None, email="jo@example.com")
        )
        await test_db.commit()
        service = ListConversationsService(test_db)

        [requester_view] = await service.list_conversations(parties.requester_id)
        [provider_view] = await service.list_conversations(parties.provider_id)

        assert requester_view.role == ParticipantRole.REQUESTER
        assert requester_view.counterpart_id == parties.provider_id
        assert requester_view.counterpart_name == "Ace Plumbing"
        assert provider_view.role == ParticipantRole.PROVIDER
        assert provider_view.counterpart_name == "jo@example.com"

    async def test_unknown_profile_has_no_name(self, test_db, parties) -> None:
        [summary] = await ListConversationsService(test_db).list_conversations(
            parties.requester_id
        )
        assert summary.counterpart_name is None
        assert summary.last_message_preview is None

    async def test_most_recent_activity_first(
        self, test_db, broker
    ) -> None:
        requester_id = uuid4()
        directory = ConversationDirectoryService(test_db, broker)
        sender = SendMessageService(test_db, broker)
        older = await directory.create_or_get(requester_id, uuid4(), "Fix sink")
        newer = await directory.create_or_get(requester_id, uuid4(), "Paint fence")

        await sender.send_message(older.id, requester_id, TextPayload(content="bump"))

        summaries = await ListConversationsService(test_db).list_conversations(
            requester_id
        )
        assert [s.id for s in summaries] == [older.id, newer.id]

    async def test_pagination(self, test_db, broker) -> None:
        requester_id = uuid4()
        directory = ConversationDirectoryService(test_db, broker)
        for i in range(3):
            await directory.create_or_get(requester_id, uuid4(), f"Job {i}")
        service = ListConversationsService(test_db)

        page = await service.list_conversations(requester_id, limit=2, offset=2)

        assert len(page) == 1

    async def test_previews(self, test_db, broker, parties) -> None:
        sender = SendMessageService(test_db, broker)
        service = ListConversationsService(test_db)

        await sender.send_message(
            parties.conversation_id,
            parties.requester_id,
            TextPayload(content="Hi,\n  my sink   leaks"),
        )
        [summary] = await service.list_conversations(parties.requester_id)
        assert summary.last_message_preview == "Hi, my sink leaks"

        offer_message = await sender.send_offer(
            parties.conversation_id,
            parties.provider_id,
            OfferFields(title="Diagnostic Visit", price=Decimal("120"), delivery_days=1),
        )
        [summary] = await service.list_conversations(parties.requester_id)
        assert summary.last_message_preview == "Offer: Diagnostic Visit"

        await DeleteMessageService(test_db, broker).delete_message(
            offer_message.id, parties.provider_id
        )
        [summary] = await service.list_conversations(parties.requester_id)
        assert summary.last_message_preview == "Message deleted"

    async def test_archived_is_listed_unless_excluded(
        self, test_db, broker, parties
    ) -> None:
        await ConversationDirectoryService(test_db, broker).archive(
            parties.conversation_id, parties.requester_id
        )
        service = ListConversationsService(test_db)

        [archived] = await service.list_conversations(parties.requester_id)
        assert archived.visibility == Visibility.ARCHIVED
        assert (
            await service.list_conversations(
                parties.requester_id, include_archived=False
            )
            == []
        )

        [counterpart_view] = await service.list_conversations(
            parties.provider_id, include_archived=False
        )
        assert counterpart_view.visibility == Visibility.ACTIVE

    async def test_deleted_is_hidden_only_for_that_user(
        self, test_db, broker, parties
    ) -> None:
        await ConversationDirectoryService(test_db, broker).delete(
            parties.conversation_id, parties.provider_id
        )
        service = ListConversationsService(test_db)

        assert await service.list_conversations(parties.provider_id) == []
        assert len(await service.list_conversations(parties.requester_id)) == 1

    async def test_get_conversation_summary(self, test_db, parties) -> None:
        service = ListConversationsService(test_db)

        summary = await service.get_conversation_summary(
            parties.conversation_id, parties.provider_id
        )

        assert summary.id == parties.conversation_id
        assert summary.title == "Fix sink"
        assert summary.counterpart_id == parties.requester_id

    async def test_get_conversation_summary_access(self, test_db, parties) -> None:
        service = ListConversationsService(test_db)
        with pytest.raises(ForbiddenError):
            await service.get_conversation_summary(
                parties.conversation_id, parties.outsider_id
            )
        with pytest.raises(NotFoundError):
            await service.get_conversation_summary(uuid4(), parties.requester_id)
