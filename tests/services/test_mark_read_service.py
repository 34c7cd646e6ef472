from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from rushr_messaging.errors import ForbiddenError, NotFoundError
from rushr_messaging.events.schemas import ReadAdvancedEvent
from rushr_messaging.models.api.messages import TextPayload
from rushr_messaging.services.mark_read_service import MarkReadService
from rushr_messaging.services.send_message_service import SendMessageService


class TestMarkReadService:
    """Integration tests for read cursors."""

    @pytest.fixture
    async def messages(self, test_db, broker, parties):
        sender = SendMessageService(test_db, broker)
        return [
            await sender.send_message(
                parties.conversation_id, parties.provider_id, TextPayload(content=f"m{i}")
            )
            for i in range(3)
        ]

    async def test_cursor_advances(self, test_db, broker, parties, messages) -> None:
        service = MarkReadService(test_db, broker)

        cursor = await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[1].id
        )

        assert cursor.last_read_message_id == messages[1].id
        assert cursor.last_read_seq == messages[1].seq
        assert cursor.last_read_at is not None

    async def test_cursor_never_moves_backward(
        self, test_db, broker, parties, messages
    ) -> None:
        service = MarkReadService(test_db, broker)
        await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[2].id
        )

        cursor = await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[0].id
        )

        assert cursor.last_read_message_id == messages[2].id
        assert cursor.last_read_seq == 3

    async def test_event_only_on_actual_advance(
        self, test_db, broker, parties, messages
    ) -> None:
        service = MarkReadService(test_db, broker)
        listener = AsyncMock()
        broker.add_listener(listener)

        await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[1].id
        )
        await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[1].id
        )
        await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[0].id
        )
        await broker.drain()

        assert listener.await_count == 1
        event = listener.await_args.args[0]
        assert isinstance(event, ReadAdvancedEvent)
        assert event.user_id == parties.requester_id
        assert event.last_read_seq == 2

    async def test_cursor_is_per_participant(
        self, test_db, broker, parties, messages
    ) -> None:
        service = MarkReadService(test_db, broker)
        await service.mark_read(
            parties.conversation_id, parties.requester_id, messages[2].id
        )

        provider_state = await service.participant_repo.get(
            parties.conversation_id, parties.provider_id
        )
        assert provider_state.last_read_seq is None

    async def test_message_from_other_conversation_is_not_found(
        self, test_db, broker, make_conversation, parties, messages
    ) -> None:
        other = await make_conversation(title="Other job")
        service = MarkReadService(test_db, broker)

        with pytest.raises(NotFoundError):
            await service.mark_read(
                other.conversation_id, other.requester_id, messages[0].id
            )

    async def test_unknown_message_is_not_found(self, test_db, broker, parties) -> None:
        service = MarkReadService(test_db, broker)
        with pytest.raises(NotFoundError):
            await service.mark_read(parties.conversation_id, parties.requester_id, uuid4())

    async def test_outsider_is_forbidden(self, test_db, broker, parties, messages) -> None:
        service = MarkReadService(test_db, broker)
        with pytest.raises(ForbiddenError):
            await service.mark_read(
                parties.conversation_id, parties.outsider_id, messages[0].id
            )
