from datetime import datetime, timedelta, timezone

import pytest

from rushr_messaging.errors import ForbiddenError
from rushr_messaging.events.schemas import TypingChangedEvent
from rushr_messaging.services.typing_service import TypingService, is_typing_active
from rushr_messaging.timeutils import utc_now

TTL = timedelta(seconds=8)
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestIsTypingActive:
    """Unit tests for typing staleness."""

    def test_fresh_flag_is_active(self) -> None:
        assert is_typing_active(True, NOW - timedelta(seconds=3), NOW, TTL)

    def test_flag_at_ttl_boundary_is_active(self) -> None:
        assert is_typing_active(True, NOW - TTL, NOW, TTL)

    def test_stale_flag_is_inactive(self) -> None:
        assert not is_typing_active(True, NOW - timedelta(seconds=9), NOW, TTL)

    def test_cleared_flag_is_inactive(self) -> None:
        assert not is_typing_active(False, NOW, NOW, TTL)

    def test_never_set_is_inactive(self) -> None:
        assert not is_typing_active(True, None, NOW, TTL)

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        naive = (NOW - timedelta(seconds=2)).replace(tzinfo=None)
        assert is_typing_active(True, naive, NOW, TTL)


class TestTypingService:
    """Integration tests for typing indicators."""

    async def test_counterpart_sees_typing(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)

        await service.set_typing(parties.conversation_id, parties.provider_id, True)

        seen = await service.get_typing(parties.conversation_id, parties.requester_id)
        assert seen.typing_user_ids == [parties.provider_id]

    async def test_own_typing_is_not_reported(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)

        await service.set_typing(parties.conversation_id, parties.provider_id, True)

        seen = await service.get_typing(parties.conversation_id, parties.provider_id)
        assert seen.typing_user_ids == []

    async def test_last_write_wins(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)

        await service.set_typing(parties.conversation_id, parties.provider_id, True)
        await service.set_typing(parties.conversation_id, parties.provider_id, False)

        seen = await service.get_typing(parties.conversation_id, parties.requester_id)
        assert seen.typing_user_ids == []

    async def test_stale_typing_expires(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)
        await service.set_typing(parties.conversation_id, parties.provider_id, True)

        seen = await service.get_typing(
            parties.conversation_id,
            parties.requester_id,
            now=utc_now() + timedelta(seconds=30),
        )
        assert seen.typing_user_ids == []

    async def test_publishes_typing_changed(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)
        subscription = broker.subscribe(parties.conversation_id)

        await service.set_typing(parties.conversation_id, parties.requester_id, True)

        event = subscription.queue.get_nowait()
        assert isinstance(event, TypingChangedEvent)
        assert event.user_id == parties.requester_id
        assert event.is_typing is True

    async def test_outsider_is_forbidden(self, test_db, broker, parties) -> None:
        service = TypingService(test_db, broker)
        with pytest.raises(ForbiddenError):
            await service.set_typing(parties.conversation_id, parties.outsider_id, True)
        with pytest.raises(ForbiddenError):
            await service.get_typing(parties.conversation_id, parties.outsider_id)
