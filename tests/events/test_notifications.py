from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import httpx
import pytest

from rushr_messaging.clients.base_notification_client import BaseNotificationClient
from rushr_messaging.events.notifications import NotificationDispatcher
from rushr_messaging.events.schemas import (
    MessageAppendedEvent,
    OfferTransitionedEvent,
    ReadAdvancedEvent,
)
from rushr_messaging.models.api.messages import MessageResponse
from rushr_messaging.models.api.offers import OfferResponse
from rushr_messaging.models.enums import MessageKind, OfferStatus

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_message(kind: MessageKind = MessageKind.TEXT, content="Hi, my sink leaks"):
    return MessageResponse(
        id=uuid4(),
        conversation_id=uuid4(),
        sender_id=uuid4(),
        kind=kind,
        seq=1,
        content=content,
        attachments=[],
        offer=None,
        reply_to_id=None,
        deleted=False,
        created_at=NOW,
    )


def make_offer(status: OfferStatus, **updates) -> OfferResponse:
    offer = OfferResponse(
        id=uuid4(),
        message_id=uuid4(),
        conversation_id=uuid4(),
        proposer_id=uuid4(),
        title="Diagnostic Visit",
        price=Decimal("120.00"),
        delivery_days=1,
        notes=None,
        status=status,
        counter_price=None,
        counter_days=None,
        counter_notes=None,
        expires_at=None,
        responded_by=None,
        responded_at=None,
        created_at=NOW,
        updated_at=NOW,
    )
    return offer.model_copy(update=updates)


class TestNotificationDispatcher:
    """Unit tests for mapping events to notification triggers."""

    @pytest.fixture
    def client(self) -> AsyncMock:
        return AsyncMock(spec=BaseNotificationClient)

    @pytest.fixture
    def dispatcher(self, client: AsyncMock) -> NotificationDispatcher:
        return NotificationDispatcher(client)

    async def test_new_message_notifies_recipient(
        self, dispatcher: NotificationDispatcher, client: AsyncMock
    ) -> None:
        message = make_message()
        recipient_id = uuid4()
        event = MessageAppendedEvent(
            conversation_id=message.conversation_id,
            message=message,
            recipient_id=recipient_id,
        )

        await dispatcher(event)

        client.send_notification.assert_awaited_once_with(
            {
                "type": "new_message",
                "recipient_id": str(recipient_id),
                "sender_id": str(message.sender_id),
                "conversation_id": str(message.conversation_id),
                "message_id": str(message.id),
                "preview": "Hi, my sink leaks",
            }
        )

    async def test_system_messages_are_not_notified(
        self, dispatcher: NotificationDispatcher, client: AsyncMock
    ) -> None:
        message = make_message(MessageKind.SYSTEM, "Job marked complete")
        event = MessageAppendedEvent(
            conversation_id=message.conversation_id,
            message=message,
            recipient_id=uuid4(),
        )

        await dispatcher(event)

        client.send_notification.assert_not_awaited()

    @pytest.mark.parametrize(
        "status", [OfferStatus.ACCEPTED, OfferStatus.DECLINED, OfferStatus.COUNTERED]
    )
    def test_offer_responses_are_notified(
        self, dispatcher: NotificationDispatcher, status: OfferStatus
    ) -> None:
        offer = make_offer(status, counter_price=Decimal("95"), counter_days=2)
        actor_id = uuid4()
        event = OfferTransitionedEvent(
            conversation_id=offer.conversation_id,
            offer=offer,
            previous_status=OfferStatus.PENDING,
            actor_id=actor_id,
            recipient_id=offer.proposer_id,
        )

        payload = dispatcher.build_payload(event)

        assert payload is not None
        assert payload["type"] == f"offer_{status.value}"
        assert payload["recipient_id"] == str(offer.proposer_id)
        assert payload["actor_id"] == str(actor_id)
        assert payload["price"] == "120.00"
        if status == OfferStatus.COUNTERED:
            assert payload["counter_price"] == "95"
            assert payload["counter_days"] == 2
        else:
            assert "counter_price" not in payload

    def test_expiry_is_not_notified(self, dispatcher: NotificationDispatcher) -> None:
        offer = make_offer(OfferStatus.EXPIRED)
        event = OfferTransitionedEvent(
            conversation_id=offer.conversation_id,
            offer=offer,
            previous_status=OfferStatus.PENDING,
            recipient_id=offer.proposer_id,
        )

        assert dispatcher.build_payload(event) is None

    def test_read_receipts_are_not_notified(
        self, dispatcher: NotificationDispatcher
    ) -> None:
        event = ReadAdvancedEvent(
            conversation_id=uuid4(),
            user_id=uuid4(),
            last_read_message_id=uuid4(),
            last_read_seq=3,
        )

        assert dispatcher.build_payload(event) is None

    async def test_delivery_failure_is_swallowed(
        self, dispatcher: NotificationDispatcher, client: AsyncMock
    ) -> None:
        client.send_notification.side_effect = httpx.ConnectError("refused")
        message = make_message()
        event = MessageAppendedEvent(
            conversation_id=message.conversation_id,
            message=message,
            recipient_id=uuid4(),
        )

        await dispatcher(event)

        client.send_notification.assert_awaited_once()
