from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from rushr_messaging.models.api.offers import OfferFields
from rushr_messaging.models.enums import OfferStatus
from rushr_messaging.services.send_message_service import SendMessageService
from rushr_messaging.tasks import expire_offers, purge_deleted_messages
from rushr_messaging.timeutils import utc_now


async def test_expire_offers_run(test_db, broker, parties, session_factory) -> None:
    message = await SendMessageService(test_db, broker).send_offer(
        parties.conversation_id,
        parties.provider_id,
        OfferFields(
            title="Diagnostic Visit",
            price=Decimal("120"),
            delivery_days=1,
            expires_at=utc_now() + timedelta(seconds=1),
        ),
    )

    with patch.object(expire_offers, "AsyncSessionLocal", session_factory), patch(
        "rushr_messaging.services.respond_to_offer_service.utc_now",
        return_value=utc_now() + timedelta(minutes=5),
    ):
        count = await expire_offers.run()

    assert count == 1
    async with session_factory() as session:
        offer = await SendMessageService(session).offer_repo.get_by_id(
            message.offer.id
        )
    assert offer.status == OfferStatus.EXPIRED


async def test_purge_run_with_nothing_due(session_factory) -> None:
    with patch.object(purge_deleted_messages, "AsyncSessionLocal", session_factory):
        assert await purge_deleted_messages.run() == 0


async def test_main_disposes_engine() -> None:
    with patch.object(
        purge_deleted_messages, "run", new_callable=AsyncMock, return_value=3
    ), patch.object(
        purge_deleted_messages, "close_db", new_callable=AsyncMock
    ) as mock_close, patch.object(purge_deleted_messages, "configure_logging"):
        await purge_deleted_messages.main()

    mock_close.assert_awaited_once()
