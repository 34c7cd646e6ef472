"""Notification trigger points.

The dispatcher listens to domain events and hands the ones users should
hear about to the notification backend. Delivery is best-effort: a
failed notification is logged and never undoes or fails the message or
offer change that caused it.
"""

from typing import Any, Dict, Optional

import httpx

from rushr_messaging.clients.base_notification_client import BaseNotificationClient
from rushr_messaging.events.schemas import (
    BaseEvent,
    MessageAppendedEvent,
    OfferTransitionedEvent,
)
from rushr_messaging.logging_config import get_logger
from rushr_messaging.models.enums import MessageKind, OfferStatus
from rushr_messaging.services.message_preview import build_preview

logger = get_logger(__name__)

NOTIFIED_OFFER_STATUSES = {
    OfferStatus.ACCEPTED,
    OfferStatus.DECLINED,
    OfferStatus.COUNTERED,
}


class NotificationDispatcher:
    """Event listener that turns domain events into notification triggers."""

    def __init__(self, client: BaseNotificationClient):
        self.client = client

    async def __call__(self, event: BaseEvent) -> None:
        payload = self.build_payload(event)
        if payload is None:
            return

        try:
            await self.client.send_notification(payload)
        except httpx.HTTPError as e:
            logger.warning(
                "notification_failed",
                notification_type=payload["type"],
                conversation_id=payload["conversation_id"],
                error=str(e),
            )
            return

        logger.info(
            "notification_sent",
            notification_type=payload["type"],
            conversation_id=payload["conversation_id"],
        )

    def build_payload(self, event: BaseEvent) -> Optional[Dict[str, Any]]:
        """Map an event to a notification payload, or None to skip it."""
        if isinstance(event, MessageAppendedEvent):
            message = event.message
            if message.kind == MessageKind.SYSTEM:
                return None
            return {
                "type": "new_message",
                "recipient_id": str(event.recipient_id),
                "sender_id": str(message.sender_id),
                "conversation_id": str(event.conversation_id),
                "message_id": str(message.id),
                "preview": build_preview(message),
            }

        if isinstance(event, OfferTransitionedEvent):
            if event.offer.status not in NOTIFIED_OFFER_STATUSES:
                return None
            payload: Dict[str, Any] = {
                "type": f"offer_{event.offer.status.value}",
                "recipient_id": str(event.recipient_id),
                "actor_id": str(event.actor_id) if event.actor_id else None,
                "conversation_id": str(event.conversation_id),
                "offer_id": str(event.offer.id),
                "title": event.offer.title,
                "price": str(event.offer.price),
            }
            if event.offer.status == OfferStatus.COUNTERED:
                payload["counter_price"] = str(event.offer.counter_price)
                payload["counter_days"] = event.offer.counter_days
            return payload

        return None
