from typing import Any, Dict, Optional

import httpx

from rushr_messaging.clients.base_notification_client import BaseNotificationClient


class WebhookNotificationClient(BaseNotificationClient):
    """Posts notification triggers to the email/push dispatcher using httpx."""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def send_notification(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST the payload and return the dispatcher's JSON reply."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        response = await self._get_client().post(
            self.url, json=payload, headers=headers
        )
        response.raise_for_status()
        if not response.content:
            return {}
        data: Dict[str, Any] = response.json()
        return data

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
