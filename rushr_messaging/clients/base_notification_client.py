from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseNotificationClient(ABC):
    """Abstract base class for notification delivery backends."""

    @abstractmethod
    async def send_notification(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Hand a notification to the delivery backend.

        Returns:
            Dict containing the raw backend response data.
        """

    async def aclose(self) -> None:
        """Release any held connections."""
