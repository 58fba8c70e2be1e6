"""In-memory notification gateway for testing."""

from __future__ import annotations

import asyncio
from typing import List

from ..contracts import DeliveryStatus, NotificationRequest
from .base import BaseNotificationGateway


class InMemoryNotificationGateway(BaseNotificationGateway):
    """Records every request it is asked to send."""

    def __init__(self) -> None:
        self.sent: List[NotificationRequest] = []
        self._lock = asyncio.Lock()

    async def send(self, request: NotificationRequest) -> DeliveryStatus:
        async with self._lock:
            self.sent.append(request)
        return "sent"

    def of_type(self, notification_type: str) -> List[NotificationRequest]:
        return [r for r in self.sent if r.type == notification_type]
