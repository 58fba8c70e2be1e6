"""Base interface for notification gateways."""

from __future__ import annotations

import abc

from ..contracts import DeliveryStatus, NotificationRequest


class BaseNotificationGateway(metaclass=abc.ABCMeta):
    """Hands notification requests to a delivery channel.

    Delivery itself is the gateway's concern; the engine treats every send
    as fire-and-forget and only logs failures.
    """

    async def connect(self) -> None:
        """Open connection to the channel (no-op by default)."""
        pass

    async def disconnect(self) -> None:
        """Close connection to the channel (no-op by default)."""
        pass

    @abc.abstractmethod
    async def send(self, request: NotificationRequest) -> DeliveryStatus:
        """Submit ``request`` for delivery and report what happened."""
        raise NotImplementedError
