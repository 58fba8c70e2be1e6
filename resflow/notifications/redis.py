"""Redis notification gateway feeding an external delivery worker."""

from __future__ import annotations

import logging
from typing import Any, Optional

try:
    import redis.asyncio as redis
    from redis.exceptions import ConnectionError as RedisConnectionError
    from redis.exceptions import TimeoutError as RedisTimeoutError
except ImportError:
    redis = None
    RedisConnectionError = RedisTimeoutError = None

from ..contracts import DeliveryStatus, NotificationRequest
from ..utils.retry import retry_async
from .base import BaseNotificationGateway

logger = logging.getLogger(__name__)

_RETRYABLE = tuple(
    exc
    for exc in (ConnectionError, OSError, RedisConnectionError, RedisTimeoutError)
    if exc is not None
)


class RedisNotificationGateway(BaseNotificationGateway):
    """Push notification requests onto a Redis list (acting as queue)."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
        queue: str = "resflow:notifications",
        max_attempts: int = 3,
        client: Optional[Any] = None,
    ) -> None:
        if redis is None and client is None:
            raise ImportError("redis package is required for RedisNotificationGateway")

        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self.queue = queue
        self.max_attempts = max(1, max_attempts)
        self._redis: Optional[Any] = client

    async def connect(self) -> None:
        """Connect to Redis."""
        if self._redis is not None:
            return
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def send(self, request: NotificationRequest) -> DeliveryStatus:
        """Queue ``request``, retrying with backoff on connection errors."""
        payload = request.model_dump_json()

        async def push() -> None:
            if not self._redis:
                await self.connect()
            await self._redis.lpush(self.queue, payload)

        try:
            await retry_async(
                push,
                attempts=self.max_attempts,
                retry_on=_RETRYABLE,
                label=f"Queueing {request.type} for workflow_id={request.workflow_id}",
            )
        except _RETRYABLE as e:
            logger.error(
                f"Giving up on {request.type} notification for "
                f"workflow_id={request.workflow_id}: {e}"
            )
            return "failed"
        return "queued"
