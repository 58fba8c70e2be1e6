"""Notification gateway factory."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ResflowConfig, load_config
from .base import BaseNotificationGateway
from .dispatch import deliver_all
from .inmemory import InMemoryNotificationGateway


def get_gateway(
    backend: Optional[str] = None, config: Optional[ResflowConfig] = None
) -> BaseNotificationGateway:
    """Factory function to get the configured notification gateway."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("RESFLOW_NOTIFICATIONS")
        or config.notifications.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryNotificationGateway()
    elif backend == "redis":
        from .redis import RedisNotificationGateway

        redis_conf = config.notifications.redis
        return RedisNotificationGateway(
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
            queue=redis_conf.queue,
            max_attempts=config.notifications.max_attempts,
        )
    else:
        raise ValueError(f"Unsupported notification backend: {backend}")


__all__ = [
    "BaseNotificationGateway",
    "InMemoryNotificationGateway",
    "deliver_all",
    "get_gateway",
]
