"""Fire-and-forget delivery of notification requests."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..contracts import NotificationRequest
from .base import BaseNotificationGateway

logger = logging.getLogger(__name__)


async def deliver_all(
    gateway: Optional[BaseNotificationGateway],
    requests: Iterable[NotificationRequest],
) -> int:
    """Send ``requests`` through ``gateway`` and return how many were accepted.

    Delivery failures are logged and never raised: the workflow state that
    produced the requests is already committed.
    """
    if gateway is None:
        return 0
    accepted = 0
    for request in requests:
        try:
            status = await gateway.send(request)
        except Exception as e:
            logger.error(
                f"Failed to deliver {request.type} notification "
                f"for workflow_id={request.workflow_id}: {e}"
            )
            continue
        if status == "failed":
            logger.warning(
                f"Gateway reported failure for {request.type} notification "
                f"for workflow_id={request.workflow_id}"
            )
            continue
        accepted += 1
    return accepted
