"""Analytics event service."""

import logging
from typing import Any
from uuid import UUID

from fastapi import Request

from ..storage.interfaces import EventLog

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def track(events: EventLog, event: str, user_id: UUID | None = None, **metadata: Any) -> None:
    """Record an analytics event. Never raises; empty metadata values are dropped."""
    payload = {k: v for k, v in metadata.items() if v not in (None, "")}
    try:
        events.log(event, user_id, payload)
    except Exception:
        logger.warning("Analytics event %r dropped", event, exc_info=True)
