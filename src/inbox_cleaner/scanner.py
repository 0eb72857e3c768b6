"""Mailbox sampling - pages through list_messages into a flat message list."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta
from typing import Callable

from .constants import DEFAULT_SAMPLE_SIZE, OLD_EMAIL_DAYS, PAGE_SIZE
from .gmail_client import after_query, list_messages
from .logger import get_logger
from .models import Message

logger = get_logger(__name__)


def sample_query(include_old: bool = False, today: date | None = None) -> str:
    """Query for an insight sample: recent mail only unless include_old."""
    if include_old:
        return ""
    today = today or datetime.now().date()
    return after_query(today - timedelta(days=OLD_EMAIL_DAYS))


async def scan_mailbox(
    service,
    query: str = "",
    max_results: int = DEFAULT_SAMPLE_SIZE,
    callback: Callable[[int], None] | None = None,
) -> list[Message]:
    """Collect up to ``max_results`` messages matching ``query``.

    Gateway calls run one at a time in a worker thread. ``callback`` receives
    the running message count after each page.
    """
    messages: list[Message] = []
    page_token: str | None = None

    while len(messages) < max_results:
        page_size = min(PAGE_SIZE, max_results - len(messages))
        page = await asyncio.to_thread(list_messages, service, query, page_size, page_token)
        messages.extend(page.messages)

        if callback:
            callback(len(messages))

        page_token = page.next_page_token
        if not page_token:
            break

    logger.debug("Sampled %d messages for query %r", len(messages), query)
    return messages[:max_results]
