"""Cleanup workflows built on the Gmail gateway.

Gateway calls are synchronous and run one at a time through
``asyncio.to_thread``. Batch workflows record a result per message and keep
going when one message fails; whole-request failures propagate as
UpstreamAPIError.
"""

from __future__ import annotations

import asyncio
import re
from datetime import date, datetime, timedelta

import httpx

from . import gmail_client
from .constants import (
    BULK_UNSUBSCRIBE_LIMIT,
    LARGE_EMAIL_AGE_DAYS,
    LARGE_EMAIL_FETCH_LIMIT,
    LARGE_EMAIL_SIZE_MB,
    OLD_EMAIL_DAYS,
    OLD_EMAIL_FETCH_LIMIT,
    REMOVE_ACTIONS,
    UNREAD_QUERY,
)
from .errors import InboxCleanerError, ValidationError
from .insights import analyze_patterns
from .logger import get_logger
from .models import (
    ActionResult,
    BatchResult,
    EmailStats,
    InsightAction,
    ItemResult,
    Message,
)
from .providers import InsightRequest
from .unsubscribe import extract_unsubscribe_info, perform_unsubscribe

logger = get_logger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _require_ids(message_ids: list[str]) -> list[str]:
    ids = [i for i in message_ids if i]
    if not ids:
        raise ValidationError("Message IDs required")
    return ids


def _cutoff(days_old: int, today: date | None) -> date:
    return (today or datetime.now().date()) - timedelta(days=days_old)


def build_insight_request(
    messages: list[Message],
    stats: EmailStats,
    now: datetime | None = None,
) -> InsightRequest:
    return InsightRequest(stats=stats, patterns=analyze_patterns(messages, now=now))


async def unsubscribe_message(
    service,
    message_id: str,
    execute: bool = True,
    client: httpx.AsyncClient | None = None,
) -> ItemResult:
    """Detect and (when ``execute``) follow the unsubscribe link of one message.

    A successful unsubscribe also marks the message as read.
    """
    try:
        content = await asyncio.to_thread(gmail_client.get_email_content, service, message_id)
        info = extract_unsubscribe_info(content.body, content.headers)

        if not info.found:
            return ItemResult(
                message_id=message_id,
                success=False,
                message="No unsubscribe method found",
                unsubscribe_info=info,
            )

        if not execute:
            return ItemResult(
                message_id=message_id,
                success=True,
                message=f"Would unsubscribe via {info.links[0]}",
                unsubscribe_info=info,
            )

        result = await perform_unsubscribe(info, client=client)
        if result.success:
            await asyncio.to_thread(gmail_client.mark_as_read, service, [message_id])

        return ItemResult(
            message_id=message_id,
            success=result.success,
            message=result.message,
            unsubscribe_info=info,
        )
    except InboxCleanerError as exc:
        logger.warning("Unsubscribe failed for %s: %s", message_id, exc)
        return ItemResult(
            message_id=message_id,
            success=False,
            message="Failed to process",
            error=str(exc),
        )


async def unsubscribe_messages(
    service,
    message_ids: list[str],
    execute: bool = True,
    client: httpx.AsyncClient | None = None,
) -> BatchResult:
    """Unsubscribe from each message in turn, collecting per-message results."""
    ids = _require_ids(message_ids)
    batch = BatchResult()
    for message_id in ids:
        batch.add(await unsubscribe_message(service, message_id, execute=execute, client=client))
    return batch


async def mark_old_as_read(
    service,
    days_old: int = OLD_EMAIL_DAYS,
    today: date | None = None,
) -> ActionResult:
    query = f"{UNREAD_QUERY} {gmail_client.before_query(_cutoff(days_old, today))}"
    page = await asyncio.to_thread(
        gmail_client.list_messages, service, query, OLD_EMAIL_FETCH_LIMIT
    )
    ids = [m.id for m in page.messages]
    if ids:
        await asyncio.to_thread(gmail_client.mark_as_read, service, ids)

    logger.info("Marked %d old emails as read", len(ids))
    return ActionResult(action="mark_old_as_read", processed=len(ids), details={"days_old": days_old})


async def archive_large_emails(
    service,
    size_limit_mb: int = LARGE_EMAIL_SIZE_MB,
    age_days: int = LARGE_EMAIL_AGE_DAYS,
    today: date | None = None,
) -> ActionResult:
    """Archive large emails older than ``age_days``."""
    query = (
        f"{gmail_client.larger_query(size_limit_mb)} "
        f"{gmail_client.before_query(_cutoff(age_days, today))}"
    )
    page = await asyncio.to_thread(
        gmail_client.list_messages, service, query, LARGE_EMAIL_FETCH_LIMIT
    )
    ids = [m.id for m in page.messages]
    if ids:
        await asyncio.to_thread(gmail_client.archive_messages, service, ids)

    logger.info("Archived %d large emails", len(ids))
    return ActionResult(
        action="archive_large_emails",
        processed=len(ids),
        details={"size_limit_mb": size_limit_mb, "age_days": age_days},
    )


async def bulk_unsubscribe_newsletters(
    service,
    days_old: int = OLD_EMAIL_DAYS,
    execute: bool = True,
    client: httpx.AsyncClient | None = None,
    today: date | None = None,
) -> ActionResult:
    """Unsubscribe from the oldest unlabeled newsletters, a bounded number per run."""
    newsletters = await asyncio.to_thread(
        gmail_client.search_newsletters, service, days_old, today
    )
    selected = newsletters[:BULK_UNSUBSCRIBE_LIMIT]

    batch = BatchResult()
    for newsletter in selected:
        item = await unsubscribe_message(service, newsletter.id, execute=execute, client=client)
        if execute and item.success:
            newsletter.mark_read()
        batch.add(item)

    return ActionResult(
        action="bulk_unsubscribe_newsletters",
        processed=batch.processed,
        details={
            "days_old": days_old,
            "successful": batch.successful,
            "results": batch.results,
            "newsletters": selected,
        },
    )


async def remove_messages(service, message_ids: list[str], action: str = "trash") -> ActionResult:
    """Trash, archive or permanently delete messages."""
    ids = _require_ids(message_ids)
    if action not in REMOVE_ACTIONS:
        raise ValidationError(f"Unknown remove action: {action}")

    if action == "delete":
        count = await asyncio.to_thread(gmail_client.delete_messages, service, ids)
    elif action == "archive":
        count = await asyncio.to_thread(gmail_client.archive_messages, service, ids)
    else:
        count = await asyncio.to_thread(gmail_client.trash_messages, service, ids)

    return ActionResult(action=action, processed=count)


async def mark_read(service, message_ids: list[str]) -> ActionResult:
    ids = _require_ids(message_ids)
    count = await asyncio.to_thread(gmail_client.mark_as_read, service, ids)
    return ActionResult(action="mark_read", processed=count)


async def forward_message(
    service,
    message_id: str,
    to: str,
    note: str | None = None,
) -> ActionResult:
    if not message_id or not to:
        raise ValidationError("Message ID and recipient required")
    if not _EMAIL_RE.match(to):
        raise ValidationError(f"Invalid email address: {to}")

    await asyncio.to_thread(gmail_client.forward_email, service, message_id, to, note)
    return ActionResult(action="forward", processed=1, details={"message_id": message_id, "forwarded_to": to})


async def search(service, query: str) -> ActionResult:
    page = await asyncio.to_thread(gmail_client.list_messages, service, query)
    return ActionResult(
        action="search",
        processed=len(page.messages),
        details={"query": query, "messages": page.messages},
    )


async def run_insight_action(
    service,
    action: InsightAction,
    execute: bool = True,
    client: httpx.AsyncClient | None = None,
) -> ActionResult:
    """Carry out the follow-up operation attached to an insight."""
    params = action.params
    if action.operation == "mark_old_as_read":
        return await mark_old_as_read(service, days_old=params.get("days_old", OLD_EMAIL_DAYS))
    if action.operation == "bulk_unsubscribe_newsletters":
        return await bulk_unsubscribe_newsletters(
            service,
            days_old=params.get("days_old", OLD_EMAIL_DAYS),
            execute=execute,
            client=client,
        )
    if action.operation == "archive_large_emails":
        return await archive_large_emails(
            service,
            size_limit_mb=params.get("size_limit_mb", LARGE_EMAIL_SIZE_MB),
            age_days=params.get("age_days", LARGE_EMAIL_AGE_DAYS),
        )
    if action.operation == "search":
        return await search(service, params.get("query", ""))
    raise ValidationError(f"Invalid action: {action.operation}")
