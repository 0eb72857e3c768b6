"""Shared fixtures for tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from inbox_cleaner.models import EmailStats, Message

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def newsletter_message() -> Message:
    return Message(
        id="msg_nl_001",
        thread_id="thr_nl_001",
        subject="Weekly Digest: Top Stories This Week",
        sender="Newsletter Team <noreply@example-newsletter.com>",
        recipient="me@example.com",
        date="Mon, 15 Jan 2024 09:00:00 +0000",
        snippet="The best stories of the week",
        unread=True,
        labels=["INBOX", "UNREAD", "CATEGORY_PROMOTIONS"],
        size=42_000,
        is_newsletter=True,
        list_unsubscribe="<https://example-newsletter.com/unsub?u=1>",
    )


@pytest.fixture
def personal_message() -> Message:
    return Message(
        id="msg_ps_001",
        thread_id="thr_ps_001",
        subject="Re: Lunch tomorrow?",
        sender="Alice Smith <alice.smith@gmail.com>",
        recipient="me@example.com",
        date="Sat, 29 Jun 2024 13:30:00 +0000",
        snippet="Sounds good, see you at noon",
        labels=["INBOX"],
        size=3_000,
    )


@pytest.fixture
def make_message():
    """Factory for messages with sensible defaults."""

    def _make(id: str = "msg", **kwargs) -> Message:
        defaults = {
            "subject": "Hello",
            "sender": "Bob <bob@example.com>",
            "date": "Sat, 29 Jun 2024 10:00:00 +0000",
        }
        defaults.update(kwargs)
        return Message(id=id, **defaults)

    return _make


@pytest.fixture
def empty_stats() -> EmailStats:
    return EmailStats()


@pytest.fixture
def gmail_service() -> MagicMock:
    """MagicMock standing in for the googleapiclient Gmail resource."""
    return MagicMock()


def _metadata_response(
    msg_id: str,
    subject: str = "Hello",
    sender: str = "Bob <bob@example.com>",
    labels: list[str] | None = None,
    extra_headers: dict[str, str] | None = None,
    size: int = 1000,
) -> dict:
    headers = {"Subject": subject, "From": sender, "To": "me@example.com", "Date": "Sat, 29 Jun 2024 10:00:00 +0000"}
    headers.update(extra_headers or {})
    return {
        "id": msg_id,
        "threadId": f"thr_{msg_id}",
        "labelIds": labels if labels is not None else ["INBOX"],
        "snippet": f"snippet of {msg_id}",
        "sizeEstimate": size,
        "payload": {"headers": [{"name": k, "value": v} for k, v in headers.items()]},
    }


@pytest.fixture
def metadata_response():
    """Builder for ``messages.get`` metadata responses."""
    return _metadata_response
