"""Tests for the scanner module."""

from datetime import date

from inbox_cleaner import scanner
from inbox_cleaner.models import Message, MessagePage


def test_sample_query():
    assert scanner.sample_query(include_old=True) == ""
    assert scanner.sample_query(today=date(2024, 6, 30)) == "after:2024/05/31"


async def test_scan_mailbox_follows_pages(monkeypatch):
    pages = [
        MessagePage(messages=[Message(id="m1"), Message(id="m2")], next_page_token="p2"),
        MessagePage(messages=[Message(id="m3")], next_page_token=None),
    ]
    calls = []

    def fake_list(service, query, max_results, page_token):
        calls.append((query, max_results, page_token))
        return pages.pop(0)

    monkeypatch.setattr(scanner, "list_messages", fake_list)
    progress = []

    messages = await scanner.scan_mailbox(None, "is:unread", max_results=10, callback=progress.append)

    assert [m.id for m in messages] == ["m1", "m2", "m3"]
    assert calls == [("is:unread", 10, None), ("is:unread", 8, "p2")]
    assert progress == [2, 3]


async def test_scan_mailbox_stops_at_max(monkeypatch):
    def fake_list(service, query, max_results, page_token):
        return MessagePage(
            messages=[Message(id=f"m{i}") for i in range(max_results)],
            next_page_token="more",
        )

    monkeypatch.setattr(scanner, "list_messages", fake_list)

    messages = await scanner.scan_mailbox(None, max_results=3)
    assert len(messages) == 3
