"""Tests for the Gmail API client functions."""

from __future__ import annotations

import base64
import email
from datetime import date
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError

from inbox_cleaner import gmail_client
from inbox_cleaner.errors import MalformedContentError, TransientNetworkError, UpstreamAPIError
from inbox_cleaner.models import EmailContent


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def _messages_api(service: MagicMock) -> MagicMock:
    return service.users.return_value.messages.return_value


def _install_batch(service: MagicMock, responses: list) -> None:
    """Make new_batch_http_request() answer queued responses in add() order."""

    def new_batch():
        batch = MagicMock()
        callbacks = []
        batch.add.side_effect = lambda request, callback: callbacks.append(callback)

        def execute():
            for cb in callbacks:
                response = responses.pop(0)
                if isinstance(response, Exception):
                    cb(None, None, response)
                else:
                    cb(None, response, None)

        batch.execute.side_effect = execute
        return batch

    service.new_batch_http_request.side_effect = new_batch


def _http_error(status: int) -> HttpError:
    return HttpError(MagicMock(status=status, reason="error"), b"{}")


def test_query_fragments():
    assert gmail_client.before_query(date(2024, 1, 5)) == "before:2024/01/05"
    assert gmail_client.after_query(date(2024, 12, 31)) == "after:2024/12/31"
    assert gmail_client.larger_query(10) == "larger:10M"


def test_message_from_response(metadata_response):
    response = metadata_response(
        "m1",
        subject="Monthly report",
        sender="Corp <reports@corp.example>",
        labels=["INBOX", "UNREAD"],
        extra_headers={"list-unsubscribe": "<https://corp.example/u>"},
        size=2048,
    )
    msg = gmail_client.message_from_response(response)

    assert msg.id == "m1"
    assert msg.thread_id == "thr_m1"
    assert msg.unread
    assert msg.size == 2048
    assert msg.list_unsubscribe == "<https://corp.example/u>"
    assert msg.is_newsletter
    assert msg.sender_email == "reports@corp.example"


def test_list_messages(gmail_service, metadata_response):
    api = _messages_api(gmail_service)
    api.list.return_value.execute.return_value = {
        "messages": [{"id": "a"}, {"id": "b"}, {"id": "c"}],
        "nextPageToken": "tok2",
        "resultSizeEstimate": 120,
    }
    _install_batch(
        gmail_service,
        [metadata_response("a"), RuntimeError("not found"), metadata_response("c")],
    )

    page = gmail_client.list_messages(gmail_service, "is:unread", max_results=3, page_token="tok1")

    assert [m.id for m in page.messages] == ["a", "c"]
    assert page.next_page_token == "tok2"
    assert page.result_size_estimate == 120
    api.list.assert_called_with(userId="me", q="is:unread", maxResults=3, pageToken="tok1")


def test_list_messages_empty(gmail_service):
    _messages_api(gmail_service).list.return_value.execute.return_value = {"resultSizeEstimate": 0}
    page = gmail_client.list_messages(gmail_service)
    assert page.messages == []
    assert page.next_page_token is None


def test_http_error_wrapped(gmail_service):
    _messages_api(gmail_service).list.return_value.execute.side_effect = _http_error(403)
    with pytest.raises(UpstreamAPIError) as exc_info:
        gmail_client.list_messages(gmail_service)
    assert exc_info.value.status_code == 403


def test_network_failure_wrapped(gmail_service):
    _messages_api(gmail_service).list.return_value.execute.side_effect = TimeoutError("timed out")
    with pytest.raises(TransientNetworkError):
        gmail_client.list_messages(gmail_service)


def test_undecodable_body_raises_malformed(gmail_service):
    _messages_api(gmail_service).get.return_value.execute.return_value = {
        "payload": {"body": {"data": "abcde"}},
    }
    with pytest.raises(MalformedContentError):
        gmail_client.get_email_content(gmail_service, "m1")


def test_header_without_value(gmail_service):
    _messages_api(gmail_service).get.return_value.execute.return_value = {
        "payload": {"headers": [{"name": "Subject"}], "body": {"data": _b64("hi")}},
    }
    content = gmail_client.get_email_content(gmail_service, "m1")
    assert content.headers == {"Subject": ""}


def test_get_email_content_multipart(gmail_service):
    _messages_api(gmail_service).get.return_value.execute.return_value = {
        "id": "m1",
        "payload": {
            "headers": [{"name": "Subject", "value": "Hi"}],
            "parts": [
                {"mimeType": "text/plain", "body": {"data": _b64("plain ")}},
                {"mimeType": "image/png", "body": {"attachmentId": "x"}},
                {
                    "mimeType": "multipart/alternative",
                    "parts": [{"mimeType": "text/html", "body": {"data": _b64("<b>html</b>")}}],
                },
            ],
        },
    }

    content = gmail_client.get_email_content(gmail_service, "m1")

    assert content.body == "plain <b>html</b>"
    assert content.headers == {"Subject": "Hi"}
    _messages_api(gmail_service).get.assert_called_with(userId="me", id="m1", format="full")


def test_get_email_body_single_part(gmail_service):
    _messages_api(gmail_service).get.return_value.execute.return_value = {
        "payload": {"body": {"data": _b64("<p>Unsubscribe</p>")}},
    }
    assert gmail_client.get_email_body(gmail_service, "m1") == "<p>Unsubscribe</p>"


def test_batch_modify_chunks(gmail_service):
    ids = [f"id{i}" for i in range(2500)]
    count = gmail_client.batch_modify(gmail_service, ids, remove_labels=["UNREAD"])

    assert count == 2500
    calls = _messages_api(gmail_service).batchModify.call_args_list
    assert [len(c.kwargs["body"]["ids"]) for c in calls] == [1000, 1000, 500]
    assert calls[0].kwargs["body"]["removeLabelIds"] == ["UNREAD"]
    assert "addLabelIds" not in calls[0].kwargs["body"]


def test_label_wrappers(gmail_service):
    api = _messages_api(gmail_service)

    gmail_client.trash_messages(gmail_service, ["a"])
    assert api.batchModify.call_args.kwargs["body"] == {
        "ids": ["a"],
        "addLabelIds": ["TRASH"],
        "removeLabelIds": ["INBOX"],
    }

    gmail_client.archive_messages(gmail_service, ["b"])
    assert api.batchModify.call_args.kwargs["body"] == {"ids": ["b"], "removeLabelIds": ["INBOX"]}

    gmail_client.mark_as_read(gmail_service, ["c"])
    assert api.batchModify.call_args.kwargs["body"] == {"ids": ["c"], "removeLabelIds": ["UNREAD"]}


def test_delete_messages(gmail_service):
    assert gmail_client.delete_messages(gmail_service, ["a", "b"]) == 2
    assert _messages_api(gmail_service).delete.call_count == 2


def test_build_forward():
    original = EmailContent(
        message_id="m1",
        body="Original text",
        headers={"Subject": "Hello", "From": "Bob <bob@example.com>", "Date": "Sat, 29 Jun 2024"},
    )
    raw = gmail_client.build_forward(original, "carol@example.com", note="FYI")

    parsed = email.message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
    body = parsed.get_payload(decode=True).decode()

    assert parsed["To"] == "carol@example.com"
    assert parsed["Subject"] == "Fwd: Hello"
    assert body.startswith("FYI")
    assert "---------- Forwarded message ---------" in body
    assert "From: Bob <bob@example.com>" in body
    assert "Original text" in body


def test_search_newsletters_query_and_filter(gmail_service, metadata_response):
    api = _messages_api(gmail_service)
    api.list.return_value.execute.return_value = {"messages": [{"id": "n"}, {"id": "p"}]}
    _install_batch(
        gmail_service,
        [
            metadata_response("n", sender="News <newsletter@site.example>"),
            metadata_response("p", sender="Alice <alice@gmail.com>"),
        ],
    )

    found = gmail_client.search_newsletters(gmail_service, 30, today=date(2024, 6, 30))

    assert [m.id for m in found] == ["n"]
    query = api.list.call_args.kwargs["q"]
    assert query.startswith("has:nouserlabels before:2024/05/31 ")
    assert "has:list" in query
    assert api.list.call_args.kwargs["maxResults"] == 100


def test_get_email_stats(gmail_service, metadata_response):
    api = _messages_api(gmail_service)
    api.list.return_value.execute.side_effect = [
        {"resultSizeEstimate": 5000},
        {"resultSizeEstimate": 300},
        {"messages": [{"id": "a"}, {"id": "b"}]},
        {"messages": [{"id": "c"}]},
    ]
    _install_batch(
        gmail_service,
        [
            metadata_response("a", sender="noreply@shop.example"),
            metadata_response("b", sender="Alice <alice@gmail.com>"),
            metadata_response("c", sender="noreply@shop.example"),
        ],
    )

    stats = gmail_client.get_email_stats(gmail_service)

    assert stats.total_emails == 5000
    assert stats.unread_emails == 300
    assert stats.newsletters == 1
    assert stats.old_newsletters == 1
    assert stats.storage_used == 0
