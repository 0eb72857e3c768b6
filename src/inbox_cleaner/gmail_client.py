"""Gmail API client functions for fetching and managing messages.

Every function takes the Gmail ``service`` resource returned by
``auth.get_gmail_service`` and is synchronous; async callers run them in a
worker thread. Rate-limit and 5xx responses are retried here, other API
errors surface as UpstreamAPIError and socket failures as
TransientNetworkError.
"""

from __future__ import annotations

import base64
import functools
from datetime import date, datetime, timedelta
from email.message import EmailMessage
from typing import Any, Callable, TypeVar

from googleapiclient.errors import HttpError
from googleapiclient.http import BatchHttpRequest
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from .classifier import detect_newsletter
from .constants import (
    BATCH_SIZE,
    METADATA_HEADERS,
    MODIFY_BATCH_SIZE,
    NEWSLETTER_QUERY,
    NEWSLETTER_SEARCH_LIMIT,
    NEWSLETTER_SEARCH_TERMS,
    OLD_EMAIL_DAYS,
    QUERY_DATE_FORMAT,
    UNREAD_QUERY,
)
from .errors import MalformedContentError, TransientNetworkError, UpstreamAPIError
from .logger import get_logger
from .models import EmailContent, EmailStats, Message, MessagePage

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_BODY_MIME_TYPES = ("text/html", "text/plain")


def _is_retryable_http_error(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in (429, 500, 503)


_retry_transient = retry(
    retry=retry_if_exception(_is_retryable_http_error),
    wait=wait_exponential(multiplier=1, min=1, max=60),
    stop=stop_after_attempt(5),
    reraise=True,
)


def _wrap_http_errors(func: F) -> F:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            raise UpstreamAPIError(f"Gmail API error: {exc}", status_code=status) from exc
        except (TimeoutError, ConnectionError) as exc:
            raise TransientNetworkError(f"Gmail API unreachable: {exc}") from exc

    return wrapper  # type: ignore[return-value]


@_retry_transient
def _execute(request) -> Any:
    return request.execute()


@_retry_transient
def _execute_batch(batch: BatchHttpRequest) -> None:
    batch.execute()


# --- Query fragments ---


def before_query(day: date) -> str:
    return f"before:{day.strftime(QUERY_DATE_FORMAT)}"


def after_query(day: date) -> str:
    return f"after:{day.strftime(QUERY_DATE_FORMAT)}"


def larger_query(megabytes: int) -> str:
    return f"larger:{megabytes}M"


# --- Parsing ---


def _header_map(payload: dict) -> dict[str, str]:
    return {h["name"]: h.get("value", "") for h in payload.get("headers", []) if "name" in h}


def _get_header(headers: dict[str, str], name: str) -> str | None:
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def message_from_response(response: dict) -> Message:
    """Build a Message from a ``messages.get`` (metadata or full) response."""
    headers = _header_map(response.get("payload", {}))
    subject = _get_header(headers, "Subject") or ""
    sender = _get_header(headers, "From") or ""
    list_unsubscribe = _get_header(headers, "List-Unsubscribe")
    unsubscribe = _get_header(headers, "Unsubscribe")
    labels = response.get("labelIds", [])

    return Message(
        id=response["id"],
        thread_id=response.get("threadId", ""),
        subject=subject,
        sender=sender,
        recipient=_get_header(headers, "To") or "",
        date=_get_header(headers, "Date") or "",
        snippet=response.get("snippet", ""),
        unread="UNREAD" in labels,
        labels=labels,
        size=int(response.get("sizeEstimate", 0)),
        is_newsletter=detect_newsletter(subject, sender, list_unsubscribe, unsubscribe),
        unsubscribe_link=unsubscribe,
        list_unsubscribe=list_unsubscribe,
    )


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except ValueError as exc:
        raise MalformedContentError(f"Undecodable message body: {exc}") from exc
    return raw.decode("utf-8", errors="replace")


def _extract_body(payload: dict) -> str:
    data = payload.get("body", {}).get("data")
    if data:
        return _decode_body(data)

    parts = []
    for part in payload.get("parts", []):
        if part.get("mimeType") in _BODY_MIME_TYPES and part.get("body", {}).get("data"):
            parts.append(_decode_body(part["body"]["data"]))
        elif part.get("parts"):
            parts.append(_extract_body(part))
    return "".join(parts)


# --- Reading ---


def _fetch_metadata(service, message_ids: list[str]) -> dict[str, Message]:
    """Fetch metadata for messages in batches using BatchHttpRequest.

    Messages whose individual request fails are skipped.
    """
    results: dict[str, Message] = {}

    for start in range(0, len(message_ids), BATCH_SIZE):
        chunk = message_ids[start:start + BATCH_SIZE]
        batch = service.new_batch_http_request()

        def _make_callback(msg_id: str):
            def _cb(request_id, response, exception):
                if exception is not None:
                    logger.warning("Error fetching message %s: %s", msg_id, exception)
                    return
                results[msg_id] = message_from_response(response)

            return _cb

        for msg_id in chunk:
            batch.add(
                service.users().messages().get(
                    userId="me",
                    id=msg_id,
                    format="metadata",
                    metadataHeaders=METADATA_HEADERS,
                ),
                callback=_make_callback(msg_id),
            )

        _execute_batch(batch)

    return results


@_wrap_http_errors
def list_messages(
    service,
    query: str = "",
    max_results: int = 50,
    page_token: str | None = None,
) -> MessagePage:
    """Return one page of messages matching ``query`` with their metadata."""
    kwargs: dict = {"userId": "me", "q": query, "maxResults": max_results}
    if page_token:
        kwargs["pageToken"] = page_token

    resp = _execute(service.users().messages().list(**kwargs))
    ids = [m["id"] for m in resp.get("messages", []) if m.get("id")]
    fetched = _fetch_metadata(service, ids)

    return MessagePage(
        messages=[fetched[i] for i in ids if i in fetched],
        next_page_token=resp.get("nextPageToken"),
        result_size_estimate=resp.get("resultSizeEstimate", 0),
    )


def _result_size(service, query: str) -> int:
    resp = _execute(service.users().messages().list(userId="me", q=query, maxResults=1))
    return resp.get("resultSizeEstimate", 0)


@_wrap_http_errors
def get_message(service, message_id: str, format: str = "metadata") -> dict:
    kwargs: dict = {"userId": "me", "id": message_id, "format": format}
    if format == "metadata":
        kwargs["metadataHeaders"] = METADATA_HEADERS
    return _execute(service.users().messages().get(**kwargs))


def get_email_content(service, message_id: str) -> EmailContent:
    """Decoded body (HTML and plain-text parts joined) plus headers."""
    payload = get_message(service, message_id, format="full").get("payload", {})
    return EmailContent(
        message_id=message_id,
        body=_extract_body(payload),
        headers=_header_map(payload),
    )


def get_email_body(service, message_id: str) -> str:
    return get_email_content(service, message_id).body


@_wrap_http_errors
def get_profile(service) -> dict:
    return _execute(service.users().getProfile(userId="me"))


def search_newsletters(
    service,
    days_old: int = OLD_EMAIL_DAYS,
    today: date | None = None,
) -> list[Message]:
    """Newsletters without user labels older than ``days_old`` days."""
    today = today or datetime.now().date()
    cutoff = today - timedelta(days=days_old)
    query = f"has:nouserlabels {before_query(cutoff)} {NEWSLETTER_SEARCH_TERMS}"
    page = list_messages(service, query, max_results=NEWSLETTER_SEARCH_LIMIT)
    return [m for m in page.messages if m.is_newsletter]


@_wrap_http_errors
def get_email_stats(service) -> EmailStats:
    total = _result_size(service, "")
    unread = _result_size(service, UNREAD_QUERY)
    newsletters = list_messages(service, NEWSLETTER_QUERY, max_results=NEWSLETTER_SEARCH_LIMIT)
    old_newsletters = search_newsletters(service, OLD_EMAIL_DAYS)

    return EmailStats(
        total_emails=total,
        unread_emails=unread,
        newsletters=sum(1 for m in newsletters.messages if m.is_newsletter),
        old_newsletters=len(old_newsletters),
    )


# --- Mutations ---


@_wrap_http_errors
def batch_modify(
    service,
    message_ids: list[str],
    add_labels: list[str] | None = None,
    remove_labels: list[str] | None = None,
) -> int:
    """Apply label changes with batchModify, chunked by MODIFY_BATCH_SIZE."""
    modified = 0
    for start in range(0, len(message_ids), MODIFY_BATCH_SIZE):
        chunk = message_ids[start:start + MODIFY_BATCH_SIZE]
        body: dict = {"ids": chunk}
        if add_labels:
            body["addLabelIds"] = add_labels
        if remove_labels:
            body["removeLabelIds"] = remove_labels
        _execute(service.users().messages().batchModify(userId="me", body=body))
        modified += len(chunk)
    return modified


def mark_as_read(service, message_ids: list[str]) -> int:
    return batch_modify(service, message_ids, remove_labels=["UNREAD"])


def trash_messages(service, message_ids: list[str]) -> int:
    """Move messages to trash."""
    return batch_modify(service, message_ids, add_labels=["TRASH"], remove_labels=["INBOX"])


def archive_messages(service, message_ids: list[str]) -> int:
    return batch_modify(service, message_ids, remove_labels=["INBOX"])


@_wrap_http_errors
def delete_messages(service, message_ids: list[str]) -> int:
    """Permanently delete messages, one request per message."""
    for msg_id in message_ids:
        _execute(service.users().messages().delete(userId="me", id=msg_id))
    return len(message_ids)


@_wrap_http_errors
def send_message(service, raw: str) -> dict:
    return _execute(service.users().messages().send(userId="me", body={"raw": raw}))


def build_forward(original: EmailContent, to: str, note: str | None = None) -> str:
    """Encode a plain-text forward of ``original`` as a base64url raw message."""
    subject = _get_header(original.headers, "Subject") or ""
    forwarded = "\n".join(
        [
            note or "",
            "",
            "---------- Forwarded message ---------",
            f"From: {_get_header(original.headers, 'From') or ''}",
            f"Date: {_get_header(original.headers, 'Date') or ''}",
            f"Subject: {subject}",
            "",
            original.body,
        ]
    ).strip()

    message = EmailMessage()
    message["To"] = to
    message["Subject"] = f"Fwd: {subject}"
    message.set_content(forwarded)
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


def forward_email(service, message_id: str, to: str, note: str | None = None) -> dict:
    original = get_email_content(service, message_id)
    return send_message(service, build_forward(original, to, note))
