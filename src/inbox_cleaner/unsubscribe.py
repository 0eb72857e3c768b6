"""Unsubscribe detection and execution."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

import httpx
from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import Tag

from .constants import (
    BASE_CONFIDENCE,
    HEADER_CONFIDENCE,
    HTTPS_CONFIDENCE_WEIGHT,
    MENTION_CONFIDENCE_CAP,
    MENTION_CONFIDENCE_STEP,
    NEWSLETTER_BUCKETS,
    UNSUBSCRIBE_ATTRIBUTE_SELECTORS,
    UNSUBSCRIBE_FORM_HINTS,
    UNSUBSCRIBE_HREF_HINTS,
    UNSUBSCRIBE_KEYWORDS,
    UNSUBSCRIBE_TEXT_HINTS,
    UNSUBSCRIBE_TIMEOUT,
    USER_AGENT,
)
from .errors import MalformedContentError
from .logger import get_logger
from .models import Message, UnsubscribeInfo, UnsubscribeMethod, UnsubscribeResult

logger = get_logger(__name__)

_BRACKETED_RE = re.compile(r"<([^>]+)>")
_DOMAIN_RE = re.compile(r"@([^>]+)")


def extract_unsubscribe_info(
    body: str,
    headers: Mapping[str, str] | None = None,
) -> UnsubscribeInfo:
    """Find unsubscribe links for a message.

    The List-Unsubscribe header is checked first and wins whenever it yields
    a usable link; only then is the body parsed for links and forms.
    """
    header_info = _check_headers(headers)
    if header_info.found:
        return header_info

    try:
        content_info = _parse_email_content(body)
    except MalformedContentError as exc:
        logger.warning("Could not parse email body: %s", exc)
        return UnsubscribeInfo()

    if content_info.found:
        return content_info
    return UnsubscribeInfo()


def _header_value(headers: Mapping[str, str], name: str) -> str | None:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _check_headers(headers: Mapping[str, str] | None) -> UnsubscribeInfo:
    if not headers:
        return UnsubscribeInfo(method=UnsubscribeMethod.HEADER)

    value = _header_value(headers, "list-unsubscribe")
    if not value:
        return UnsubscribeInfo(method=UnsubscribeMethod.HEADER)

    links = extract_links_from_header(value)
    return UnsubscribeInfo(
        links=links,
        method=UnsubscribeMethod.HEADER,
        confidence=HEADER_CONFIDENCE if links else 0.0,
    )


def extract_links_from_header(value: str) -> list[str]:
    """Return the http(s)/mailto targets of a List-Unsubscribe header."""
    links = []
    for token in _BRACKETED_RE.findall(value):
        url = token.strip()
        if url.startswith("http") or url.startswith("mailto:"):
            links.append(url)
    return links


def _load_html(body: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(body, "html.parser")
    except (ParserRejectedMarkup, AssertionError) as exc:
        raise MalformedContentError(str(exc)) from exc


def _candidate_anchors(soup: BeautifulSoup) -> Iterator[Tag]:
    anchors = soup.find_all("a")
    for hint in UNSUBSCRIBE_HREF_HINTS:
        for anchor in anchors:
            if hint in (anchor.get("href") or "").lower():
                yield anchor
    for phrase in UNSUBSCRIBE_TEXT_HINTS:
        for anchor in anchors:
            if phrase in anchor.get_text().lower():
                yield anchor
    for selector in UNSUBSCRIBE_ATTRIBUTE_SELECTORS:
        yield from soup.select(selector)


def is_valid_unsubscribe_link(href: str, text: str) -> bool:
    if not href or href == "#" or href.lower().startswith("javascript:"):
        return False
    if not href.startswith("http") and not href.startswith("mailto:"):
        return False
    haystack = f"{href.lower()} {text.lower()}"
    return any(keyword in haystack for keyword in UNSUBSCRIBE_KEYWORDS)


def _parse_email_content(body: str) -> UnsubscribeInfo:
    if not body:
        return UnsubscribeInfo()

    soup = _load_html(body)
    links: list[str] = []

    for element in _candidate_anchors(soup):
        href = element.get("href")
        if isinstance(href, str) and is_valid_unsubscribe_link(href.strip(), element.get_text()):
            links.append(href.strip())

    forms = [
        form
        for form in soup.find_all("form")
        if any(hint in form.decode_contents().lower() for hint in UNSUBSCRIBE_FORM_HINTS)
    ]
    for form in forms:
        action = form.get("action")
        if isinstance(action, str) and action.strip():
            links.append(action.strip())

    unique_links = list(dict.fromkeys(links))
    return UnsubscribeInfo(
        links=unique_links,
        method=UnsubscribeMethod.FORM if forms else UnsubscribeMethod.LINK,
        confidence=calculate_confidence(unique_links, body),
    )


def calculate_confidence(links: list[str], body: str) -> float:
    """Heuristic reliability of content-parsed links, within [0, 1]."""
    if not links:
        return 0.0

    confidence = BASE_CONFIDENCE
    mentions = body.lower().count("unsubscribe")
    confidence += min(mentions * MENTION_CONFIDENCE_STEP, MENTION_CONFIDENCE_CAP)

    https_links = sum(1 for link in links if link.startswith("https:"))
    confidence += (https_links / len(links)) * HTTPS_CONFIDENCE_WEIGHT

    return max(0.0, min(confidence, 1.0))


async def perform_unsubscribe(
    info: UnsubscribeInfo,
    client: httpx.AsyncClient | None = None,
) -> UnsubscribeResult:
    """Follow the first unsubscribe link with a GET request.

    mailto: links are never sent automatically; the address is returned for
    the user to act on. Network failures are reported in the result, not
    raised.
    """
    if not info.found:
        return UnsubscribeResult(success=False, message="No unsubscribe method found")

    link = info.links[0]

    if link.startswith("mailto:"):
        return UnsubscribeResult(
            success=False,
            message=f"Email-based unsubscribe requires manual action: {link}",
            link=link,
            manual_action=link,
        )

    if not link.lower().startswith(("http://", "https://")):
        return UnsubscribeResult(
            success=False,
            message=f"Unsupported unsubscribe link: {link}",
            link=link,
        )

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=UNSUBSCRIBE_TIMEOUT) as own_client:
                response = await own_client.get(link, headers={"User-Agent": USER_AGENT})
        else:
            response = await client.get(
                link,
                headers={"User-Agent": USER_AGENT},
                timeout=UNSUBSCRIBE_TIMEOUT,
            )
    except httpx.HTTPError as exc:
        logger.warning("Unsubscribe request to %s failed: %s", link, exc)
        return UnsubscribeResult(
            success=False,
            message=f"Failed to process unsubscribe request: {exc}",
            link=link,
        )

    if 200 <= response.status_code < 400:
        logger.info("Unsubscribed via %s (%d)", link, response.status_code)
        return UnsubscribeResult(
            success=True,
            message="Successfully unsubscribed",
            link=link,
            status_code=response.status_code,
        )

    return UnsubscribeResult(
        success=False,
        message=f"Unsubscribe request returned status {response.status_code}",
        link=link,
        status_code=response.status_code,
    )


def extract_domain(sender: str) -> str:
    """Domain part of a From header, or "unknown"."""
    match = _DOMAIN_RE.search(sender)
    if not match:
        return "unknown"
    return match.group(1).strip().lower() or "unknown"


def group_by_domain(messages: list[Message]) -> dict[str, list[Message]]:
    grouped: dict[str, list[Message]] = {}
    for message in messages:
        grouped.setdefault(extract_domain(message.sender), []).append(message)
    return grouped


def categorize_newsletters(messages: list[Message]) -> dict[str, list[Message]]:
    """Split newsletters into marketing, news, social, transactional and other."""
    buckets: dict[str, list[Message]] = {name: [] for name, _ in NEWSLETTER_BUCKETS}
    buckets["other"] = []

    for message in messages:
        text = f"{message.subject} {message.sender}".lower()
        for name, keywords in NEWSLETTER_BUCKETS:
            if any(keyword in text for keyword in keywords):
                buckets[name].append(message)
                break
        else:
            buckets["other"].append(message)

    return buckets
