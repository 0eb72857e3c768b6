"""Rule-based classification of messages."""

from __future__ import annotations

from .constants import (
    AUTOMATED_SENDER_MARKERS,
    CATEGORY_RULES,
    NEGATIVE_WORDS,
    NEWSLETTER_INDICATORS,
    PERSONAL_MAX_TEXT_LENGTH,
    POSITIVE_WORDS,
    URGENT_WORDS,
)
from .models import Category, Message


def detect_newsletter(
    subject: str,
    sender: str,
    list_unsubscribe: str | None = None,
    unsubscribe: str | None = None,
) -> bool:
    """Return True if the subject/sender carry a newsletter indicator or an
    unsubscribe header is present."""
    text = f"{subject} {sender}".lower()
    if any(indicator in text for indicator in NEWSLETTER_INDICATORS):
        return True
    return bool(list_unsubscribe or unsubscribe)


def is_newsletter(message: Message) -> bool:
    return detect_newsletter(
        message.subject,
        message.sender,
        message.list_unsubscribe,
        message.unsubscribe_link,
    )


def _fields(message: Message) -> dict[str, str]:
    subject = message.subject.lower()
    sender = message.sender.lower()
    snippet = message.snippet.lower()
    return {
        "subject": subject,
        "sender": sender,
        "text": f"{subject} {sender} {snippet}",
    }


def _looks_personal(message: Message, fields: dict[str, str]) -> bool:
    if any(marker in fields["sender"] for marker in AUTOMATED_SENDER_MARKERS):
        return False
    if "unsubscribe" in fields["text"] or message.has_unsubscribe_header:
        return False
    return len(fields["text"]) < PERSONAL_MAX_TEXT_LENGTH


def classify(message: Message) -> Category:
    """Classify a message into a single category.

    Rules are checked in a fixed order and the first match wins:
    newsletter, promotional, work, social, transactional, personal, other.
    """
    if is_newsletter(message):
        return Category.NEWSLETTER

    fields = _fields(message)
    for category, searched, keywords in CATEGORY_RULES:
        if any(keyword in fields[name] for name in searched for keyword in keywords):
            return Category(category)

    if _looks_personal(message, fields):
        return Category.PERSONAL
    return Category.OTHER


def analyze_sentiment(text: str) -> str:
    """Rough tone of a subject line: urgent, negative, positive or neutral."""
    lowered = text.lower()
    if any(word in lowered for word in URGENT_WORDS):
        return "urgent"

    positive = sum(1 for word in POSITIVE_WORDS if word in lowered)
    negative = sum(1 for word in NEGATIVE_WORDS if word in lowered)
    if negative > positive:
        return "negative"
    if positive > negative:
        return "positive"
    return "neutral"
