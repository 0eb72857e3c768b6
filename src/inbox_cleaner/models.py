"""Data models for Inbox Cleaner."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Any

_ADDRESS_RE = re.compile(r"<([^>]+)>")


class Category(str, Enum):
    """Semantic category of a message."""

    NEWSLETTER = "newsletter"
    PROMOTIONAL = "promotional"
    WORK = "work"
    PERSONAL = "personal"
    SOCIAL = "social"
    TRANSACTIONAL = "transactional"
    SPAM = "spam"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> Category:
        """Map free-form provider output ("Newsletter.", " work\\n") to a category."""
        words = text.strip().lower().split()
        if not words:
            return cls.OTHER
        try:
            return cls(words[0].strip(".,:;!\"'*"))
        except ValueError:
            return cls.OTHER


@dataclass
class Message:
    """A single mailbox entry as returned by the Gmail gateway."""

    id: str
    thread_id: str = ""
    subject: str = ""
    sender: str = ""  # Full From header value
    recipient: str = ""  # Full To header value
    date: str = ""  # Raw Date header value
    snippet: str = ""
    unread: bool = False
    labels: list[str] = field(default_factory=list)
    size: int = 0
    is_newsletter: bool = False
    unsubscribe_link: str | None = None
    list_unsubscribe: str | None = None

    @property
    def sender_email(self) -> str:
        match = _ADDRESS_RE.search(self.sender)
        if match:
            return match.group(1).strip().lower()
        return self.sender.strip().lower()

    @property
    def has_unsubscribe_header(self) -> bool:
        return bool(self.list_unsubscribe or self.unsubscribe_link)

    @property
    def timestamp(self) -> datetime | None:
        """The parsed Date header, timezone-aware, or None when unparseable."""
        return parse_date(self.date)

    def mark_read(self) -> None:
        self.unread = False


def parse_date(value: str) -> datetime | None:
    """Parse an RFC 2822 or ISO 8601 date. Naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class EmailStats:
    """Mailbox-wide counters."""

    total_emails: int = 0
    unread_emails: int = 0
    newsletters: int = 0
    old_newsletters: int = 0
    storage_used: int = 0


@dataclass
class MessagePage:
    """One page of a message listing."""

    messages: list[Message] = field(default_factory=list)
    next_page_token: str | None = None
    result_size_estimate: int = 0


@dataclass
class EmailContent:
    """Decoded body and headers of a full message."""

    message_id: str
    body: str
    headers: dict[str, str] = field(default_factory=dict)


# --- Unsubscribe ---


class UnsubscribeMethod(str, Enum):
    LINK = "link"
    EMAIL = "email"
    HEADER = "header"
    FORM = "form"


@dataclass
class UnsubscribeInfo:
    """Unsubscribe candidates found in a message."""

    links: list[str] = field(default_factory=list)
    method: UnsubscribeMethod = UnsubscribeMethod.LINK
    confidence: float = 0.0

    @property
    def found(self) -> bool:
        return len(self.links) > 0


@dataclass
class UnsubscribeResult:
    """Outcome of executing an unsubscribe link."""

    success: bool
    message: str
    link: str | None = None
    status_code: int | None = None
    manual_action: str | None = None  # mailto: target left for the user


# --- Insights ---


class InsightType(str, Enum):
    RECOMMENDATION = "recommendation"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class InsightCategory(str, Enum):
    CLEANUP = "cleanup"
    ORGANIZATION = "organization"
    PRODUCTIVITY = "productivity"
    SECURITY = "security"


@dataclass
class InsightAction:
    """A follow-up operation suggested by an insight."""

    label: str
    operation: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Insight:
    """One actionable finding about the mailbox."""

    type: InsightType
    title: str
    description: str
    priority: Priority
    category: InsightCategory
    action: InsightAction | None = None


@dataclass
class StorageImpact:
    large_emails: int = 0
    old_emails: int = 0
    duplicates: int = 0


@dataclass
class PatternAnalysis:
    """Counts derived from a message sample."""

    newsletters: int = 0
    unread_newsletters: int = 0
    old_emails: int = 0
    unsubscribe_opportunities: int = 0
    storage_impact: StorageImpact = field(default_factory=StorageImpact)


@dataclass
class SenderStat:
    email: str
    count: int = 0
    unread_count: int = 0


@dataclass
class TimeAnalysis:
    day_of_week: dict[str, int] = field(default_factory=dict)
    time_of_day: dict[int, int] = field(default_factory=dict)


@dataclass
class HealthScore:
    """Inbox health, each score in [0, 100]."""

    cleanliness: int = 100
    organization: int = 100
    productivity: int = 100


@dataclass
class AnalysisStats:
    top_senders: list[SenderStat] = field(default_factory=list)
    emails_by_day_of_week: dict[str, int] = field(default_factory=dict)
    emails_by_time_of_day: dict[int, int] = field(default_factory=dict)
    unsubscribe_opportunities: int = 0
    storage_impact: StorageImpact = field(default_factory=StorageImpact)


@dataclass
class EmailAnalysis:
    """Result of a full insight analysis."""

    insights: list[Insight] = field(default_factory=list)
    stats: AnalysisStats = field(default_factory=AnalysisStats)
    score: HealthScore = field(default_factory=HealthScore)


# --- Batch results ---


@dataclass
class ItemResult:
    """Per-message outcome inside a batch operation."""

    message_id: str
    success: bool
    message: str
    unsubscribe_info: UnsubscribeInfo | None = None
    error: str | None = None


@dataclass
class BatchResult:
    processed: int = 0
    successful: int = 0
    results: list[ItemResult] = field(default_factory=list)

    def add(self, item: ItemResult) -> None:
        self.results.append(item)
        self.processed += 1
        if item.success:
            self.successful += 1


@dataclass
class ActionResult:
    """Outcome of a housekeeping action such as archiving large emails."""

    action: str
    processed: int
    details: dict[str, Any] = field(default_factory=dict)
