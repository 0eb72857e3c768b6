"""Insight generation and inbox health scoring.

Every function here is pure: given a message sample and mailbox stats it
returns fresh results and touches nothing else.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from .constants import (
    DAYS_OF_WEEK,
    DUPLICATE_THRESHOLD,
    HIGH_UNREAD_THRESHOLD,
    LARGE_EMAIL_BYTES,
    LARGE_EMAIL_SEARCH,
    LARGE_EMAIL_THRESHOLD,
    MAX_INSIGHTS,
    OLD_EMAIL_DAYS,
    PHISHING_KEYWORDS,
    SUSPICIOUS_THRESHOLD,
    SUSPICIOUS_TLDS,
    TOP_SENDER_COUNT_THRESHOLD,
    TOP_SENDER_UNREAD_THRESHOLD,
    TOP_SENDERS_LIMIT,
    UNREAD_NEWSLETTER_THRESHOLD,
    UNREAD_RATIO_THRESHOLD,
)
from .models import (
    AnalysisStats,
    EmailAnalysis,
    EmailStats,
    HealthScore,
    Insight,
    InsightAction,
    InsightCategory,
    InsightType,
    Message,
    PatternAnalysis,
    Priority,
    SenderStat,
    StorageImpact,
    TimeAnalysis,
)
from .unsubscribe import extract_domain

_DIGIT_RUN_RE = re.compile(r"[0-9]{5,}")


def analyze(
    messages: list[Message],
    stats: EmailStats,
    now: datetime | None = None,
) -> EmailAnalysis:
    """Analyze a message sample and return ranked insights, stats and scores."""
    patterns = analyze_patterns(messages, now=now)
    top_senders = analyze_senders(messages)
    time_analysis = analyze_time_patterns(messages)

    insights: list[Insight] = []
    insights.extend(generate_cleanup_insights(patterns, stats))
    insights.extend(generate_organization_insights(top_senders, patterns))
    insights.extend(generate_productivity_insights(time_analysis, stats))
    insights.extend(generate_security_insights(messages))

    return EmailAnalysis(
        insights=rank_insights(insights),
        stats=AnalysisStats(
            top_senders=top_senders,
            emails_by_day_of_week=time_analysis.day_of_week,
            emails_by_time_of_day=time_analysis.time_of_day,
            unsubscribe_opportunities=patterns.unsubscribe_opportunities,
            storage_impact=patterns.storage_impact,
        ),
        score=calculate_scores(messages, stats, patterns),
    )


def _is_old(message: Message, cutoff: datetime) -> bool:
    timestamp = message.timestamp
    return timestamp is not None and timestamp < cutoff


def analyze_patterns(messages: list[Message], now: datetime | None = None) -> PatternAnalysis:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=OLD_EMAIL_DAYS)

    newsletters = [m for m in messages if m.is_newsletter]
    keys = [f"{m.sender.lower()}:{m.subject.lower()}" for m in messages]
    old_emails = sum(1 for m in messages if _is_old(m, cutoff))

    return PatternAnalysis(
        newsletters=len(newsletters),
        unread_newsletters=sum(1 for m in newsletters if m.unread),
        old_emails=old_emails,
        unsubscribe_opportunities=sum(1 for m in newsletters if m.has_unsubscribe_header),
        storage_impact=StorageImpact(
            large_emails=sum(1 for m in messages if m.size > LARGE_EMAIL_BYTES),
            old_emails=old_emails,
            duplicates=len(keys) - len(set(keys)),
        ),
    )


def analyze_senders(messages: list[Message]) -> list[SenderStat]:
    """Top senders by message count, with how many of their messages are unread."""
    counts: dict[str, SenderStat] = {}
    for message in messages:
        sender = message.sender.lower()
        stat = counts.setdefault(sender, SenderStat(email=sender))
        stat.count += 1
        if message.unread:
            stat.unread_count += 1

    ranked = sorted(counts.values(), key=lambda s: s.count, reverse=True)
    return ranked[:TOP_SENDERS_LIMIT]


def analyze_time_patterns(messages: list[Message]) -> TimeAnalysis:
    day_of_week = {day: 0 for day in DAYS_OF_WEEK}
    time_of_day = {hour: 0 for hour in range(24)}

    for message in messages:
        timestamp = message.timestamp
        if timestamp is None:
            continue
        day_of_week[DAYS_OF_WEEK[timestamp.weekday()]] += 1
        time_of_day[timestamp.hour] += 1

    return TimeAnalysis(day_of_week=day_of_week, time_of_day=time_of_day)


def generate_cleanup_insights(patterns: PatternAnalysis, stats: EmailStats) -> list[Insight]:
    insights = []

    if stats.unread_emails > HIGH_UNREAD_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.WARNING,
                title="High Unread Email Count",
                description=(
                    f"You have {stats.unread_emails:,} unread emails. "
                    "Consider bulk actions to clean up."
                ),
                priority=Priority.HIGH,
                category=InsightCategory.CLEANUP,
                action=InsightAction(
                    label="Mark Old Emails as Read",
                    operation="mark_old_as_read",
                    params={"days_old": OLD_EMAIL_DAYS},
                ),
            )
        )

    if patterns.unread_newsletters > UNREAD_NEWSLETTER_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.RECOMMENDATION,
                title="Unread Newsletter Cleanup",
                description=(
                    f"You have {patterns.unread_newsletters} unread newsletters. "
                    "Time for a cleanup?"
                ),
                priority=Priority.HIGH,
                category=InsightCategory.CLEANUP,
                action=InsightAction(
                    label="Bulk Unsubscribe",
                    operation="bulk_unsubscribe_newsletters",
                    params={"days_old": OLD_EMAIL_DAYS},
                ),
            )
        )

    large = patterns.storage_impact.large_emails
    if large > LARGE_EMAIL_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.INFO,
                title="Storage Optimization Available",
                description=(
                    f"{large} large emails found. "
                    "Consider archiving or deleting old large emails."
                ),
                priority=Priority.MEDIUM,
                category=InsightCategory.CLEANUP,
                action=InsightAction(
                    label="Find Large Emails",
                    operation="search",
                    params={"query": LARGE_EMAIL_SEARCH},
                ),
            )
        )

    return insights


def generate_organization_insights(
    top_senders: list[SenderStat],
    patterns: PatternAnalysis,
) -> list[Insight]:
    insights = []

    top = top_senders[0] if top_senders else None
    if top and top.count > TOP_SENDER_COUNT_THRESHOLD and top.unread_count > TOP_SENDER_UNREAD_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.RECOMMENDATION,
                title="Frequent Sender Cleanup",
                description=(
                    f"{top.email} has sent you {top.count} emails with {top.unread_count} unread. "
                    "Consider creating a filter or unsubscribing."
                ),
                priority=Priority.MEDIUM,
                category=InsightCategory.ORGANIZATION,
                action=InsightAction(
                    label="Review Sender",
                    operation="search",
                    params={"query": f"from:{top.email}"},
                ),
            )
        )

    duplicates = patterns.storage_impact.duplicates
    if duplicates > DUPLICATE_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.INFO,
                title="Duplicate Emails Detected",
                description=f"Found approximately {duplicates} potential duplicate emails.",
                priority=Priority.LOW,
                category=InsightCategory.ORGANIZATION,
            )
        )

    return insights


def format_hour(hour: int) -> str:
    """12-hour clock label: 0 -> "12 AM", 13 -> "1 PM"."""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def _unread_ratio(stats: EmailStats) -> float:
    return stats.unread_emails / max(stats.total_emails, 1)


def generate_productivity_insights(time_analysis: TimeAnalysis, stats: EmailStats) -> list[Insight]:
    insights = []

    if time_analysis.time_of_day:
        # ties go to the later hour
        hours = sorted(time_analysis.time_of_day, reverse=True)
        peak_hour = max(hours, key=lambda h: time_analysis.time_of_day[h])
        if time_analysis.time_of_day[peak_hour] > 0:
            insights.append(
                Insight(
                    type=InsightType.INFO,
                    title="Email Peak Time Identified",
                    description=(
                        f"Most of your emails arrive around {format_hour(peak_hour)}. "
                        "Consider checking email at this time for efficiency."
                    ),
                    priority=Priority.LOW,
                    category=InsightCategory.PRODUCTIVITY,
                )
            )

    unread_ratio = _unread_ratio(stats)
    if unread_ratio > UNREAD_RATIO_THRESHOLD:
        insights.append(
            Insight(
                type=InsightType.WARNING,
                title="High Unread Ratio",
                description=(
                    f"{unread_ratio * 100:.1f}% of your emails are unread. "
                    "This might be affecting your productivity."
                ),
                priority=Priority.MEDIUM,
                category=InsightCategory.PRODUCTIVITY,
            )
        )

    return insights


def is_suspicious(message: Message) -> bool:
    """Phishing heuristic on subject and sender."""
    sender = message.sender.lower()
    subject = message.subject.lower()

    if any(keyword in subject or keyword in sender for keyword in PHISHING_KEYWORDS):
        return True

    domain = extract_domain(sender)
    if any(domain.endswith(tld) for tld in SUSPICIOUS_TLDS):
        return True
    return bool(_DIGIT_RUN_RE.search(sender))


def generate_security_insights(messages: list[Message]) -> list[Insight]:
    suspicious = sum(1 for m in messages if is_suspicious(m))
    if suspicious <= SUSPICIOUS_THRESHOLD:
        return []

    return [
        Insight(
            type=InsightType.WARNING,
            title="Potential Security Concerns",
            description=f"Found {suspicious} emails that might be suspicious. Review them carefully.",
            priority=Priority.HIGH,
            category=InsightCategory.SECURITY,
        )
    ]


def rank_insights(insights: list[Insight]) -> list[Insight]:
    """Sort by priority (stable within a priority) and keep the top ones."""
    ranked = sorted(insights, key=lambda i: i.priority.rank, reverse=True)
    return ranked[:MAX_INSIGHTS]


def _clamp_score(value: float) -> int:
    return round(min(100.0, max(0.0, value)))


def calculate_scores(
    messages: list[Message],
    stats: EmailStats,
    patterns: PatternAnalysis,
) -> HealthScore:
    sample_size = max(len(messages), 1)

    old_ratio = patterns.old_emails / sample_size
    cleanliness = 100 - _unread_ratio(stats) * 50 - old_ratio * 30

    newsletter_ratio = patterns.unread_newsletters / max(patterns.newsletters, 1)
    duplicate_ratio = patterns.storage_impact.duplicates / sample_size
    organization = 100 - newsletter_ratio * 40 - duplicate_ratio * 20

    productivity = 100 - stats.unread_emails / 100

    return HealthScore(
        cleanliness=_clamp_score(cleanliness),
        organization=_clamp_score(organization),
        productivity=_clamp_score(productivity),
    )
