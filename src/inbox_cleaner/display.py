"""Rich-based display functions for Inbox Cleaner."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Prompt
from rich.table import Table

from .models import ActionResult, BatchResult, EmailAnalysis, EmailStats, HealthScore, Message, Priority

console = Console()

_PRIORITY_COLORS = {Priority.HIGH: "red", Priority.MEDIUM: "yellow", Priority.LOW: "green"}


def _score_color(score: int) -> str:
    """Return a Rich color name for a 0-100 health score."""
    if score >= 80:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def create_progress(description: str) -> Progress:
    """Create a configured Rich Progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold blue]{description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def display_stats(stats: EmailStats, email_address: str | None = None) -> None:
    lines = []
    if email_address:
        lines.append(f"[bold]Account:[/bold] {email_address}")
    lines.extend(
        [
            f"[bold]Total emails:[/bold] {stats.total_emails:,}",
            f"[bold]Unread:[/bold] {stats.unread_emails:,}",
            f"[bold]Newsletters (sampled):[/bold] {stats.newsletters}",
            f"[bold]Old newsletters:[/bold] {stats.old_newsletters}",
        ]
    )
    console.print(Panel("\n".join(lines), title="Mailbox Stats"))


def display_scores(score: HealthScore) -> None:
    parts = []
    for label, value in (
        ("Cleanliness", score.cleanliness),
        ("Organization", score.organization),
        ("Productivity", score.productivity),
    ):
        color = _score_color(value)
        parts.append(f"{label}: [{color}]{value}[/{color}]")
    console.print(Panel("  |  ".join(parts), title="Inbox Health"))


def display_analysis(analysis: EmailAnalysis) -> None:
    """Display ranked insights, health scores and top senders."""
    display_scores(analysis.score)

    if analysis.insights:
        table = Table(title="Insights")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Priority")
        table.add_column("Category")
        table.add_column("Insight")
        table.add_column("Suggested action")

        for idx, insight in enumerate(analysis.insights, start=1):
            color = _PRIORITY_COLORS[insight.priority]
            table.add_row(
                str(idx),
                f"[{color}]{insight.priority.value}[/{color}]",
                insight.category.value,
                f"[bold]{insight.title}[/bold]\n{insight.description}",
                insight.action.label if insight.action else "",
            )
        console.print(table)
    else:
        console.print("[green]No issues found. Your inbox looks healthy.[/green]")

    if analysis.stats.top_senders:
        senders = Table(title="Top Senders")
        senders.add_column("Sender")
        senders.add_column("Count", justify="right")
        senders.add_column("Unread", justify="right")
        for sender in analysis.stats.top_senders:
            senders.add_row(sender.email, str(sender.count), str(sender.unread_count))
        console.print(senders)

    impact = analysis.stats.storage_impact
    console.print(
        Panel(
            f"Unsubscribe opportunities: {analysis.stats.unsubscribe_opportunities}  |  "
            f"Large emails: {impact.large_emails}  |  "
            f"Old emails: {impact.old_emails}  |  "
            f"Duplicates: {impact.duplicates}",
            title="Summary",
        )
    )


def display_newsletters(groups: dict[str, list[Message]], title: str = "Newsletters") -> None:
    """Display newsletters grouped by domain or bucket, largest group first."""
    table = Table(title=title)
    table.add_column("Group")
    table.add_column("Count", justify="right")
    table.add_column("Sample subject")
    table.add_column("Message IDs", style="dim")

    for name, messages in sorted(groups.items(), key=lambda item: -len(item[1])):
        if not messages:
            continue
        table.add_row(
            name,
            str(len(messages)),
            messages[0].subject,
            ", ".join(m.id for m in messages[:3]) + (" ..." if len(messages) > 3 else ""),
        )

    console.print(table)


def display_batch_result(batch: BatchResult, title: str = "Unsubscribe Results") -> None:
    table = Table(title=title)
    table.add_column("Message ID")
    table.add_column("Result")
    table.add_column("Details")

    for item in batch.results:
        status = "[green]ok[/green]" if item.success else "[red]failed[/red]"
        details = item.message
        if item.error:
            details = f"{details} ({item.error})"
        table.add_row(item.message_id, status, details)

    console.print(table)
    console.print(f"[bold]{batch.successful}/{batch.processed}[/bold] succeeded")


def display_action_result(result: ActionResult) -> None:
    console.print(
        Panel(
            f"[bold green]{result.action}: processed {result.processed} messages.[/bold green]",
            title="Done",
        )
    )


def display_provider_result(provider: str | None, text: str, title: str) -> None:
    console.print(Panel(text, title=title, subtitle=provider or ""))


def confirm_action(description: str, count: int) -> bool:
    """Prompt the user to confirm a destructive action."""
    console.print(Panel(f"[bold]{description}[/bold]\n\nMessages affected: {count}", title="Confirm"))
    answer = Prompt.ask('[bold red]Type "YES" to confirm[/bold red]', console=console)
    return answer == "YES"
