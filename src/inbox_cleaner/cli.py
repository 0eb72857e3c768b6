"""CLI entry point for Inbox Cleaner."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from . import actions
from .auth import check_auth, get_gmail_service
from .config import Config
from .constants import DEFAULT_SAMPLE_SIZE, OLD_EMAIL_DAYS, REMOVE_ACTIONS
from .display import (
    confirm_action,
    console,
    create_progress,
    display_action_result,
    display_analysis,
    display_batch_result,
    display_newsletters,
    display_provider_result,
    display_stats,
)
from .errors import InboxCleanerError
from .export import export_analysis
from .gmail_client import get_email_stats, get_message, get_profile, message_from_response, search_newsletters
from .insights import analyze
from .logger import setup_logger
from .models import BatchResult, Category, EmailAnalysis, Message
from .providers import create_provider_chain
from .scanner import sample_query, scan_mailbox
from .unsubscribe import categorize_newsletters, group_by_domain

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(coro)
    except InboxCleanerError as e:
        raise click.ClickException(str(e)) from e


def _service(config: Config):
    try:
        return get_gmail_service(config.gmail)
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e


async def _sample(service, sample_size: int, include_old: bool) -> list[Message]:
    with create_progress("Sampling messages") as progress:
        task = progress.add_task("sampling", total=sample_size)

        def on_page(count: int) -> None:
            progress.update(task, completed=count)

        return await scan_mailbox(
            service,
            query=sample_query(include_old),
            max_results=sample_size,
            callback=on_page,
        )


def _apply_insight(service, analysis: EmailAnalysis, index: int, execute: bool) -> None:
    if not 1 <= index <= len(analysis.insights):
        raise click.BadParameter(f"there is no insight #{index}", param_hint="--apply")
    action = analysis.insights[index - 1].action
    if action is None:
        raise click.ClickException(f"Insight #{index} has no suggested action.")

    if not execute and action.operation != "search":
        console.print(
            f"[yellow][DRY RUN] Would run {action.operation} {action.params}. "
            "Use --execute to modify your mailbox.[/yellow]"
        )
        return

    result = _run(actions.run_insight_action(service, action, execute=execute))
    display_action_result(result)


@click.group()
@click.version_option(version="0.1.0", prog_name="inbox-cleaner")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Inbox Cleaner - triage newsletters, unsubscribe and get inbox insights."""
    try:
        config = Config.load()
    except InboxCleanerError as e:
        raise click.ClickException(str(e)) from e
    setup_logger(
        log_file=config.logging.log_file,
        level="DEBUG" if verbose else config.logging.level,
    )
    ctx.obj = config


@cli.command()
@click.pass_obj
def auth(config: Config) -> None:
    """Test Gmail authentication (runs the OAuth flow when needed)."""
    email_address = check_auth(config.gmail)
    if email_address is None:
        raise click.ClickException("Authentication failed.")
    console.print(f"[green]Authenticated as {email_address}[/green]")


@cli.command()
@click.pass_obj
def stats(config: Config) -> None:
    """Show mailbox counters."""
    service = _service(config)

    async def _stats():
        profile = await asyncio.to_thread(get_profile, service)
        return profile, await asyncio.to_thread(get_email_stats, service)

    profile, email_stats = _run(_stats())
    display_stats(email_stats, profile.get("emailAddress"))


@cli.command()
@click.option("--sample-size", default=DEFAULT_SAMPLE_SIZE, type=int, help="Messages to analyze.")
@click.option("--include-old", is_flag=True, help="Sample the whole mailbox, not only the last 30 days.")
@click.option("-o", "--export", "output", default=None, help="Write the analysis to a .csv or .json file.")
@click.option("--apply", "apply_index", type=int, default=None, help="Run the suggested action of insight N.")
@click.option("--execute", is_flag=True, help="Actually run the applied action (default is dry-run).")
@click.pass_obj
def insights(
    config: Config,
    sample_size: int,
    include_old: bool,
    output: str | None,
    apply_index: int | None,
    execute: bool,
) -> None:
    """Analyze a sample of your mailbox and show ranked insights."""
    service = _service(config)

    async def _analyze():
        messages = await _sample(service, sample_size, include_old)
        email_stats = await asyncio.to_thread(get_email_stats, service)
        return analyze(messages, email_stats)

    analysis = _run(_analyze())
    display_analysis(analysis)

    if output:
        fmt = "json" if Path(output).suffix.lower() == ".json" else "csv"
        export_analysis(analysis, format=fmt, output_path=output)
        console.print(f"Results saved to {output}")

    if apply_index is not None:
        _apply_insight(service, analysis, apply_index, execute)


@cli.command(name="ai-insights")
@click.option("--sample-size", default=DEFAULT_SAMPLE_SIZE, type=int, help="Messages to analyze.")
@click.pass_obj
def ai_insights(config: Config, sample_size: int) -> None:
    """Ask the AI provider chain for inbox management tips."""
    service = _service(config)
    chain = create_provider_chain(config.providers)

    async def _generate():
        messages = await _sample(service, sample_size, include_old=True)
        email_stats = await asyncio.to_thread(get_email_stats, service)
        return await chain.generate_insights(actions.build_insight_request(messages, email_stats))

    text = _run(_generate())
    provider = chain.current_provider.name if chain.current_provider else None
    display_provider_result(provider, text, title="AI Insights")


@cli.command()
@click.option("--sample-size", default=50, type=int, help="Messages to summarize.")
@click.pass_obj
def summarize(config: Config, sample_size: int) -> None:
    """Summarize recent messages by category."""
    service = _service(config)
    chain = create_provider_chain(config.providers)

    async def _summarize():
        messages = await _sample(service, sample_size, include_old=False)
        return await chain.summarize_emails(messages)

    text = _run(_summarize())
    provider = chain.current_provider.name if chain.current_provider else None
    display_provider_result(provider, text, title="Summary")


@cli.command()
@click.argument("message_id")
@click.pass_obj
def categorize(config: Config, message_id: str) -> None:
    """Categorize a single message."""
    service = _service(config)
    chain = create_provider_chain(config.providers)

    async def _categorize():
        response = await asyncio.to_thread(get_message, service, message_id)
        message = message_from_response(response)
        return message, await chain.categorize_email(message)

    message, answer = _run(_categorize())
    category = Category.parse(answer)
    provider = chain.current_provider.name if chain.current_provider else "?"
    console.print(f"[bold]{message.subject}[/bold]\n{message.sender}")
    console.print(f"Category: [cyan]{category}[/cyan] [dim](via {provider})[/dim]")


@cli.command()
@click.option("--days-old", default=OLD_EMAIL_DAYS, type=int, help="Only newsletters older than this.")
@click.option(
    "--group-by",
    type=click.Choice(["domain", "type"]),
    default="domain",
    help="Group by sender domain or newsletter type.",
)
@click.pass_obj
def newsletters(config: Config, days_old: int, group_by: str) -> None:
    """List old newsletters without user labels."""
    service = _service(config)
    found = _run(asyncio.to_thread(search_newsletters, service, days_old))

    if not found:
        console.print("[yellow]No newsletters found.[/yellow]")
        return

    groups = group_by_domain(found) if group_by == "domain" else categorize_newsletters(found)
    display_newsletters(groups, title=f"Newsletters older than {days_old} days ({len(found)})")


@cli.command()
@click.argument("message_ids", nargs=-1, required=True)
@click.option("--execute", is_flag=True, help="Actually follow unsubscribe links (default is dry-run).")
@click.pass_obj
def unsubscribe(config: Config, message_ids: tuple[str, ...], execute: bool) -> None:
    """Find and follow unsubscribe links for the given messages."""
    service = _service(config)
    batch = _run(actions.unsubscribe_messages(service, list(message_ids), execute=execute))
    display_batch_result(batch)

    if not execute:
        console.print(
            "\n[yellow][DRY RUN] No unsubscribe requests were sent. "
            "Use --execute to actually unsubscribe.[/yellow]"
        )


@cli.command()
@click.argument("action", type=click.Choice(["mark-old-read", "archive-large", "bulk-unsubscribe"]))
@click.option("--days-old", default=OLD_EMAIL_DAYS, type=int, help="Age threshold in days.")
@click.option("--execute", is_flag=True, help="Actually modify the mailbox (default is dry-run).")
@click.pass_obj
def cleanup(config: Config, action: str, days_old: int, execute: bool) -> None:
    """Run a bulk housekeeping action."""
    if action == "bulk-unsubscribe":
        service = _service(config)
        result = _run(actions.bulk_unsubscribe_newsletters(service, days_old=days_old, execute=execute))
        display_batch_result(
            BatchResult(
                processed=result.processed,
                successful=result.details["successful"],
                results=result.details["results"],
            )
        )
        if not execute:
            console.print("\n[yellow][DRY RUN] Use --execute to actually unsubscribe.[/yellow]")
        return

    if not execute:
        console.print(f"[yellow][DRY RUN] Would run {action}. Use --execute to modify your mailbox.[/yellow]")
        return

    service = _service(config)
    if action == "mark-old-read":
        result = _run(actions.mark_old_as_read(service, days_old=days_old))
    else:
        result = _run(actions.archive_large_emails(service))
    display_action_result(result)


@cli.command()
@click.argument("message_ids", nargs=-1, required=True)
@click.option("--action", type=click.Choice(REMOVE_ACTIONS), default="trash", help="How to remove.")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_obj
def remove(config: Config, message_ids: tuple[str, ...], action: str, yes: bool) -> None:
    """Trash, archive or permanently delete messages."""
    if action == "delete" and not yes:
        if not confirm_action("Permanently delete messages", len(message_ids)):
            console.print("[dim]Cancelled.[/dim]")
            return

    service = _service(config)
    result = _run(actions.remove_messages(service, list(message_ids), action=action))
    display_action_result(result)


@cli.command()
@click.argument("message_id")
@click.argument("to")
@click.option("--note", default=None, help="Text to put above the forwarded message.")
@click.pass_obj
def forward(config: Config, message_id: str, to: str, note: str | None) -> None:
    """Forward a message to another address."""
    service = _service(config)
    _run(actions.forward_message(service, message_id, to, note))
    console.print(f"[green]Forwarded {message_id} to {to}[/green]")


@cli.command(name="mark-read")
@click.argument("message_ids", nargs=-1, required=True)
@click.pass_obj
def mark_read(config: Config, message_ids: tuple[str, ...]) -> None:
    """Mark messages as read."""
    service = _service(config)
    result = _run(actions.mark_read(service, list(message_ids)))
    display_action_result(result)
