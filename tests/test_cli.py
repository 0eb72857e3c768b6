"""Tests for the CLI module."""

import json

import pytest
from click.testing import CliRunner

import inbox_cleaner.cli as cli_module
from inbox_cleaner.cli import cli
from inbox_cleaner.models import ActionResult, BatchResult, EmailStats, ItemResult


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point config at a temp dir and drop any AI keys from the environment."""
    monkeypatch.setenv("GMAIL_CREDENTIALS_FILE", str(tmp_path / "nonexistent.json"))
    monkeypatch.setenv("GMAIL_TOKEN_FILE", str(tmp_path / "token.json"))
    monkeypatch.delenv("GOOGLE_GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)


@pytest.fixture
def fake_service(monkeypatch):
    service = object()
    monkeypatch.setattr(cli_module, "get_gmail_service", lambda config=None: service)
    return service


def test_cli_help():
    """CLI --help should work and show commands."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("auth", "stats", "insights", "ai-insights", "unsubscribe", "cleanup", "forward"):
        assert command in result.output


def test_cli_version():
    """CLI --version should show version."""
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_stats_no_credentials():
    """Stats without credentials should show clear error."""
    runner = CliRunner()
    result = runner.invoke(cli, ["stats"])
    assert result.exit_code != 0
    assert "Credentials file not found" in result.output


def test_unsubscribe_dry_run(fake_service, monkeypatch):
    calls = []

    async def fake_unsubscribe(service, ids, execute=True, client=None):
        calls.append((service, ids, execute))
        batch = BatchResult()
        batch.add(ItemResult(message_id="m1", success=True, message="Would unsubscribe via https://x.example/u"))
        return batch

    monkeypatch.setattr(cli_module.actions, "unsubscribe_messages", fake_unsubscribe)

    runner = CliRunner()
    result = runner.invoke(cli, ["unsubscribe", "m1"])

    assert result.exit_code == 0
    assert calls == [(fake_service, ["m1"], False)]
    assert "DRY RUN" in result.output


def test_forward_rejects_bad_address(fake_service):
    runner = CliRunner()
    result = runner.invoke(cli, ["forward", "m1", "not-an-address"])
    assert result.exit_code != 0
    assert "Invalid email address" in result.output


def test_cleanup_defaults_to_dry_run():
    runner = CliRunner()
    result = runner.invoke(cli, ["cleanup", "mark-old-read"])
    assert result.exit_code == 0
    assert "DRY RUN" in result.output


def test_insights_export_json(fake_service, monkeypatch, tmp_path, newsletter_message, personal_message):
    async def fake_scan(service, query="", max_results=200, callback=None):
        return [newsletter_message, personal_message]

    monkeypatch.setattr(cli_module, "scan_mailbox", fake_scan)
    monkeypatch.setattr(
        cli_module, "get_email_stats", lambda service: EmailStats(total_emails=10, unread_emails=5)
    )

    output = tmp_path / "analysis.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["insights", "--include-old", "-o", str(output)])

    assert result.exit_code == 0, result.output
    data = json.loads(output.read_text())
    assert set(data) == {"insights", "stats", "score"}
    assert data["insights"][0]["title"] == "High Unread Ratio"


def test_categorize_uses_local_provider(fake_service, monkeypatch, metadata_response):
    monkeypatch.setattr(
        cli_module,
        "get_message",
        lambda service, message_id: metadata_response(message_id, sender="Digest <noreply@news.example>"),
    )

    runner = CliRunner()
    result = runner.invoke(cli, ["categorize", "m1"])

    assert result.exit_code == 0, result.output
    assert "newsletter" in result.output
    assert "Local AI" in result.output


@pytest.fixture
def newsletter_sample(fake_service, monkeypatch, make_message):
    messages = [
        make_message(f"nl{i}", sender=f"news{i}@letters.example", unread=True, is_newsletter=True)
        for i in range(60)
    ]

    async def fake_scan(service, query="", max_results=200, callback=None):
        return messages

    monkeypatch.setattr(cli_module, "scan_mailbox", fake_scan)
    monkeypatch.setattr(
        cli_module,
        "get_email_stats",
        lambda service: EmailStats(total_emails=1000, unread_emails=600, newsletters=60),
    )
    return messages


def test_insights_apply_dry_run(newsletter_sample, monkeypatch):
    calls = []

    async def fake_run(service, action, execute=True, client=None):
        calls.append(action)

    monkeypatch.setattr(cli_module.actions, "run_insight_action", fake_run)

    runner = CliRunner()
    result = runner.invoke(cli, ["insights", "--apply", "1"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN" in result.output
    assert calls == []


def test_insights_apply_execute(newsletter_sample, fake_service, monkeypatch):
    calls = []

    async def fake_run(service, action, execute=True, client=None):
        calls.append((service, action.operation, execute))
        return ActionResult(action=action.operation, processed=20)

    monkeypatch.setattr(cli_module.actions, "run_insight_action", fake_run)

    runner = CliRunner()
    result = runner.invoke(cli, ["insights", "--apply", "1", "--execute"])

    assert result.exit_code == 0, result.output
    assert calls == [(fake_service, "bulk_unsubscribe_newsletters", True)]
    assert "processed 20 messages" in result.output


def test_insights_apply_out_of_range(newsletter_sample):
    runner = CliRunner()
    result = runner.invoke(cli, ["insights", "--apply", "9"])
    assert result.exit_code != 0
    assert "no insight #9" in result.output


def test_mark_read_command(fake_service, monkeypatch):
    calls = []

    async def fake_mark_read(service, ids):
        calls.append((service, ids))
        return ActionResult(action="mark_read", processed=len(ids))

    monkeypatch.setattr(cli_module.actions, "mark_read", fake_mark_read)

    runner = CliRunner()
    result = runner.invoke(cli, ["mark-read", "a", "b"])

    assert result.exit_code == 0, result.output
    assert calls == [(fake_service, ["a", "b"])]


def test_bad_attempt_timeout_is_reported(monkeypatch):
    monkeypatch.setenv("AI_ATTEMPT_TIMEOUT", "soon")
    runner = CliRunner()
    result = runner.invoke(cli, ["stats"])
    assert result.exit_code != 0
    assert "AI_ATTEMPT_TIMEOUT" in result.output
