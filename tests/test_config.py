"""Tests for configuration loading."""

from pathlib import Path

import pytest

from inbox_cleaner.config import Config
from inbox_cleaner.constants import CREDENTIALS_PATH, GEMINI_MODEL
from inbox_cleaner.errors import ValidationError


def test_load_defaults(monkeypatch):
    for name in (
        "GOOGLE_GEMINI_API_KEY",
        "HUGGINGFACE_API_KEY",
        "AI_INCLUDE_LOCAL",
        "GEMINI_MODEL",
        "AI_ATTEMPT_TIMEOUT",
        "GMAIL_CREDENTIALS_FILE",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)

    config = Config.load()

    assert config.providers.gemini_key is None
    assert config.providers.include_local is True
    assert config.providers.gemini_model == GEMINI_MODEL
    assert config.providers.attempt_timeout is None
    assert config.gmail.credentials_file == CREDENTIALS_PATH
    assert config.logging.level == "INFO"
    assert config.logging.log_file is None


def test_load_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "g-key")
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf-key")
    monkeypatch.setenv("AI_INCLUDE_LOCAL", "false")
    monkeypatch.setenv("AI_ATTEMPT_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "app.log"))

    config = Config.load()

    assert config.providers.gemini_key == "g-key"
    assert config.providers.huggingface_key == "hf-key"
    assert config.providers.include_local is False
    assert config.providers.attempt_timeout == 2.5
    assert config.logging.level == "DEBUG"
    assert config.logging.log_file == Path(tmp_path / "app.log")


def test_bad_attempt_timeout(monkeypatch):
    monkeypatch.setenv("AI_ATTEMPT_TIMEOUT", "soon")
    with pytest.raises(ValidationError, match="AI_ATTEMPT_TIMEOUT"):
        Config.load()
