"""Exceptions raised by Inbox Cleaner."""

from __future__ import annotations


class InboxCleanerError(Exception):
    """Base exception for Inbox Cleaner errors."""


class TransientNetworkError(InboxCleanerError):
    """An outbound HTTP call timed out or the host was unreachable."""


class MalformedContentError(InboxCleanerError):
    """An email body could not be parsed."""


class ProviderError(InboxCleanerError):
    """An AI provider failed to produce an answer."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """Raised when a provider is called without being configured."""


class ValidationError(InboxCleanerError):
    """Caller-supplied input was rejected before any remote call."""


class UpstreamAPIError(InboxCleanerError):
    """A Gmail API call failed (quota, expired auth, 5xx...)."""

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
