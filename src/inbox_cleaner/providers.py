"""AI providers and the fallback chain that routes between them.

Three backends are supported: Google Gemini, the HuggingFace inference API
and a rule-based local provider that needs no network. A ProviderChain tries
them in order and remembers which one last answered.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import google.generativeai as genai
import httpx

from .classifier import classify
from .config import ProviderConfig
from .constants import (
    GEMINI_MODEL,
    HUGGINGFACE_API_URL,
    HUGGINGFACE_LABELS,
    HUGGINGFACE_TEXT_MODEL,
    HUGGINGFACE_ZERO_SHOT_MODEL,
    MAX_PROVIDER_INSIGHTS,
    SUMMARY_SAMPLE_SIZE,
)
from .errors import ProviderError, ProviderUnavailableError
from .logger import get_logger
from .models import Category, EmailStats, Message, PatternAnalysis

logger = get_logger(__name__)

HUGGINGFACE_TIMEOUT = 30.0


@dataclass
class InsightRequest:
    """Aggregate numbers handed to a provider for free-text insights."""

    stats: EmailStats
    patterns: PatternAnalysis = field(default_factory=PatternAnalysis)


def summarize_categories(messages: list[Message]) -> str:
    """Comma-separated category counts, e.g. "3 newsletter, 1 work"."""
    counts = Counter(classify(m) for m in messages)
    return ", ".join(f"{counts[c]} {c.value}" for c in Category if counts[c] > 0)


class AIProvider(ABC):
    """One AI backend. Every operation raises ProviderError on failure."""

    name: str = "provider"
    terminal: bool = False  # last resort of a chain

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    async def generate_insights(self, request: InsightRequest) -> str: ...

    @abstractmethod
    async def summarize_emails(self, messages: list[Message]) -> str: ...

    @abstractmethod
    async def categorize_email(self, message: Message) -> str: ...

    def _require_available(self) -> None:
        if not self.is_available():
            raise ProviderUnavailableError(f"{self.name} not available", provider=self.name)


# --- Gemini ---


class GeminiProvider(AIProvider):
    name = "Google Gemini"

    def __init__(self, api_key: str | None, model_name: str = GEMINI_MODEL):
        self.model_name = model_name
        self._model: Any = None
        if api_key:
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(model_name)
            logger.debug("Initialized Gemini model %s", model_name)

    def is_available(self) -> bool:
        return self._model is not None

    async def _generate(self, prompt: str) -> str:
        self._require_available()
        try:
            response = await self._model.generate_content_async(prompt)
            return response.text or ""
        except Exception as exc:
            raise ProviderError(f"Gemini request failed: {exc}", provider=self.name) from exc

    async def generate_insights(self, request: InsightRequest) -> str:
        stats, patterns = request.stats, request.patterns
        prompt = (
            "Analyze this email account data and provide 3 actionable insights for inbox management:\n\n"
            "Email Stats:\n"
            f"- Total emails: {stats.total_emails}\n"
            f"- Unread emails: {stats.unread_emails}\n"
            f"- Newsletters: {stats.newsletters}\n\n"
            "Patterns:\n"
            f"- Old emails: {patterns.old_emails}\n"
            f"- Large emails: {patterns.storage_impact.large_emails}\n"
            f"- Duplicates: {patterns.storage_impact.duplicates}\n\n"
            "Provide exactly 3 short, actionable recommendations (max 50 words each) with emojis:"
        )
        return await self._generate(prompt) or "Unable to generate insights"

    async def summarize_emails(self, messages: list[Message]) -> str:
        sample = "\n".join(
            f"From: {m.sender}, Subject: {m.subject}" for m in messages[:SUMMARY_SAMPLE_SIZE]
        )
        prompt = (
            "Summarize these recent emails into key categories and patterns:\n\n"
            f"{sample}\n\n"
            "Provide a brief summary of the main email types and any notable patterns (max 100 words):"
        )
        return await self._generate(prompt) or "Unable to summarize emails"

    async def categorize_email(self, message: Message) -> str:
        categories = ", ".join(c.value for c in Category)
        prompt = (
            "Categorize this email into exactly one category:\n\n"
            f"Subject: {message.subject}\n"
            f"From: {message.sender}\n"
            f"Snippet: {message.snippet}\n\n"
            f"Categories: {categories}\n\n"
            "Respond with just the category name:"
        )
        text = await self._generate(prompt)
        return text.strip().lower() or Category.OTHER.value


# --- HuggingFace ---


class HuggingFaceProvider(AIProvider):
    name = "HuggingFace"

    def __init__(self, api_key: str | None, client: httpx.AsyncClient | None = None):
        self.api_key = api_key or ""
        self._client = client

    def is_available(self) -> bool:
        return len(self.api_key) > 0

    async def _post(self, model: str, payload: dict[str, Any]) -> Any:
        self._require_available()
        url = f"{HUGGINGFACE_API_URL}/{model}"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            if self._client is None:
                async with httpx.AsyncClient(timeout=HUGGINGFACE_TIMEOUT) as client:
                    response = await client.post(url, json=payload, headers=headers)
            else:
                response = await self._client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"HuggingFace request failed: {exc}", provider=self.name) from exc

        if isinstance(data, dict) and data.get("error"):
            raise ProviderError(f"HuggingFace error: {data['error']}", provider=self.name)
        return data

    async def generate_insights(self, request: InsightRequest) -> str:
        stats = request.stats
        data = await self._post(
            HUGGINGFACE_TEXT_MODEL,
            {
                "inputs": (
                    f"Email analysis: {stats.total_emails} total, {stats.unread_emails} unread, "
                    f"{stats.newsletters} newsletters. Give 3 cleanup tips:"
                ),
                "parameters": {
                    "max_new_tokens": 150,
                    "temperature": 0.3,
                    "return_full_text": False,
                },
            },
        )
        first = data[0] if isinstance(data, list) and data else None
        if isinstance(first, dict) and first.get("generated_text"):
            return first["generated_text"]
        return self._fallback_insights(request)

    def _fallback_insights(self, request: InsightRequest) -> str:
        tips = []
        if request.stats.unread_emails > 100:
            tips.append("📧 High unread count - consider bulk cleanup")
        if request.stats.newsletters > 50:
            tips.append("📰 Many newsletters - unsubscribe from unused ones")
        if request.patterns.old_emails > 200:
            tips.append("🗂️ Archive old emails for better organization")
        return "\n".join(tips[:MAX_PROVIDER_INSIGHTS]) or "Your email management looks good!"

    async def summarize_emails(self, messages: list[Message]) -> str:
        return f"Found {len(messages)} emails: {summarize_categories(messages)}"

    async def categorize_email(self, message: Message) -> str:
        data = await self._post(
            HUGGINGFACE_ZERO_SHOT_MODEL,
            {
                "inputs": f"{message.subject} {message.sender}",
                "parameters": {"candidate_labels": HUGGINGFACE_LABELS},
            },
        )
        labels = data.get("labels") if isinstance(data, dict) else None
        if labels:
            return labels[0]
        return Category.OTHER.value


# --- Local ---


class LocalAIProvider(AIProvider):
    """Rule-based provider. Always available, never touches the network."""

    name = "Local AI"
    terminal = True

    def is_available(self) -> bool:
        return True

    async def generate_insights(self, request: InsightRequest) -> str:
        stats, patterns = request.stats, request.patterns
        insights = []

        if stats.unread_emails > 1000:
            insights.append("🚨 Critical: 1000+ unread emails detected - urgent cleanup needed")
        elif stats.unread_emails > 500:
            insights.append("⚠️ High unread count - consider automated cleanup rules")
        elif stats.unread_emails > 100:
            insights.append("📧 Moderate unread backlog - weekly cleanup recommended")

        if stats.newsletters > 100:
            insights.append("📰 Newsletter overload detected - bulk unsubscribe recommended")
        elif stats.newsletters > 50:
            insights.append("📰 Many newsletters found - review and unsubscribe from unused ones")

        unread_ratio = stats.unread_emails / max(stats.total_emails, 1)
        if unread_ratio > 0.7:
            insights.append("📈 70%+ emails unread - significant productivity impact")
        elif unread_ratio > 0.5:
            insights.append("📈 High unread ratio - consider better email habits")

        large_emails = patterns.storage_impact.large_emails
        if large_emails > 100:
            insights.append("💾 Storage optimization available - 100+ large emails found")
        elif large_emails > 50:
            insights.append("💾 Consider archiving large emails to save space")

        if patterns.storage_impact.duplicates > 20:
            insights.append("📋 Duplicate emails detected - cleanup opportunity available")

        if patterns.old_emails > 1000:
            insights.append("🗂️ 1000+ old emails - archive for better organization")

        if not insights:
            insights = [
                "✅ Email management looks healthy!",
                "💡 Regular weekly cleanup keeps your inbox optimal",
                "🎯 Consider setting up automated rules for efficiency",
            ]

        return "\n".join(insights[:MAX_PROVIDER_INSIGHTS])

    async def summarize_emails(self, messages: list[Message]) -> str:
        return f"Analyzed {len(messages)} emails: {summarize_categories(messages)}"

    async def categorize_email(self, message: Message) -> str:
        return classify(message).value


# --- Chain ---


class ProviderChain:
    """Ordered providers with sticky fallback routing.

    The chain keeps a pointer to the provider that last succeeded and starts
    each call there. On failure it tries the next available provider after
    the failed one, then the terminal provider. Attempts never overlap, so a
    chain must not be shared between concurrent requests.
    """

    name = "Smart AI (Multi-Provider)"

    def __init__(self, providers: list[AIProvider], attempt_timeout: float | None = None):
        self.providers = list(providers)
        self.attempt_timeout = attempt_timeout
        self._current = self._next_available()

    @property
    def current_provider(self) -> AIProvider | None:
        return self._current

    def is_available(self) -> bool:
        return any(p.is_available() for p in self.providers)

    def get_status(self) -> list[dict[str, Any]]:
        return [{"provider": p.name, "available": p.is_available()} for p in self.providers]

    def _next_available(self, after: AIProvider | None = None) -> AIProvider | None:
        start = self.providers.index(after) + 1 if after is not None else 0
        for provider in self.providers[start:]:
            if provider.is_available():
                return provider
        return None

    def _terminal(self) -> AIProvider | None:
        for provider in reversed(self.providers):
            if provider.terminal:
                return provider
        return None

    async def _attempt(self, provider: AIProvider, operation: str, *args: Any) -> str:
        call = getattr(provider, operation)(*args)
        if self.attempt_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.attempt_timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                f"{provider.name} timed out after {self.attempt_timeout}s", provider=provider.name
            ) from exc

    async def _execute(self, operation: str, *args: Any) -> str:
        candidates: list[AIProvider] = []
        if self._current is not None:
            candidates.append(self._current)
            fallback = self._next_available(self._current)
        else:
            fallback = self._next_available()
        if fallback is not None and fallback not in candidates:
            candidates.append(fallback)
        terminal = self._terminal()
        if terminal is not None and terminal not in candidates:
            candidates.append(terminal)

        last_error: Exception | str = "no provider available"
        for provider in candidates:
            try:
                result = await self._attempt(provider, operation, *args)
            except ProviderError as exc:
                logger.warning("%s failed for %s: %s", provider.name, operation, exc)
                last_error = exc
                continue
            except Exception as exc:
                logger.exception("%s raised unexpectedly for %s", provider.name, operation)
                last_error = ProviderError(f"{provider.name}: {exc}", provider=provider.name)
                continue
            logger.info("%s succeeded with %s", operation, provider.name)
            self._current = provider
            return result

        raise ProviderError(f"All AI providers failed for {operation}: {last_error}")

    async def generate_insights(self, request: InsightRequest) -> str:
        return await self._execute("generate_insights", request)

    async def summarize_emails(self, messages: list[Message]) -> str:
        return await self._execute("summarize_emails", messages)

    async def categorize_email(self, message: Message) -> str:
        return await self._execute("categorize_email", message)


def create_provider_chain(config: ProviderConfig) -> ProviderChain:
    """Build the chain in priority order: Gemini, HuggingFace, Local."""
    providers: list[AIProvider] = []
    if config.gemini_key:
        providers.append(GeminiProvider(config.gemini_key, config.gemini_model))
    if config.huggingface_key:
        providers.append(HuggingFaceProvider(config.huggingface_key))
    if config.include_local:
        providers.append(LocalAIProvider())
    return ProviderChain(providers, attempt_timeout=config.attempt_timeout)
