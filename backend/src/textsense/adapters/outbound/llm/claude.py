"""Claude client — Anthropic messages API with tier-aware rate limiting.

The tier comes from the store (``claude_tier``) or settings at initialize
time.  Every response's ``anthropic-ratelimit-requests-limit`` header is
mapped back to a tier; when it differs, the client swaps in a limiter for
the new tier and persists the tier for the next process.
"""

from __future__ import annotations

from typing import Any

import httpx

from textsense.adapters.outbound.llm.base import DEFAULT_TEMPERATURE, BaseProviderClient
from textsense.domain.enums import ClaudeTier, ExplanationLevel, ProviderName, SummaryLength
from textsense.domain.exceptions import RequestError
from textsense.domain.value_objects import GenerationOptions
from textsense.ports.outbound import KeyValueStorePort
from textsense.shared.providers.rate_limiter import RateLimiterFactory

LEVEL_INSTRUCTIONS: dict[ExplanationLevel, str] = {
    ExplanationLevel.SIMPLE: (
        "Explain this text in simple, clear terms that anyone can understand. Use everyday "
        "language and avoid technical jargon. Focus on the main ideas."
    ),
    ExplanationLevel.DETAILED: (
        "Provide a comprehensive explanation of this text. Include relevant context, background "
        "information, and explain any technical terms or concepts in detail."
    ),
    ExplanationLevel.TECHNICAL: (
        "Give a technical analysis of this text. Explain methodologies, technical concepts, and "
        "provide detailed insights suitable for an expert audience."
    ),
}

LENGTH_INSTRUCTIONS: dict[SummaryLength, str] = {
    SummaryLength.SHORT: (
        "Summarize this text in 1-2 concise sentences, capturing only the most essential points."
    ),
    SummaryLength.MEDIUM: (
        "Summarize this text in 3-4 sentences, covering the main ideas and key details."
    ),
    SummaryLength.LONG: (
        "Provide a comprehensive summary of this text in 1-2 paragraphs, including important "
        "details and context."
    ),
}

TIER_STORAGE_KEY = "claude_tier"
RATE_LIMIT_HEADER = "anthropic-ratelimit-requests-limit"
VALIDATION_MODEL = "claude-3-haiku-20240307"


class ClaudeClient(BaseProviderClient):
    name = ProviderName.CLAUDE
    credential_key = "claude_api_key"
    default_base_url = "https://api.anthropic.com/v1"
    default_model = "claude-3-5-haiku-latest"
    completion_path = "/messages"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        store: KeyValueStorePort,
        limiter_factory: RateLimiterFactory,
        *,
        tier: ClaudeTier | str = ClaudeTier.TIER1,
        api_version: str = "2023-06-01",
        base_url: str | None = None,
        model: str | None = None,
        validate_credentials: bool = True,
    ) -> None:
        self._factory = limiter_factory
        self._tier = _coerce_tier(tier)
        self._api_version = api_version
        super().__init__(
            http_client,
            store,
            limiter_factory.claude(self._tier),
            base_url=base_url,
            model=model,
            validate_credentials=validate_credentials,
        )

    @property
    def tier(self) -> ClaudeTier:
        return self._tier

    def set_tier(self, tier: ClaudeTier | str) -> None:
        """Swap the limiter for one sized to ``tier``."""
        self._tier = _coerce_tier(tier)
        self._limiter = self._factory.claude(self._tier)
        self._log.info("claude_tier_set", tier=self._tier.value, limiter=self._limiter.identifier)

    def get_status(self) -> dict[str, Any]:
        return {**super().get_status(), "tier": self._tier.value}

    # ── Prompts / payloads ───────────────────────────────────
    def explanation_prompt(self, text: str, level: ExplanationLevel) -> str:
        return (
            f'{LEVEL_INSTRUCTIONS[level]}\n\nText to explain:\n"{text}"\n\n'
            "Please provide your explanation:"
        )

    def summary_prompt(self, text: str, length: SummaryLength) -> str:
        return f'{LENGTH_INSTRUCTIONS[length]}\n\nText to summarize:\n"{text}"\n\nSummary:'

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key or "",
            "anthropic-version": self._api_version,
            "content-type": "application/json",
        }

    def _build_payload(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        options: GenerationOptions,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": (
                options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
            ),
        }
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        return payload

    def _extract_text(self, data: dict[str, Any]) -> str | None:
        blocks = data.get("content") or []
        texts = [
            b.get("text", "")
            for b in blocks
            if isinstance(b, dict) and b.get("type", "text") == "text"
        ]
        return "".join(texts) or None

    def _extract_tokens(self, data: dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("output_tokens") or 0)

    # ── Lifecycle hooks ──────────────────────────────────────
    async def _prepare(self) -> None:
        stored = (await self._store.get([TIER_STORAGE_KEY])).get(TIER_STORAGE_KEY)
        if stored and stored != self._tier.value:
            self.set_tier(stored)

    async def _validate(self) -> None:
        data = await self._post(
            self.completion_path,
            {
                "model": VALIDATION_MODEL,
                "max_tokens": 10,
                "messages": [{"role": "user", "content": "Hi"}],
            },
        )
        if not isinstance(data.get("content"), list):
            raise RequestError(self.name.value, "Unexpected /messages response", raw=data)

    async def _on_response(self, response: httpx.Response) -> None:
        raw_limit = response.headers.get(RATE_LIMIT_HEADER)
        if not raw_limit:
            return
        try:
            limit = int(raw_limit)
        except (TypeError, ValueError):
            self._log.debug("claude_rate_limit_header_unparseable", value=raw_limit)
            return
        detected = RateLimiterFactory.tier_for_limit(limit)
        if detected is self._tier:
            return
        self._log.info("claude_tier_change_detected", previous=self._tier.value, detected=detected.value)
        self.set_tier(detected)
        # The in-flight request was admitted on the old limiter; count it on the new one.
        await self._limiter.admit()
        await self._store.set({TIER_STORAGE_KEY: detected.value})


def _coerce_tier(tier: ClaudeTier | str) -> ClaudeTier:
    try:
        return ClaudeTier(tier)
    except ValueError:
        return ClaudeTier.TIER1
