"""Groq client — OpenAI-compatible chat-completions API."""

from __future__ import annotations

from typing import Any

from textsense.adapters.outbound.llm.base import DEFAULT_TEMPERATURE, BaseProviderClient
from textsense.domain.enums import ExplanationLevel, ProviderName, SummaryLength
from textsense.domain.exceptions import RequestError
from textsense.domain.value_objects import GenerationOptions

LEVEL_INSTRUCTIONS: dict[ExplanationLevel, str] = {
    ExplanationLevel.SIMPLE: (
        "Explain this text in simple terms that a 12-year-old could understand. "
        "Use everyday language and avoid jargon."
    ),
    ExplanationLevel.DETAILED: (
        "Provide a comprehensive explanation of this text. Include context, background "
        "information, and explain any technical terms or concepts."
    ),
    ExplanationLevel.TECHNICAL: (
        "Give a technical analysis of this text. Explain technical concepts, methodologies, "
        "and provide detailed insights for an expert audience."
    ),
}

LENGTH_INSTRUCTIONS: dict[SummaryLength, str] = {
    SummaryLength.SHORT: "Summarize this text in 1-2 sentences.",
    SummaryLength.MEDIUM: "Summarize this text in 3-4 sentences.",
    SummaryLength.LONG: "Provide a detailed summary of this text in 1-2 paragraphs.",
}

DEFAULT_TOP_P = 0.9


class GroqClient(BaseProviderClient):
    name = ProviderName.GROQ
    credential_key = "groq_api_key"
    default_base_url = "https://api.groq.com/openai/v1"
    default_model = "llama-3.1-8b-instant"
    completion_path = "/chat/completions"

    def explanation_prompt(self, text: str, level: ExplanationLevel) -> str:
        return f'{LEVEL_INSTRUCTIONS[level]}\n\nText to explain:\n"{text}"\n\nExplanation:'

    def summary_prompt(self, text: str, length: SummaryLength) -> str:
        return f'{LENGTH_INSTRUCTIONS[length]}\n\nText to summarize:\n"{text}"\n\nSummary:'

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        options: GenerationOptions,
    ) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": (
                options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
            ),
            "top_p": options.top_p if options.top_p is not None else DEFAULT_TOP_P,
            "stream": False,
        }

    def _extract_text(self, data: dict[str, Any]) -> str | None:
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        return message.get("content")

    def _extract_tokens(self, data: dict[str, Any]) -> int:
        usage = data.get("usage") or {}
        return int(usage.get("total_tokens") or 0)

    async def _validate(self) -> None:
        data = await self._get("/models")
        if not isinstance(data.get("data"), list):
            raise RequestError(self.name.value, "Unexpected /models response", raw=data)
