"""Generative AI client for chart audits and performance insights.

Talks to any OpenAI-compatible chat completions endpoint through the
``openai`` SDK; the default configuration points at Gemini.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from app.config import get_settings
from ibkr_hub.audit import MAX_REFERENCE_CARDS, build_audit_request, build_performance_prompt, format_citations
from ibkr_hub.models import StrategyReference, Transaction

logger = logging.getLogger(__name__)


class AIConfigurationError(RuntimeError):
    """Raised when no API key is configured for the AI collaborator."""

    def __init__(self) -> None:
        super().__init__("API Key no configurada. Define GEMINI_API_KEY o API_KEY en el entorno.")


class AIServiceError(RuntimeError):
    """Raised when the AI endpoint fails or returns no content."""


def _citations(message: Any) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for annotation in getattr(message, "annotations", None) or []:
        citation = getattr(annotation, "url_citation", None)
        url = getattr(citation, "url", None)
        if url:
            pairs.append((getattr(citation, "title", None) or url, url))
    return pairs


class LLMClient:
    """Thin async wrapper that owns prompt dispatch and response unpacking."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        reasoning_effort: str | None = None,
        timeout: float | None = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.ai_api_key
        self._model = model or settings.ai_model
        self._base_url = base_url or settings.ai_base_url
        self._reasoning_effort = reasoning_effort if reasoning_effort is not None else settings.ai_reasoning_effort
        self._timeout = timeout or settings.ai_timeout_seconds
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise AIConfigurationError()
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def _complete(self, content: str | list[dict[str, Any]]) -> Any:
        client = self._get_client()
        options: dict[str, Any] = {}
        if self._reasoning_effort:
            options["reasoning_effort"] = self._reasoning_effort
        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": content}],
                **options,
            )
        except OpenAIError as exc:
            logger.error("AI completion failed: %s", exc)
            raise AIServiceError(str(exc)) from exc

        if not response.choices:
            raise AIServiceError("La IA no devolvió ninguna respuesta.")
        return response.choices[0].message

    async def audit_chart(
        self,
        chart_image: str,
        calendar_image: str | None = None,
        references: Sequence[StrategyReference] = (),
    ) -> str:
        """Return the markdown audit report, trailers included."""

        parts = build_audit_request(chart_image, calendar_image, references)
        logger.info(
            "Requesting chart audit (calendar=%s, references=%d)",
            calendar_image is not None,
            min(len(references), MAX_REFERENCE_CARDS),
        )
        message = await self._complete(parts)
        text = message.content or ""
        if not text.strip():
            raise AIServiceError("La IA devolvió un informe vacío.")
        return text

    async def analyze_performance(self, transactions: Iterable[Transaction]) -> str:
        """Return the insights text with a sources footer, or the error message."""

        try:
            message = await self._complete(build_performance_prompt(list(transactions)))
        except (AIConfigurationError, AIServiceError) as exc:
            logger.warning("Performance analysis unavailable: %s", exc)
            return str(exc)
        text = message.content or "No se pudo generar el análisis."
        return text + format_citations(_citations(message))


__all__ = ["AIConfigurationError", "AIServiceError", "LLMClient"]
