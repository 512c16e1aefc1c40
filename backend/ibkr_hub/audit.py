"""Prompt and request builders for the generative AI collaborator.

Requests use the OpenAI chat ``content`` part format (``text`` and
``image_url`` parts), which Gemini's OpenAI-compatible endpoint accepts.
"""
from __future__ import annotations

import json
from typing import Any, Iterable, Optional, Sequence

from .models import StrategyReference, Transaction

MAX_REFERENCE_CARDS = 3
MAX_SUMMARY_TRANSACTIONS = 40
DEFAULT_IMAGE_MIME = "image/jpeg"

_AUDIT_TEMPLATE = """Actúa como el Auditor Senior de "Smart Trader". Audita este trade de forma exhaustiva.

CONTEXTO:
- Imagen 1: Gráfico técnico actual.
{calendar_line}
TU MISIÓN:
1. Analizar el setup técnico profundo.
2. Evaluar el riesgo macro si hay calendario adjunto.
3. Validar contra la biblioteca de estrategias del usuario.

OBLIGATORIO: Finaliza con:
[SENTIMENT] LONG: X%, SHORT: Y%
[TRADE_PLAN] ENTRY: Valor, STOP: Valor, TARGET: Valor

INFORME EN ESPAÑOL (Markdown)."""

_PERFORMANCE_TEMPLATE = """Actúa como el motor analítico de "Smart Trader". Analiza este historial de Interactive Brokers y proporciona insights profesionales en español, utilizando datos de mercado actualizados si es necesario:
1. La estrategia más rentable y por qué podría estar funcionando en el contexto actual del mercado.
2. Patrones de riesgo detectados.
3. Recomendaciones concretas.

DATA: {data}

Responde en formato Markdown con encabezados claros e incluye fuentes si usas información externa."""


def image_data_url(image: str, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    """Accept raw base64 or a ``data:`` URL and return a ``data:`` URL."""

    if image.startswith("data:"):
        return image
    return f"data:{mime_type};base64,{image}"


def _text(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def _image(image: str) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": image_data_url(image)}}


def build_audit_prompt(has_calendar: bool) -> str:
    calendar_line = "- Imagen 2: Calendario Económico.\n" if has_calendar else ""
    return _AUDIT_TEMPLATE.format(calendar_line=calendar_line)


def build_audit_request(
    chart_image: str,
    calendar_image: Optional[str] = None,
    references: Sequence[StrategyReference] = (),
) -> list[dict[str, Any]]:
    """Assemble the multimodal content parts for a chart audit."""

    parts = [_text(build_audit_prompt(bool(calendar_image))), _image(chart_image)]
    if calendar_image:
        parts.append(_text("CALENDARIO ECONÓMICO:"))
        parts.append(_image(calendar_image))

    for card in references[:MAX_REFERENCE_CARDS]:
        if card.image:
            parts.append(_text(f"REFERENCIA ESTRATEGIA: {card.title}. {card.description}"))
            parts.append(_image(card.image))
        else:
            parts.append(_text(f"REFERENCIA TEXTO: {card.title}. {card.description}"))
    return parts


def summarize_transactions(transactions: Iterable[Transaction]) -> list[dict[str, Any]]:
    return [
        {
            "date": tx.date,
            "symbol": tx.symbol,
            "pnl": tx.net_amount,
            "strategy": tx.strategy or "Uncategorized",
            "type": tx.transaction_type,
        }
        for tx in transactions
    ]


def build_performance_prompt(transactions: Sequence[Transaction]) -> str:
    summary = summarize_transactions(transactions[:MAX_SUMMARY_TRANSACTIONS])
    return _PERFORMANCE_TEMPLATE.format(data=json.dumps(summary, ensure_ascii=False))


def format_citations(citations: Iterable[tuple[str, str]]) -> str:
    """Render ``(title, url)`` pairs as the markdown sources footer."""

    lines = [f"- [{title}]({url})" for title, url in citations]
    if not lines:
        return ""
    return "\n\n---\n**Fuentes de Mercado:**\n" + "\n".join(lines)


__all__ = [
    "MAX_REFERENCE_CARDS",
    "build_audit_prompt",
    "build_audit_request",
    "build_performance_prompt",
    "format_citations",
    "image_data_url",
    "summarize_transactions",
]
