"""Prompt and multimodal request builder tests."""

from __future__ import annotations

import json

from ibkr_hub.audit import (
    MAX_REFERENCE_CARDS,
    build_audit_request,
    build_performance_prompt,
    format_citations,
    image_data_url,
)
from ibkr_hub.models import StrategyReference, Transaction


def _texts(parts):
    return [part["text"] for part in parts if part["type"] == "text"]


def test_chart_only_request():
    parts = build_audit_request("QUJD")

    assert [part["type"] for part in parts] == ["text", "image_url"]
    assert "Imagen 2" not in parts[0]["text"]
    assert "[SENTIMENT] LONG: X%, SHORT: Y%" in parts[0]["text"]
    assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,QUJD"


def test_empty_calendar_is_treated_as_absent():
    parts = build_audit_request("QUJD", "")

    assert len(parts) == 2
    assert "Imagen 2" not in parts[0]["text"]
    assert "CALENDARIO" not in " ".join(_texts(parts))


def test_calendar_and_reference_cards():
    references = [
        StrategyReference(title="ORB", description="Ruptura del rango inicial", image="Q0FSRDE="),
        StrategyReference(title="VWAP", description="Rebote en VWAP"),
        StrategyReference(title="Gap", description="Gap and go", image="data:image/png;base64,R0FQ"),
        StrategyReference(title="Extra", description="No se envía", image="RVhUUkE="),
    ]

    parts = build_audit_request("data:image/jpeg;base64,Q0hBUlQ=", "Q0FM", references)
    texts = _texts(parts)

    assert "- Imagen 2: Calendario Económico." in texts[0]
    assert "CALENDARIO ECONÓMICO:" in texts
    assert "REFERENCIA ESTRATEGIA: ORB. Ruptura del rango inicial" in texts
    assert "REFERENCIA TEXTO: VWAP. Rebote en VWAP" in texts
    assert not any("Extra" in text for text in texts)
    assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,Q0hBUlQ="
    assert parts[-1]["image_url"]["url"] == "data:image/png;base64,R0FQ"
    labelled = [t for t in texts if t.startswith("REFERENCIA")]
    assert len(labelled) == MAX_REFERENCE_CARDS


def test_performance_prompt_summarises_first_forty():
    transactions = [
        Transaction(date=f"2024-01-{i % 28 + 1:02d}", symbol=f"S{i}", quantity=1, price=1, net_amount=float(i))
        for i in range(50)
    ]

    prompt = build_performance_prompt(transactions)
    payload = json.loads(prompt.split("DATA: ", 1)[1].split("\n", 1)[0])

    assert len(payload) == 40
    assert payload[0] == {"date": "2024-01-01", "symbol": "S0", "pnl": 0.0, "strategy": "Uncategorized", "type": ""}


def test_citation_footer():
    assert format_citations([]) == ""
    footer = format_citations([("Reuters", "https://reuters.com/a")])
    assert footer.startswith("\n\n---\n**Fuentes de Mercado:**\n")
    assert footer.endswith("- [Reuters](https://reuters.com/a)")


def test_image_data_url_keeps_existing_data_urls():
    assert image_data_url("data:image/png;base64,AAA") == "data:image/png;base64,AAA"
    assert image_data_url("AAA", "image/png") == "data:image/png;base64,AAA"
