"""Parser for Interactive Brokers style activity exports.

The exports mix several sections in one delimited file. Each row starts with
the section name and the row kind (``Header``/``Data``/``Total``), e.g.::

    Summary,Data,Starting Cash,5000
    Transaction History,Header,Date,Account,Description,...
    Transaction History,Data,2024-01-15,U123,...

Only the starting cash of the summary section and the data rows of the
transaction history section are used.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from .models import Transaction

logger = logging.getLogger(__name__)

DEFAULT_IMPORT_STRATEGY = "Importación IBKR"
STARTING_CASH_LABELS = ("starting cash", "efectivo inicial")

_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("date", "fecha"),
    "account": ("account", "cuenta"),
    "description": ("description", "descripción"),
    "transaction_type": ("transaction type", "transaction t"),
    "symbol": ("symbol", "símbolo"),
    "quantity": ("quantity", "cantidad"),
    "price": ("price", "precio"),
    "gross_amount": ("gross amount", "gross amoun"),
    "commission": ("commission", "comisión"),
    "net_amount": ("net amount", "net"),
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


class ImportParseError(ValueError):
    """Raised when an export cannot be turned into transactions."""


class NoImportDataError(ImportParseError):
    def __init__(self) -> None:
        super().__init__("No hay datos para procesar ni balance manual.")


class HeaderNotFoundError(ImportParseError):
    def __init__(self) -> None:
        super().__init__("No se encontró la cabecera 'Transaction History'.")


class NoTransactionsError(ImportParseError):
    def __init__(self) -> None:
        super().__init__("No se detectaron transacciones válidas.")


@dataclass(frozen=True)
class ImportResult:
    transactions: list[Transaction] = field(default_factory=list)
    detected_starting_cash: Optional[float] = None
    starting_cash: Optional[float] = None


@dataclass(frozen=True)
class ImportPreview:
    row_count: int
    starting_cash: float


def clean_number(value: object) -> float:
    """Parse a broker-formatted number, tolerating both decimal conventions.

    When both separators appear the first one is the thousands separator. A
    lone comma is a decimal point. Anything unparseable is ``0.0``.
    """

    if value is None:
        return 0.0
    sanitized = str(value).strip()
    if not sanitized:
        return 0.0
    if "," in sanitized and "." in sanitized:
        if sanitized.index(",") < sanitized.index("."):
            sanitized = sanitized.replace(",", "")
        else:
            sanitized = sanitized.replace(".", "").replace(",", ".", 1)
    elif "," in sanitized:
        sanitized = sanitized.replace(",", ".", 1)
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", sanitized))
    if not match:
        return 0.0
    return float(match.group(0))


def detect_delimiter(text: str) -> str:
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    first_line = first_line.replace('"', "")
    if "\t" in first_line:
        return "\t"
    if ";" in first_line:
        return ";"
    return ","


def _split_rows(text: str) -> list[list[str]]:
    delimiter = detect_delimiter(text)
    rows = []
    for line in text.splitlines():
        line = line.replace('"', "").strip()
        if line:
            rows.append([cell.strip() for cell in line.split(delimiter)])
    return rows


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return row[index]


def _is_transaction_row(row: Sequence[str], kind: str) -> bool:
    return "transaction" in _cell(row, 0).lower() and _cell(row, 1).lower() == kind


def _detect_starting_cash(rows: Sequence[Sequence[str]]) -> Optional[float]:
    detected: Optional[float] = None
    for row in rows:
        if "summary" not in _cell(row, 0).lower() or "data" not in _cell(row, 1).lower():
            continue
        label = _cell(row, 2).lower()
        if any(name in label for name in STARTING_CASH_LABELS):
            detected = clean_number(_cell(row, 3))
    return detected


def _column_map(header: Sequence[str]) -> dict[str, int]:
    lowered = [h.lower() for h in header]

    def find(names: tuple[str, ...]) -> int:
        for idx, name in enumerate(lowered):
            if any(alias in name for alias in names):
                return idx
        return -1

    return {key: find(aliases) for key, aliases in _COLUMN_ALIASES.items()}


def _build_transaction(
    row: Sequence[str],
    columns: dict[str, int],
    *,
    account_label: str,
    strategy: str,
) -> Transaction:
    quantity = clean_number(_cell(row, columns["quantity"]))
    tx_type = _cell(row, columns["transaction_type"]) or ("BUY" if quantity > 0 else "SELL")
    return Transaction(
        header="Data",
        date=_cell(row, columns["date"]) or date.today().isoformat(),
        account=_cell(row, columns["account"]),
        description=_cell(row, columns["description"]),
        transaction_type=tx_type,
        symbol=_cell(row, columns["symbol"]),
        quantity=quantity,
        price=clean_number(_cell(row, columns["price"])),
        gross_amount=clean_number(_cell(row, columns["gross_amount"])),
        commission=clean_number(_cell(row, columns["commission"])),
        net_amount=clean_number(_cell(row, columns["net_amount"])),
        strategy=strategy,
        account_label=account_label,
    )


def parse_activity_export(
    text: str,
    *,
    account_label: str = "demo",
    strategy: str | None = None,
    starting_cash_override: float | None = None,
) -> ImportResult:
    """Turn an activity export into transactions plus a starting-cash figure.

    ``strategy`` tags every imported row; ``starting_cash_override`` takes
    precedence over the figure detected in the summary section. Empty input
    with an override is a balance-only import.
    """

    if not text or not text.strip():
        if starting_cash_override is None:
            raise NoImportDataError()
        return ImportResult(starting_cash=starting_cash_override)

    rows = _split_rows(text)
    detected = _detect_starting_cash(rows)
    tag = strategy.strip() if strategy and strategy.strip() else DEFAULT_IMPORT_STRATEGY

    header_index = next(
        (idx for idx, row in enumerate(rows) if _is_transaction_row(row, "header")),
        None,
    )
    if header_index is None:
        raise HeaderNotFoundError()

    columns = _column_map(rows[header_index])
    transactions: list[Transaction] = []
    skipped = 0
    for row in rows[header_index + 1 :]:
        if _is_transaction_row(row, "data"):
            symbol = _cell(row, columns["symbol"])
            if not symbol or "total" in symbol.lower():
                skipped += 1
                continue
            transactions.append(_build_transaction(row, columns, account_label=account_label, strategy=tag))
        elif _cell(row, 0) and "transaction" not in _cell(row, 0).lower():
            break

    if not transactions:
        raise NoTransactionsError()

    logger.info(
        "Parsed %d transactions (%d subtotal rows skipped), starting cash detected: %s",
        len(transactions),
        skipped,
        detected,
    )
    starting_cash = starting_cash_override if starting_cash_override is not None else detected
    return ImportResult(
        transactions=transactions,
        detected_starting_cash=detected,
        starting_cash=starting_cash,
    )


def preview_activity_export(text: str) -> ImportPreview:
    """Count transaction data rows and detect starting cash without validating."""

    if not text or not text.strip():
        return ImportPreview(row_count=0, starting_cash=0.0)
    rows = _split_rows(text)
    row_count = sum(1 for row in rows if _is_transaction_row(row, "data"))
    return ImportPreview(row_count=row_count, starting_cash=_detect_starting_cash(rows) or 0.0)


__all__ = [
    "DEFAULT_IMPORT_STRATEGY",
    "HeaderNotFoundError",
    "ImportParseError",
    "ImportPreview",
    "ImportResult",
    "NoImportDataError",
    "NoTransactionsError",
    "clean_number",
    "detect_delimiter",
    "parse_activity_export",
    "preview_activity_export",
]
