"""Transaction journal: listing, editing, linking, importing and analytics."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models import Transaction as TransactionRow
from app.services.balances import get_balance, set_starting_cash
from ibkr_hub import models as domain
from ibkr_hub.consolidation import build_dashboard, consolidate_trades, sort_by_last_date
from ibkr_hub.importer import ImportPreview, ImportResult, parse_activity_export, preview_activity_export

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "date",
        "symbol",
        "transaction_type",
        "quantity",
        "price",
        "commission",
        "net_amount",
        "strategy",
        "description",
        "analysis_id",
        "analysis_image_url",
    }
)


def to_domain(row: TransactionRow) -> domain.Transaction:
    return domain.Transaction(
        id=row.id,
        date=row.date,
        symbol=row.symbol,
        quantity=row.quantity or 0.0,
        price=row.price or 0.0,
        net_amount=row.net_amount or 0.0,
        transaction_type=row.transaction_type or "",
        account=row.account or "",
        description=row.description or "",
        gross_amount=row.gross_amount or 0.0,
        commission=row.commission or 0.0,
        strategy=row.strategy or "",
        account_label=row.account_label,
        header=row.header or "Data",
        analysis_id=row.analysis_id,
        analysis_image_url=row.analysis_image_url,
    )


def _to_row(tx: domain.Transaction, user_id: UUID) -> TransactionRow:
    return TransactionRow(
        user_id=user_id,
        account_label=tx.account_label,
        header=tx.header,
        date=tx.date,
        account=tx.account,
        description=tx.description,
        transaction_type=tx.transaction_type,
        symbol=tx.symbol,
        quantity=tx.quantity,
        price=tx.price,
        gross_amount=tx.gross_amount,
        commission=tx.commission,
        net_amount=tx.net_amount,
        strategy=tx.strategy,
    )


async def list_transactions(session: AsyncSession, user_id: UUID, account_label: str) -> list[TransactionRow]:
    result = await session.execute(
        select(TransactionRow)
        .where(TransactionRow.user_id == user_id, TransactionRow.account_label == account_label)
        .order_by(TransactionRow.date.desc(), TransactionRow.id.desc())
    )
    return list(result.scalars())


async def _get_owned(session: AsyncSession, user_id: UUID, account_label: str, transaction_id: int) -> TransactionRow:
    row = await session.get(TransactionRow, transaction_id)
    if row is None or row.user_id != user_id or row.account_label != account_label:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return row


async def update_transaction(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    transaction_id: int,
    changes: dict[str, Any],
) -> TransactionRow:
    row = await _get_owned(session, user_id, account_label, transaction_id)
    for field, value in changes.items():
        if field in EDITABLE_FIELDS:
            setattr(row, field, value)
    await session.commit()
    await session.refresh(row)
    return row


async def delete_transaction(session: AsyncSession, user_id: UUID, account_label: str, transaction_id: int) -> None:
    row = await _get_owned(session, user_id, account_label, transaction_id)
    await session.delete(row)
    await session.commit()
    logger.info("Deleted transaction %s (%s) for user %s", transaction_id, row.symbol, user_id)


async def link_evidence(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    transaction_ids: list[int],
    *,
    analysis_id: Optional[int] = None,
    analysis_image_url: Optional[str] = None,
) -> int:
    """Attach an audit or chart URL to every listed execution; return rows updated."""

    values: dict[str, Any] = {"analysis_image_url": analysis_image_url}
    if analysis_id is not None:
        values["analysis_id"] = analysis_id
    result = await session.execute(
        update(TransactionRow)
        .where(
            TransactionRow.id.in_(transaction_ids),
            TransactionRow.user_id == user_id,
            TransactionRow.account_label == account_label,
        )
        .values(**values)
    )
    await session.commit()
    return result.rowcount or 0


async def clear_analysis_links(session: AsyncSession, user_id: UUID, analysis_id: int) -> None:
    await session.execute(
        update(TransactionRow)
        .where(TransactionRow.user_id == user_id, TransactionRow.analysis_id == analysis_id)
        .values(analysis_id=None)
    )


def preview_import(text: str) -> ImportPreview:
    return preview_activity_export(text)


async def import_activity(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    text: str,
    *,
    strategy: Optional[str] = None,
    starting_cash: Optional[float] = None,
) -> ImportResult:
    """Parse an export, persist its rows and record the starting cash it carries.

    Parser errors propagate before anything is written. Rows and balance are
    committed together, so a failed balance upsert leaves no rows behind.
    """

    result = parse_activity_export(
        text,
        account_label=account_label,
        strategy=strategy,
        starting_cash_override=starting_cash,
    )
    if result.transactions:
        session.add_all(_to_row(tx, user_id) for tx in result.transactions)
        await session.flush()
    if result.starting_cash is not None:
        await set_starting_cash(session, user_id, account_label, result.starting_cash)
    else:
        await session.commit()
    logger.info(
        "Imported %d transactions into %s for user %s (starting cash %s)",
        len(result.transactions),
        account_label,
        user_id,
        result.starting_cash,
    )
    return result


async def load_domain_transactions(session: AsyncSession, user_id: UUID, account_label: str) -> list[domain.Transaction]:
    return [to_domain(row) for row in await list_transactions(session, user_id, account_label)]


async def load_trades(session: AsyncSession, user_id: UUID, account_label: str) -> list[domain.ConsolidatedTrade]:
    transactions = await load_domain_transactions(session, user_id, account_label)
    return sort_by_last_date(consolidate_trades(transactions), descending=True)


async def load_dashboard(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    *,
    demo_cash: float,
) -> tuple[Optional[domain.Dashboard], float]:
    """Recompute the dashboard from every stored transaction of the partition."""

    balance = await get_balance(session, user_id, account_label, demo_cash=demo_cash)
    starting_cash = balance.starting_cash or 0.0
    transactions = await load_domain_transactions(session, user_id, account_label)
    return build_dashboard(transactions, starting_cash), starting_cash


__all__ = [
    "clear_analysis_links",
    "delete_transaction",
    "import_activity",
    "link_evidence",
    "list_transactions",
    "load_dashboard",
    "load_domain_transactions",
    "load_trades",
    "preview_import",
    "to_domain",
    "update_transaction",
]
