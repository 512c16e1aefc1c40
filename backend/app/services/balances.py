"""Starting-cash balances per user and account partition."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import DEFAULT_DEMO_CASH
from app.core.errors import translate_storage_error
from app.models import AccountBalance

logger = logging.getLogger(__name__)

_CONFLICT_COLUMNS = ("user_id", "account_label")


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    return sqlite.insert if dialect == "sqlite" else postgresql.insert


async def get_balance(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    *,
    demo_cash: float = DEFAULT_DEMO_CASH,
) -> AccountBalance:
    """Return the stored balance, creating the demo default on first access.

    A missing ``real`` balance is reported as zero without being stored.
    """

    result = await session.execute(
        select(AccountBalance).where(
            AccountBalance.user_id == user_id,
            AccountBalance.account_label == account_label,
        )
    )
    balance = result.scalar_one_or_none()
    if balance is not None:
        return balance
    if account_label != "demo":
        return AccountBalance(user_id=user_id, account_label=account_label, starting_cash=0.0)

    logger.info("Creating default demo balance for user %s", user_id)
    return await set_starting_cash(session, user_id, account_label, demo_cash)


async def set_starting_cash(
    session: AsyncSession,
    user_id: UUID,
    account_label: str,
    starting_cash: float,
) -> AccountBalance:
    """Upsert the starting cash on the (user, partition) key."""

    now = datetime.now(timezone.utc)
    insert = _insert_for(session)
    stmt = (
        insert(AccountBalance)
        .values(user_id=user_id, account_label=account_label, starting_cash=starting_cash, updated_at=now)
        .on_conflict_do_update(
            index_elements=[AccountBalance.user_id, AccountBalance.account_label],
            set_={"starting_cash": starting_cash, "updated_at": now},
        )
    )
    try:
        await session.execute(stmt)
        await session.commit()
    except DBAPIError as exc:
        await session.rollback()
        translated = translate_storage_error(
            exc, table="account_balances", columns=_CONFLICT_COLUMNS, constraint="unique_user_account"
        )
        if translated is exc:
            raise
        raise translated from exc

    result = await session.execute(
        select(AccountBalance)
        .where(AccountBalance.user_id == user_id, AccountBalance.account_label == account_label)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


__all__ = ["get_balance", "set_starting_cash"]
