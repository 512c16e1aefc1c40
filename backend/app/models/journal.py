"""Journal tables: transactions, balances, chart audits and strategy cards."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base

ACCOUNT_LABEL_LENGTH = 8


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _money() -> Numeric:
    return Numeric(18, 6, asdecimal=False)


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_owner_account", "user_id", "account_label"),
        Index("ix_transactions_symbol", "symbol"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"))
    account_label: Mapped[str] = mapped_column(String(ACCOUNT_LABEL_LENGTH))
    header: Mapped[str] = mapped_column(Text, default="Data")
    date: Mapped[str] = mapped_column(Text)
    account: Mapped[str] = mapped_column(Text, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    transaction_type: Mapped[str] = mapped_column(Text, default="")
    symbol: Mapped[str] = mapped_column(Text)
    quantity: Mapped[float] = mapped_column(_money(), default=0)
    price: Mapped[float] = mapped_column(_money(), default=0)
    gross_amount: Mapped[float] = mapped_column(_money(), default=0)
    commission: Mapped[float] = mapped_column(_money(), default=0)
    net_amount: Mapped[float] = mapped_column(_money(), default=0)
    strategy: Mapped[str] = mapped_column(Text, default="")
    analysis_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_analyses.id", ondelete="SET NULL"), nullable=True
    )
    analysis_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class AccountBalance(Base):
    __tablename__ = "account_balances"
    __table_args__ = (UniqueConstraint("user_id", "account_label", name="unique_user_account"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"))
    account_label: Mapped[str] = mapped_column(String(ACCOUNT_LABEL_LENGTH))
    starting_cash: Mapped[float] = mapped_column(_money(), default=0)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ChartAnalysis(Base):
    __tablename__ = "chart_analyses"
    __table_args__ = (Index("ix_chart_analyses_owner_account", "user_id", "account_label"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"))
    account_label: Mapped[str] = mapped_column(String(ACCOUNT_LABEL_LENGTH))
    image_url: Mapped[str] = mapped_column(String(1024))
    calendar_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    analysis_text: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class StrategyCard(Base):
    __tablename__ = "strategy_cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    image_url: Mapped[str] = mapped_column(String(1024))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class DailyCalendar(Base):
    """The macro-calendar screenshot a user attached for one day."""

    __tablename__ = "daily_calendars"
    __table_args__ = (UniqueConstraint("user_id", "date", name="unique_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"))
    date: Mapped[dt.date] = mapped_column(Date)
    image_url: Mapped[str] = mapped_column(String(1024))


__all__ = [
    "AccountBalance",
    "ChartAnalysis",
    "DailyCalendar",
    "StrategyCard",
    "Transaction",
]
