"""Pydantic schemas for balances, transactions, imports and the dashboard."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BalanceSchema(BaseModel):
    account_label: str
    starting_cash: float
    updated_at: datetime | None = None


class BalanceUpdateRequest(BaseModel):
    starting_cash: float = Field(..., ge=0)


class TransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_label: str
    header: str
    date: str
    account: str
    description: str
    transaction_type: str
    symbol: str
    quantity: float
    price: float
    gross_amount: float
    commission: float
    net_amount: float
    strategy: str
    analysis_id: int | None = None
    analysis_image_url: str | None = None
    created_at: datetime | None = None


class TransactionUpdateRequest(BaseModel):
    """Fields a user may edit on a single execution."""

    date: str | None = None
    symbol: str | None = Field(default=None, min_length=1)
    transaction_type: str | None = None
    quantity: float | None = None
    price: float | None = None
    commission: float | None = None
    net_amount: float | None = None
    strategy: str | None = None
    description: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = sorted(key for key, value in data.items() if value is None)
            if nulls:
                raise ValueError(f"Campos sin valor: {', '.join(nulls)}")
        return data


class TransactionLinkRequest(BaseModel):
    """Attach an audit to every execution of one consolidated trade."""

    transaction_ids: list[int] = Field(..., min_length=1)
    analysis_id: int | None = None
    analysis_image_url: str | None = None
    image: str | None = Field(default=None, description="Base64 chart uploaded as manual evidence")


class LinkResponse(BaseModel):
    updated: int


class ImportRequest(BaseModel):
    text: str = Field(default="", description="Raw activity export content")
    strategy: str | None = Field(default=None, description="Strategy tag applied to every imported row")
    starting_cash: float | None = Field(default=None, ge=0, description="Manual starting cash override")


class ImportPreviewRequest(BaseModel):
    text: str = ""


class ImportPreviewResponse(BaseModel):
    row_count: int
    starting_cash: float


class ImportResponse(BaseModel):
    imported: int
    starting_cash: float | None = None
    detected_starting_cash: float | None = None


class ExecutionSchema(BaseModel):
    id: int | None = None
    date: str
    transaction_type: str
    quantity: float
    price: float
    net_amount: float
    strategy: str


class ConsolidatedTradeSchema(BaseModel):
    symbol: str
    strategy: str
    total_quantity: float
    avg_entry_price: float
    avg_exit_price: float
    total_pnl: float
    status: str
    last_date: str
    executions: list[ExecutionSchema]
    analysis_image_url: str | None = None
    analysis_id: int | None = None


class StrategySummarySchema(BaseModel):
    name: str
    pnl: float
    count: int


class EquityPointSchema(BaseModel):
    date: str
    balance: float


class PortfolioStatsSchema(BaseModel):
    total_pnl: float
    roi: float
    current_balance: float
    open_positions: int
    closed_trades: int
    best_strategy: StrategySummarySchema
    strategy_list: list[StrategySummarySchema]
    win_rate: float
    avg_win: float
    avg_loss: float


class DashboardResponse(BaseModel):
    configured: bool
    account_label: str
    starting_cash: float = 0.0
    stats: PortfolioStatsSchema | None = None
    equity_curve: list[EquityPointSchema] = Field(default_factory=list)
