"""Balance, transaction, import and dashboard routes for the active partition."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    AccountContext,
    get_account_context,
    get_app_settings,
    get_storage,
    require_confirmation,
)
from app.config import AppSettings
from app.core.errors import NotFoundError
from app.db.session import get_db
from app.schemas import (
    BalanceSchema,
    BalanceUpdateRequest,
    ConsolidatedTradeSchema,
    DashboardResponse,
    EquityPointSchema,
    ExecutionSchema,
    ImportPreviewRequest,
    ImportPreviewResponse,
    ImportRequest,
    ImportResponse,
    LinkResponse,
    PortfolioStatsSchema,
    TransactionLinkRequest,
    TransactionSchema,
    TransactionUpdateRequest,
)
from app.services import journal
from app.services.balances import get_balance, set_starting_cash
from app.services.storage import ObjectStorage, StorageError
from ibkr_hub.importer import ImportParseError
from ibkr_hub.models import ConsolidatedTrade

balances_router = APIRouter()
transactions_router = APIRouter()
imports_router = APIRouter()
analytics_router = APIRouter()

EVIDENCE_CATEGORY = "manual-trade-charts"


def _trade_schema(trade: ConsolidatedTrade) -> ConsolidatedTradeSchema:
    return ConsolidatedTradeSchema(
        symbol=trade.symbol,
        strategy=trade.strategy,
        total_quantity=trade.total_quantity,
        avg_entry_price=trade.avg_entry_price,
        avg_exit_price=trade.avg_exit_price,
        total_pnl=trade.total_pnl,
        status=trade.status,
        last_date=trade.last_date,
        executions=[
            ExecutionSchema(
                id=tx.id,
                date=tx.date,
                transaction_type=tx.transaction_type,
                quantity=tx.quantity,
                price=tx.price,
                net_amount=tx.net_amount,
                strategy=tx.strategy,
            )
            for tx in trade.executions
        ],
        analysis_image_url=trade.analysis_image_url,
        analysis_id=trade.analysis_id,
    )


# Balances ---------------------------------------------------------------


@balances_router.get("/current", response_model=BalanceSchema)
async def read_balance(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    settings: AppSettings = Depends(get_app_settings),
) -> BalanceSchema:
    balance = await get_balance(
        session, context.user_id, context.account_label, demo_cash=settings.default_demo_cash
    )
    return BalanceSchema(
        account_label=context.account_label,
        starting_cash=balance.starting_cash or 0.0,
        updated_at=balance.updated_at,
    )


@balances_router.put("/current", response_model=BalanceSchema)
async def write_balance(
    payload: BalanceUpdateRequest,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> BalanceSchema:
    balance = await set_starting_cash(session, context.user_id, context.account_label, payload.starting_cash)
    return BalanceSchema(
        account_label=context.account_label,
        starting_cash=balance.starting_cash,
        updated_at=balance.updated_at,
    )


# Transactions -----------------------------------------------------------


@transactions_router.get("", response_model=list[TransactionSchema])
async def read_transactions(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> list[TransactionSchema]:
    rows = await journal.list_transactions(session, context.user_id, context.account_label)
    return [TransactionSchema.model_validate(row) for row in rows]


@transactions_router.patch("/{transaction_id}", response_model=TransactionSchema)
async def patch_transaction(
    transaction_id: int,
    payload: TransactionUpdateRequest,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> TransactionSchema:
    try:
        row = await journal.update_transaction(
            session,
            context.user_id,
            context.account_label,
            transaction_id,
            payload.model_dump(exclude_unset=True),
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return TransactionSchema.model_validate(row)


@transactions_router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_confirmation)],
)
async def remove_transaction(
    transaction_id: int,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> Response:
    try:
        await journal.delete_transaction(session, context.user_id, context.account_label, transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@transactions_router.post("/link", response_model=LinkResponse)
async def link_transactions(
    payload: TransactionLinkRequest,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> LinkResponse:
    image_url = payload.analysis_image_url
    if payload.image:
        try:
            image_url = await storage.upload(context.user_id, EVIDENCE_CATEGORY, payload.image)
        except StorageError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    if payload.analysis_id is None and image_url is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide an analysis_id, an analysis_image_url or an image",
        )
    updated = await journal.link_evidence(
        session,
        context.user_id,
        context.account_label,
        payload.transaction_ids,
        analysis_id=payload.analysis_id,
        analysis_image_url=image_url,
    )
    return LinkResponse(updated=updated)


# Imports ----------------------------------------------------------------


@imports_router.post("/preview", response_model=ImportPreviewResponse, dependencies=[Depends(get_account_context)])
async def preview_import(payload: ImportPreviewRequest) -> ImportPreviewResponse:
    preview = journal.preview_import(payload.text)
    return ImportPreviewResponse(**asdict(preview))


@imports_router.post("", response_model=ImportResponse, status_code=status.HTTP_201_CREATED)
async def run_import(
    payload: ImportRequest,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> ImportResponse:
    try:
        result = await journal.import_activity(
            session,
            context.user_id,
            context.account_label,
            payload.text,
            strategy=payload.strategy,
            starting_cash=payload.starting_cash,
        )
    except ImportParseError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return ImportResponse(
        imported=len(result.transactions),
        starting_cash=result.starting_cash,
        detected_starting_cash=result.detected_starting_cash,
    )


# Analytics --------------------------------------------------------------


@analytics_router.get("/trades", response_model=list[ConsolidatedTradeSchema])
async def read_trades(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> list[ConsolidatedTradeSchema]:
    trades = await journal.load_trades(session, context.user_id, context.account_label)
    return [_trade_schema(trade) for trade in trades]


@analytics_router.get("/dashboard", response_model=DashboardResponse)
async def read_dashboard(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    settings: AppSettings = Depends(get_app_settings),
) -> DashboardResponse:
    dashboard, starting_cash = await journal.load_dashboard(
        session, context.user_id, context.account_label, demo_cash=settings.default_demo_cash
    )
    if dashboard is None:
        return DashboardResponse(configured=False, account_label=context.account_label, starting_cash=starting_cash)
    return DashboardResponse(
        configured=True,
        account_label=context.account_label,
        starting_cash=dashboard.starting_cash,
        stats=PortfolioStatsSchema.model_validate(asdict(dashboard.stats)),
        equity_curve=[EquityPointSchema(date=point.date, balance=point.balance) for point in dashboard.equity_curve],
    )


__all__ = ["analytics_router", "balances_router", "imports_router", "transactions_router"]
