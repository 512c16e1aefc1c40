"""Chart audit, strategy library, calendar and insights routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    AccountContext,
    get_account_context,
    get_current_user,
    get_llm,
    get_storage,
    require_confirmation,
)
from app.core.errors import NotFoundError
from app.db.session import get_db
from app.models import ChartAnalysis, StrategyCard, User
from app.providers.llm import AIConfigurationError, AIServiceError, LLMClient
from app.schemas import (
    ChartAnalysisRequest,
    ChartAnalysisSchema,
    DailyCalendarSchema,
    InsightsResponse,
    SentimentSchema,
    StrategyCardCreateRequest,
    StrategyCardSchema,
    TradePlanSchema,
)
from app.services import analyses as analyses_service
from app.services.storage import ObjectStorage, StorageError
from ibkr_hub.trailers import parse_sentiment, parse_trade_plan, strip_trailers

strategies_router = APIRouter()
analyses_router = APIRouter()
calendars_router = APIRouter()
insights_router = APIRouter()


def _analysis_schema(record: ChartAnalysis) -> ChartAnalysisSchema:
    sentiment = parse_sentiment(record.analysis_text)
    plan = parse_trade_plan(record.analysis_text)
    return ChartAnalysisSchema(
        id=record.id,
        account_label=record.account_label,
        image_url=record.image_url,
        calendar_image_url=record.calendar_image_url,
        analysis_text=strip_trailers(record.analysis_text),
        sentiment=SentimentSchema(long=sentiment.long, short=sentiment.short) if sentiment else None,
        trade_plan=TradePlanSchema(entry=plan.entry, stop=plan.stop, target=plan.target) if plan else None,
        created_at=record.created_at,
    )


def _card_schema(card: StrategyCard) -> StrategyCardSchema:
    return StrategyCardSchema(
        id=card.id,
        title=card.title,
        description=card.description,
        image_url=card.image_url,
        created_at=card.created_at,
    )


# Strategy library -------------------------------------------------------


@strategies_router.get("", response_model=list[StrategyCardSchema])
async def read_strategies(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> list[StrategyCardSchema]:
    return [_card_schema(card) for card in await analyses_service.list_strategies(session, user.id)]


@strategies_router.post("", response_model=StrategyCardSchema, status_code=status.HTTP_201_CREATED)
async def post_strategy(
    payload: StrategyCardCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> StrategyCardSchema:
    try:
        card = await analyses_service.create_strategy(
            session,
            storage,
            user.id,
            title=payload.title,
            description=payload.description,
            image=payload.image,
        )
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _card_schema(card)


@strategies_router.delete(
    "/{card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_confirmation)],
)
async def remove_strategy(
    card_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> Response:
    try:
        await analyses_service.delete_strategy(session, storage, user.id, card_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Chart audits -----------------------------------------------------------


@analyses_router.get("", response_model=list[ChartAnalysisSchema])
async def read_analyses(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
) -> list[ChartAnalysisSchema]:
    records = await analyses_service.list_analyses(session, context.user_id, context.account_label)
    return [_analysis_schema(record) for record in records]


@analyses_router.post("", response_model=ChartAnalysisSchema, status_code=status.HTTP_201_CREATED)
async def post_analysis(
    payload: ChartAnalysisRequest,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    llm: LLMClient = Depends(get_llm),
) -> ChartAnalysisSchema:
    try:
        record = await analyses_service.run_audit(
            session,
            storage,
            llm,
            context.user_id,
            context.account_label,
            chart_image=payload.chart_image,
            calendar_image=payload.calendar_image,
        )
    except (AIConfigurationError, AIServiceError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _analysis_schema(record)


@analyses_router.delete(
    "/{analysis_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_confirmation)],
)
async def remove_analysis(
    analysis_id: int,
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
) -> Response:
    try:
        await analyses_service.delete_analysis(session, storage, context.user_id, context.account_label, analysis_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@calendars_router.get("/today", response_model=DailyCalendarSchema)
async def read_today_calendar(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> DailyCalendarSchema:
    day = analyses_service.today()
    calendar = await analyses_service.get_calendar(session, user.id, day)
    return DailyCalendarSchema(date=day, image_url=calendar.image_url if calendar else None)


@insights_router.post("", response_model=InsightsResponse)
async def post_insights(
    context: AccountContext = Depends(get_account_context),
    session: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm),
) -> InsightsResponse:
    text = await analyses_service.performance_insights(session, llm, context.user_id, context.account_label)
    return InsightsResponse(analysis=text)


__all__ = ["analyses_router", "calendars_router", "insights_router", "strategies_router"]
