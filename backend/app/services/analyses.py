"""Chart audits, strategy cards, daily calendars and performance insights."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError, is_missing_conflict_constraint
from app.models import ChartAnalysis, DailyCalendar, StrategyCard
from app.providers.llm import LLMClient
from app.services.journal import clear_analysis_links, load_domain_transactions
from app.services.storage import ObjectStorage
from ibkr_hub.audit import MAX_REFERENCE_CARDS
from ibkr_hub.models import StrategyReference

logger = logging.getLogger(__name__)

CALENDAR_CATEGORY = "calendars"
STRATEGY_CATEGORY = "strategies"


def today() -> date:
    return datetime.now(timezone.utc).date()


# Strategy cards ---------------------------------------------------------


async def list_strategies(session: AsyncSession, user_id: UUID) -> list[StrategyCard]:
    result = await session.execute(
        select(StrategyCard).where(StrategyCard.user_id == user_id).order_by(StrategyCard.created_at.desc())
    )
    return list(result.scalars())


async def create_strategy(
    session: AsyncSession,
    storage: ObjectStorage,
    user_id: UUID,
    *,
    title: str,
    description: str,
    image: str,
) -> StrategyCard:
    image_url = await storage.upload(user_id, STRATEGY_CATEGORY, image)
    card = StrategyCard(user_id=user_id, title=title.strip(), description=description.strip(), image_url=image_url)
    session.add(card)
    try:
        await session.commit()
    except SQLAlchemyError:
        logger.warning("Strategy card insert failed; image %s left in storage", image_url)
        raise
    await session.refresh(card)
    return card


async def delete_strategy(session: AsyncSession, storage: ObjectStorage, user_id: UUID, card_id: int) -> None:
    card = await session.get(StrategyCard, card_id)
    if card is None or card.user_id != user_id:
        raise NotFoundError(f"Strategy card {card_id} not found")
    await storage.delete(card.image_url)
    await session.delete(card)
    await session.commit()


async def load_references(
    session: AsyncSession, storage: ObjectStorage, user_id: UUID
) -> list[StrategyReference]:
    """Prepare up to three cards for an audit; unreadable images fall back to text."""

    references: list[StrategyReference] = []
    for card in (await list_strategies(session, user_id))[:MAX_REFERENCE_CARDS]:
        image = await storage.read_base64(card.image_url)
        if image is None:
            logger.warning("Strategy card %s image unavailable, sending text only", card.id)
        references.append(StrategyReference(title=card.title, description=card.description, image=image))
    return references


# Daily calendars --------------------------------------------------------


async def get_calendar(session: AsyncSession, user_id: UUID, day: Optional[date] = None) -> Optional[DailyCalendar]:
    result = await session.execute(
        select(DailyCalendar).where(DailyCalendar.user_id == user_id, DailyCalendar.date == (day or today()))
    )
    return result.scalar_one_or_none()


async def save_calendar(session: AsyncSession, user_id: UUID, day: date, image_url: str) -> None:
    """Upsert the calendar of ``day``; a missing UNIQUE constraint only warns."""

    insert = sqlite.insert if session.get_bind().dialect.name == "sqlite" else postgresql.insert
    stmt = (
        insert(DailyCalendar)
        .values(user_id=user_id, date=day, image_url=image_url)
        .on_conflict_do_update(
            index_elements=[DailyCalendar.user_id, DailyCalendar.date],
            set_={"image_url": image_url},
        )
    )
    try:
        await session.execute(stmt)
        await session.commit()
    except DBAPIError as exc:
        await session.rollback()
        if not is_missing_conflict_constraint(exc):
            raise
        logger.warning("Falta restricción UNIQUE en daily_calendars; calendar for %s not saved", day)


# Chart audits -----------------------------------------------------------


async def list_analyses(session: AsyncSession, user_id: UUID, account_label: str) -> list[ChartAnalysis]:
    result = await session.execute(
        select(ChartAnalysis)
        .where(ChartAnalysis.user_id == user_id, ChartAnalysis.account_label == account_label)
        .order_by(ChartAnalysis.created_at.desc(), ChartAnalysis.id.desc())
    )
    return list(result.scalars())


async def run_audit(
    session: AsyncSession,
    storage: ObjectStorage,
    llm: LLMClient,
    user_id: UUID,
    account_label: str,
    *,
    chart_image: str,
    calendar_image: Optional[str] = None,
) -> ChartAnalysis:
    """Audit a chart, then store the images and the report.

    Without a calendar in the request, today's stored calendar is reused.
    The AI call happens first; uploads and inserts that follow are not
    rolled back when a later step fails.
    """

    day = today()
    stored_calendar = await get_calendar(session, user_id, day)
    calendar_url = stored_calendar.image_url if stored_calendar and not calendar_image else None
    calendar_payload = calendar_image
    if calendar_payload is None and calendar_url:
        calendar_payload = await storage.read_base64(calendar_url)
        if calendar_payload is None:
            calendar_url = None

    references = await load_references(session, storage, user_id)
    report = await llm.audit_chart(chart_image, calendar_payload, references)

    image_url = await storage.upload(user_id, account_label, chart_image)
    if calendar_image:
        calendar_url = await storage.upload(user_id, CALENDAR_CATEGORY, calendar_image)
        await save_calendar(session, user_id, day, calendar_url)

    record = ChartAnalysis(
        user_id=user_id,
        account_label=account_label,
        image_url=image_url,
        calendar_image_url=calendar_url,
        analysis_text=report,
    )
    session.add(record)
    try:
        await session.commit()
    except SQLAlchemyError:
        logger.warning("Chart analysis insert failed; image %s left in storage", image_url)
        raise
    await session.refresh(record)
    logger.info("Stored chart analysis %s for user %s (%s)", record.id, user_id, account_label)
    return record


async def delete_analysis(
    session: AsyncSession, storage: ObjectStorage, user_id: UUID, account_label: str, analysis_id: int
) -> None:
    record = await session.get(ChartAnalysis, analysis_id)
    if record is None or record.user_id != user_id or record.account_label != account_label:
        raise NotFoundError(f"Analysis {analysis_id} not found")
    await storage.delete(record.image_url)
    await clear_analysis_links(session, user_id, analysis_id)
    await session.delete(record)
    await session.commit()


# Insights ---------------------------------------------------------------


async def performance_insights(session: AsyncSession, llm: LLMClient, user_id: UUID, account_label: str) -> str:
    transactions = await load_domain_transactions(session, user_id, account_label)
    return await llm.analyze_performance(transactions)


__all__ = [
    "create_strategy",
    "delete_analysis",
    "delete_strategy",
    "get_calendar",
    "list_analyses",
    "list_strategies",
    "load_references",
    "performance_insights",
    "run_audit",
    "save_calendar",
]
