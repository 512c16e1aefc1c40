"""Pydantic schemas for chart audits, strategy cards and AI insights."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class SentimentSchema(BaseModel):
    long: int
    short: int


class TradePlanSchema(BaseModel):
    entry: str
    stop: str
    target: str


class ChartAnalysisSchema(BaseModel):
    id: int
    account_label: str
    image_url: str
    calendar_image_url: str | None = None
    analysis_text: str = Field(..., description="Report with the trailer lines removed")
    sentiment: SentimentSchema | None = None
    trade_plan: TradePlanSchema | None = None
    created_at: datetime | None = None


class ChartAnalysisRequest(BaseModel):
    chart_image: str = Field(..., min_length=1, description="Base64 JPEG or data URL")
    calendar_image: str | None = Field(default=None, description="Base64 JPEG or data URL")


class StrategyCardSchema(BaseModel):
    id: int
    title: str
    description: str
    image_url: str
    created_at: datetime | None = None


class StrategyCardCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    image: str = Field(..., min_length=1, description="Base64 JPEG or data URL")


class DailyCalendarSchema(BaseModel):
    date: date
    image_url: str | None = None


class InsightsResponse(BaseModel):
    analysis: str
