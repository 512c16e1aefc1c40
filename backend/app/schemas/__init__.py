"""Pydantic schema exports."""

from .analyses import (
    ChartAnalysisRequest,
    ChartAnalysisSchema,
    DailyCalendarSchema,
    InsightsResponse,
    SentimentSchema,
    StrategyCardCreateRequest,
    StrategyCardSchema,
    TradePlanSchema,
)
from .auth import (
    AccountSelection,
    AuthResponse,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    RegisterRequest,
    UserOut,
)
from .journal import (
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
    StrategySummarySchema,
    TransactionLinkRequest,
    TransactionSchema,
    TransactionUpdateRequest,
)

__all__ = [
    "AccountSelection",
    "AuthResponse",
    "BalanceSchema",
    "BalanceUpdateRequest",
    "ChartAnalysisRequest",
    "ChartAnalysisSchema",
    "ConsolidatedTradeSchema",
    "DailyCalendarSchema",
    "DashboardResponse",
    "EquityPointSchema",
    "ExecutionSchema",
    "HealthResponse",
    "ImportPreviewRequest",
    "ImportPreviewResponse",
    "ImportRequest",
    "ImportResponse",
    "InsightsResponse",
    "LinkResponse",
    "LoginRequest",
    "MessageResponse",
    "PasswordResetRequest",
    "PasswordUpdateRequest",
    "PortfolioStatsSchema",
    "RegisterRequest",
    "SentimentSchema",
    "StrategyCardCreateRequest",
    "StrategyCardSchema",
    "StrategySummarySchema",
    "TradePlanSchema",
    "TransactionLinkRequest",
    "TransactionSchema",
    "TransactionUpdateRequest",
    "UserOut",
]
