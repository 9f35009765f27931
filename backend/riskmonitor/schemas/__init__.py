"""
Trade Risk Monitor Schema Contracts

This module defines the JSON contracts between the rule engine and its callers.
"""

from riskmonitor.schemas.risk import (
    AccountStatus,
    TradeType,
    TradeStatus,
    RuleType,
    Severity,
    ActionType,
    NotificationStatus,
    EvaluationTrigger,
)
from riskmonitor.schemas.evaluation import (
    RuleEvaluationResult,
    EvaluateRequest,
    AccountEvaluationResponse,
    TradeEvaluationResponse,
    BulkEvaluationResponse,
    CloseTradeRequest,
    CloseTradeResponse,
    TradeOut,
)

__all__ = [
    # Vocabulary
    "AccountStatus",
    "TradeType",
    "TradeStatus",
    "RuleType",
    "Severity",
    "ActionType",
    "NotificationStatus",
    "EvaluationTrigger",
    # Evaluation
    "RuleEvaluationResult",
    "EvaluateRequest",
    "AccountEvaluationResponse",
    "TradeEvaluationResponse",
    "BulkEvaluationResponse",
    "CloseTradeRequest",
    "CloseTradeResponse",
    "TradeOut",
]
