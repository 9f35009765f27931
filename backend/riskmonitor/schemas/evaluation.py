"""
CONTRACT: Rule Evaluation

Input:  Account id / Trade id / batch tick
Output: list[RuleEvaluationResult]

Evaluation calls are side-effecting: they may create Incident and
Notification rows and disable accounts. Callers inspect the ``violated`` and
``action_executed`` flags of each entry; business outcomes are never
signalled by exceptions.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from riskmonitor.schemas.risk import EvaluationTrigger, Severity


class RuleEvaluationResult(BaseModel):
    """Outcome of evaluating one rule against one account (and maybe a trade)."""

    rule_id: Optional[int] = None
    rule_name: Optional[str] = None
    rule_type: Optional[str] = None
    severity: Optional[Severity] = None

    violated: bool = False
    incident_created: bool = False
    action_executed: bool = False

    message: Optional[str] = None
    description: Optional[str] = None

    incident_id: Optional[int] = None
    account_id: Optional[int] = None
    account_login: Optional[int] = None
    trade_id: Optional[int] = None

    # SOFT rule accumulation (incidents in the rolling window / threshold)
    incidents_in_window: Optional[int] = None
    incidents_before_action: Optional[int] = None

    created_at: Optional[datetime] = None


# =============================================================================
# API PAYLOADS
# =============================================================================


class EvaluateRequest(BaseModel):
    """Optional body for evaluation endpoints."""

    trigger: EvaluationTrigger = Field(default=EvaluationTrigger.MANUAL)


class AccountEvaluationResponse(BaseModel):
    message: str = "Evaluation completed"
    account_id: int
    login: int
    total_rules_evaluated: int
    violations_found: int
    results: list[RuleEvaluationResult]
    trigger: EvaluationTrigger
    evaluated_at: datetime


class TradeEvaluationResponse(BaseModel):
    message: str = "Evaluation completed"
    trade_id: int
    account_id: int
    violations_found: int
    results: list[RuleEvaluationResult]
    trigger: EvaluationTrigger
    evaluated_at: datetime


class BulkEvaluationResponse(BaseModel):
    message: str = "Bulk evaluation completed"
    total_accounts_evaluated: int
    total_violations_found: int
    results: list[RuleEvaluationResult]
    trigger: EvaluationTrigger
    evaluated_at: datetime


class CloseTradeRequest(BaseModel):
    close_price: float = Field(..., gt=0, description="Price the trade closed at")


class TradeOut(BaseModel):
    """Trade as returned by the close endpoint."""

    id: int
    account_id: int
    type: str
    volume: float
    open_time: datetime
    close_time: Optional[datetime] = None
    open_price: Optional[float] = None
    close_price: Optional[float] = None
    status: str
    duration_seconds: Optional[int] = None
    profit_loss: Optional[float] = None


class CloseTradeResponse(BaseModel):
    message: str = "Trade closed successfully"
    trade: TradeOut
    evaluation: list[RuleEvaluationResult]
