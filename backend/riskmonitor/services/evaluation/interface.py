"""
Rule Evaluator Service Interface

Defines the contract for the risk-rule evaluation engine.
"""

from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from riskmonitor.services.base import BaseService
from riskmonitor.schemas.evaluation import RuleEvaluationResult


class EvaluationScope(str, Enum):
    ACCOUNT = "account"
    TRADE = "trade"
    ALL_ACTIVE = "all_active"


@dataclass
class EvaluationRequest:
    """Input for one evaluation run."""

    scope: EvaluationScope
    target_id: Optional[int] = None  # account id or trade id


class RuleEvaluatorInterface(BaseService[EvaluationRequest, list[RuleEvaluationResult]]):
    """
    Rule Evaluator Contract.

    INPUT: EvaluationRequest
        - ACCOUNT: evaluate every active rule for one account
        - TRADE: evaluate every active rule for one closed trade (event)
        - ALL_ACTIVE: evaluate every account whose status and trading
          status are enabled (batch)

    OUTPUT: list[RuleEvaluationResult]
        - Violated outcomes only; batch entries carry account id/login

    SIDE EFFECTS:
        - Incident rows (at most one per cooldown key)
        - Notification rows, account / trading suspension
    """

    @property
    def name(self) -> str:
        return "RuleEvaluator"

    @abstractmethod
    async def execute(self, input_data: EvaluationRequest) -> list[RuleEvaluationResult]:
        """Run the requested evaluation."""
        pass

    @abstractmethod
    async def evaluate_account(self, account_id: int) -> list[RuleEvaluationResult]:
        """Evaluate active rules for one account."""
        pass

    @abstractmethod
    async def evaluate_trade(self, trade_id: int) -> list[RuleEvaluationResult]:
        """Evaluate active rules for one closed trade. No-op for open trades."""
        pass

    @abstractmethod
    async def evaluate_all_active_accounts(self) -> list[RuleEvaluationResult]:
        """Evaluate every active account, skipping accounts already being evaluated."""
        pass
