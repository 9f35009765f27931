"""
Rule Strategy Interface

One strategy per rule type. Each answers "is this rule violated?" for an
account (periodic/batch evaluation) or for a single closed trade (event
evaluation), and returns the evidence that describes the violation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.db.models import Account, Incident, RiskRule, Trade
from riskmonitor.schemas.risk import RuleType


@dataclass
class RuleCheck:
    """Result of one strategy evaluation."""
    violated: bool
    evidence: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def passed(cls) -> "RuleCheck":
        return cls(violated=False)

    @classmethod
    def violation(cls, **evidence: Any) -> "RuleCheck":
        return cls(violated=True, evidence=evidence)


class RuleStrategy(ABC):
    """Base class for rule strategies."""

    rule_type: RuleType

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def evaluate_for_account(
        self,
        session: AsyncSession,
        rule: RiskRule,
        account: Account,
    ) -> RuleCheck:
        """Evaluate the rule over the account's recent activity."""
        pass

    @abstractmethod
    async def evaluate_for_trade(
        self,
        session: AsyncSession,
        rule: RiskRule,
        trade: Trade,
        account: Account,
    ) -> RuleCheck:
        """Evaluate the rule for a trade that has just closed."""
        pass


def without_incident_for(rule: RiskRule):
    """Filter for Trade queries: no incident for ``rule`` is recorded on the trade."""
    return ~(
        select(Incident.id)
        .where(Incident.trade_id == Trade.id, Incident.rule_id == rule.id)
        .exists()
    )


async def trade_has_incident(session: AsyncSession, rule: RiskRule, trade: Trade) -> bool:
    """Whether an incident for ``rule`` has ever been recorded on ``trade``."""
    result = await session.execute(
        select(Incident.id)
        .where(Incident.trade_id == trade.id, Incident.rule_id == rule.id)
        .limit(1)
    )
    return result.first() is not None
