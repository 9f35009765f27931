"""
Duration Rule

Flags trades closed faster than the rule's minimum holding time.
"""

from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.core.config import settings
from riskmonitor.db.models import Account, RiskRule, Trade, utcnow
from riskmonitor.schemas.risk import RuleType, TradeStatus
from riskmonitor.services.rules.interface import (
    RuleCheck,
    RuleStrategy,
    trade_has_incident,
    without_incident_for,
)


class DurationRule(RuleStrategy):
    """
    Duration Rule

    Violated when a closed trade lasted strictly less than
    min_duration_seconds. Trades without a close time never violate.
    """

    rule_type = RuleType.DURATION

    def __init__(self, scan_window_hours: Optional[int] = None):
        self.scan_window_hours = scan_window_hours or settings.duration_scan_window_hours

    async def evaluate_for_account(
        self,
        session: AsyncSession,
        rule: RiskRule,
        account: Account,
    ) -> RuleCheck:
        # Recently closed trades not yet flagged by this rule, newest first
        since = utcnow() - timedelta(hours=self.scan_window_hours)
        result = await session.execute(
            select(Trade)
            .where(
                Trade.account_id == account.id,
                Trade.status == TradeStatus.CLOSED.value,
                Trade.close_time >= since,
                without_incident_for(rule),
            )
            .order_by(Trade.close_time.desc(), Trade.id.desc())
        )

        for trade in result.scalars():
            check = self._check_trade(rule, trade, account)
            if check.violated:
                return check

        return RuleCheck.passed()

    async def evaluate_for_trade(
        self,
        session: AsyncSession,
        rule: RiskRule,
        trade: Trade,
        account: Account,
    ) -> RuleCheck:
        if await trade_has_incident(session, rule, trade):
            return RuleCheck.passed()

        return self._check_trade(rule, trade, account)

    def _check_trade(self, rule: RiskRule, trade: Trade, account: Account) -> RuleCheck:
        duration = trade.duration_seconds
        if duration is None or rule.min_duration_seconds is None:
            return RuleCheck.passed()

        if duration < rule.min_duration_seconds:
            return RuleCheck.violation(
                duration_seconds=duration,
                min_duration_seconds=rule.min_duration_seconds,
                trade_id=trade.id,
                account_id=account.id,
            )

        return RuleCheck.passed()
