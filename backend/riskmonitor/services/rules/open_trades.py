"""
Open Trades Rule

Account-scoped: counts the account's open trades opened inside the rule's
time window. Trade-triggered evaluation runs the same account check and never
ties the incident to the triggering trade.
"""

from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.db.models import Account, Incident, RiskRule, Trade, utcnow
from riskmonitor.schemas.risk import RuleType, TradeStatus
from riskmonitor.services.rules.interface import RuleCheck, RuleStrategy


class OpenTradesRule(RuleStrategy):
    """
    Open Trades Rule

    Violated when the open trade count in the window exceeds max_open_trades
    (if set) or falls below min_open_trades (if set). An incident for the
    same rule and account inside the window suppresses the check. A rule
    without a time window never violates.
    """

    rule_type = RuleType.OPEN_TRADES

    async def evaluate_for_account(
        self,
        session: AsyncSession,
        rule: RiskRule,
        account: Account,
    ) -> RuleCheck:
        # No window, nothing to count
        if rule.time_window_minutes is None:
            return RuleCheck.passed()

        since = utcnow() - timedelta(minutes=rule.time_window_minutes)

        # Rule-level dedup, independent of the generic cooldown
        result = await session.execute(
            select(Incident.id)
            .where(
                Incident.account_id == account.id,
                Incident.rule_id == rule.id,
                Incident.created_at >= since,
            )
            .limit(1)
        )
        if result.first() is not None:
            return RuleCheck.passed()

        return await self._check_open_trades(session, rule, account, since)

    async def evaluate_for_trade(
        self,
        session: AsyncSession,
        rule: RiskRule,
        trade: Trade,
        account: Account,
    ) -> RuleCheck:
        return await self.evaluate_for_account(session, rule, account)

    async def _check_open_trades(self, session, rule, account, since) -> RuleCheck:
        open_count = (
            await session.execute(
                select(func.count(Trade.id)).where(
                    Trade.account_id == account.id,
                    Trade.status == TradeStatus.OPEN.value,
                    Trade.open_time >= since,
                )
            )
        ).scalar_one()

        violated = False
        if rule.max_open_trades is not None and open_count > rule.max_open_trades:
            violated = True
        if rule.min_open_trades is not None and open_count < rule.min_open_trades:
            violated = True

        if not violated:
            return RuleCheck.passed()

        return RuleCheck.violation(
            current_count=open_count,
            time_window_minutes=rule.time_window_minutes,
            min_allowed=rule.min_open_trades,
            max_allowed=rule.max_open_trades,
            account_id=account.id,
        )
