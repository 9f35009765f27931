"""
Volume Rule

Flags trades whose volume departs from the account's recent average.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.db.models import Account, RiskRule, Trade
from riskmonitor.schemas.risk import RuleType, TradeStatus
from riskmonitor.services.rules.interface import (
    RuleCheck,
    RuleStrategy,
    trade_has_incident,
    without_incident_for,
)


class VolumeRule(RuleStrategy):
    """
    Volume Consistency Rule

    Baseline: average volume of the last ``lookback_trades`` closed trades of
    the account, excluding the trade under test (newest close first).
    Violated when volume < avg * min_factor or volume > avg * max_factor.
    Without any historical trade there is no baseline and no violation.
    """

    rule_type = RuleType.VOLUME

    async def evaluate_for_account(
        self,
        session: AsyncSession,
        rule: RiskRule,
        account: Account,
    ) -> RuleCheck:
        # Latest closed trade not yet flagged by this rule
        result = await session.execute(
            select(Trade)
            .where(
                Trade.account_id == account.id,
                Trade.status == TradeStatus.CLOSED.value,
                without_incident_for(rule),
            )
            .order_by(Trade.close_time.desc(), Trade.id.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()
        if latest is None:
            return RuleCheck.passed()

        return await self._check_trade(session, rule, latest, account)

    async def evaluate_for_trade(
        self,
        session: AsyncSession,
        rule: RiskRule,
        trade: Trade,
        account: Account,
    ) -> RuleCheck:
        if await trade_has_incident(session, rule, trade):
            return RuleCheck.passed()

        return await self._check_trade(session, rule, trade, account)

    async def _check_trade(
        self,
        session: AsyncSession,
        rule: RiskRule,
        trade: Trade,
        account: Account,
    ) -> RuleCheck:
        if rule.min_factor is None or rule.max_factor is None:
            return RuleCheck.passed()

        result = await session.execute(
            select(Trade.volume)
            .where(
                Trade.account_id == account.id,
                Trade.status == TradeStatus.CLOSED.value,
                Trade.id != trade.id,
            )
            .order_by(Trade.close_time.desc(), Trade.id.desc())
            .limit(rule.lookback_trades)
        )
        volumes = [Decimal(v) for v in result.scalars()]

        # No baseline yet
        if not volumes:
            return RuleCheck.passed()

        average = sum(volumes) / len(volumes)
        min_expected = average * Decimal(rule.min_factor)
        max_expected = average * Decimal(rule.max_factor)
        current = Decimal(trade.volume)

        if current < min_expected or current > max_expected:
            return RuleCheck.violation(
                current_volume=current,
                average_volume=average,
                min_expected=min_expected,
                max_expected=max_expected,
                lookback_count=len(volumes),
                trade_id=trade.id,
                account_id=account.id,
            )

        return RuleCheck.passed()
