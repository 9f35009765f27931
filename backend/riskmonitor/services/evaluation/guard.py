"""
Duplicate Guard

Cooldown lookup shared by the orchestrator pre-check and the incident
writer's in-transaction re-check. The key is (rule, account, trade-or-NULL).
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.core.config import settings
from riskmonitor.db.models import Incident, RiskRule, Trade, utcnow
from riskmonitor.schemas.risk import RuleType


def cooldown_minutes(rule: RiskRule) -> int:
    """Minutes before the same rule may fire again for the same key."""
    if rule.type == RuleType.OPEN_TRADES.value:
        return settings.open_trades_cooldown_minutes
    return settings.duplicate_cooldown_minutes


def incident_trade_key(rule: RiskRule, trade: Optional[Trade]) -> Optional[int]:
    """Trade id stored on (and matched against) incidents for this evaluation."""
    # OPEN_TRADES is account-scoped
    if rule.type == RuleType.OPEN_TRADES.value or trade is None:
        return None
    return trade.id


async def has_recent_incident(
    session: AsyncSession,
    rule: RiskRule,
    account_id: int,
    trade_id: Optional[int],
    now: Optional[datetime] = None,
) -> bool:
    """Whether an incident with the same key was created inside the cooldown."""
    since = (now or utcnow()) - timedelta(minutes=cooldown_minutes(rule))

    query = select(Incident.id).where(
        Incident.account_id == account_id,
        Incident.rule_id == rule.id,
        Incident.created_at >= since,
    )
    if trade_id is None:
        query = query.where(Incident.trade_id.is_(None))
    else:
        query = query.where(Incident.trade_id == trade_id)

    result = await session.execute(query.limit(1))
    return result.first() is not None
