"""
Incident Writer

Materializes a violation as an Incident inside one serialized write
transaction:

    re-check cooldown key -> insert incident -> count rolling window
        -> SOFT below threshold: stop (no actions)
        -> HARD / threshold reached: run actions

The re-check closes the window between the orchestrator's pre-check and the
insert. Any failure rolls the whole transaction back.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from riskmonitor.core.config import settings
from riskmonitor.db.models import Account, Incident, RiskRule, utcnow
from riskmonitor.schemas.evaluation import RuleEvaluationResult
from riskmonitor.schemas.risk import RuleType, Severity
from riskmonitor.services.actions import ActionService, get_action_service
from riskmonitor.services.evaluation.description import generate_description
from riskmonitor.services.evaluation.guard import has_recent_incident

logger = logging.getLogger(__name__)


class IncidentWriter:
    """Creates incidents and fires actions exactly once per qualifying violation."""

    def __init__(
        self,
        write_session_factory: async_sessionmaker,
        action_service: Optional[ActionService] = None,
    ):
        self._session_factory = write_session_factory
        self._actions = action_service or get_action_service()

    async def create_incident(
        self,
        rule: RiskRule,
        account: Account,
        trade_id: Optional[int],
        evidence: Dict[str, Any],
    ) -> RuleEvaluationResult:
        # OPEN_TRADES incidents never carry a trade
        if rule.type == RuleType.OPEN_TRADES.value:
            trade_id = None

        base = dict(
            rule_id=rule.id,
            rule_name=rule.name,
            rule_type=rule.type,
            severity=rule.severity,
            account_id=account.id,
            account_login=account.login,
            trade_id=trade_id,
        )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await self._create_in_transaction(session, rule, account.id, trade_id, evidence, base)
        except Exception as e:
            logger.exception(
                f"Incident creation failed for account {account.id}, rule {rule.id}: {e}"
            )
            return RuleEvaluationResult(
                violated=False,
                message="Incident creation failed",
                **base,
            )

    async def _create_in_transaction(
        self,
        session,
        rule: RiskRule,
        account_id: int,
        trade_id: Optional[int],
        evidence: Dict[str, Any],
        base: Dict[str, Any],
    ) -> RuleEvaluationResult:
        now = utcnow()

        if await has_recent_incident(session, rule, account_id, trade_id, now=now):
            logger.warning(
                f"Duplicate incident attempt in transaction for account {account_id}, rule {rule.id}"
            )
            return RuleEvaluationResult(
                violated=False,
                message="Duplicate incident detected in transaction",
                **base,
            )

        account = await session.get(Account, account_id)
        description = generate_description(rule, evidence)

        incident = Incident(
            rule_id=rule.id,
            account_id=account_id,
            trade_id=trade_id,
            severity=rule.severity,
            description=description,
            created_at=now,
        )
        session.add(incident)
        await session.flush()

        logger.info(
            "Incident created",
            extra={
                "incident_id": incident.id,
                "account_id": account_id,
                "rule_id": rule.id,
                "trade_id": trade_id,
                "rule_type": rule.type,
            },
        )

        window_start = now - timedelta(hours=settings.soft_rule_window_hours)
        recent_count = (
            await session.execute(
                select(func.count(Incident.id)).where(
                    Incident.account_id == account_id,
                    Incident.rule_id == rule.id,
                    Incident.created_at >= window_start,
                )
            )
        ).scalar_one()

        threshold = rule.incidents_before_action or 1
        result = dict(
            base,
            violated=True,
            incident_created=True,
            description=description,
            incident_id=incident.id,
            incidents_in_window=recent_count,
            incidents_before_action=threshold,
            created_at=incident.created_at,
        )

        if rule.severity == Severity.SOFT.value and recent_count < threshold:
            return RuleEvaluationResult(
                action_executed=False,
                message=f"Incident created ({recent_count}/{threshold} in {settings.soft_rule_window_hours}h)",
                **result,
            )

        executed = await self._actions.execute_actions(session, rule, incident, account)

        return RuleEvaluationResult(
            action_executed=executed,
            message="Incident created and actions executed",
            **result,
        )
