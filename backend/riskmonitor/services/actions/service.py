"""
Action Executor

Runs a rule's actions for a materialized incident, in ascending ``order``.

- EMAIL / SLACK: stub channels, written to the risk_actions log only
- DISABLE_ACCOUNT: account.status -> disable
- DISABLE_TRADING: account.trading_status -> disable

Every attempt leaves one Notification row. A failing action is recorded as
FAILED and does not stop the actions after it.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy import inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.core.logging import get_action_logger
from riskmonitor.db.models import (
    Account,
    Incident,
    Notification,
    RiskRule,
    RuleAction,
    utcnow,
)
from riskmonitor.schemas.risk import ActionType, NotificationStatus

logger = logging.getLogger(__name__)
action_logger = get_action_logger()

ActionHandler = Callable[[AsyncSession, RuleAction, Incident, Account], Awaitable[str]]


class ActionService:
    """Executes rule actions and records their outcome."""

    def __init__(self):
        self._handlers: Dict[ActionType, ActionHandler] = {
            ActionType.EMAIL: self._send_email,
            ActionType.SLACK: self._send_slack,
            ActionType.DISABLE_ACCOUNT: self._disable_account,
            ActionType.DISABLE_TRADING: self._disable_trading,
        }

    async def execute_actions(
        self,
        session: AsyncSession,
        rule: RiskRule,
        incident: Incident,
        account: Account,
    ) -> bool:
        """
        Execute all actions of ``rule`` for ``incident``.
        Returns True if at least one action executed successfully.
        """
        result = await session.execute(
            select(RuleAction)
            .where(RuleAction.rule_id == rule.id)
            .order_by(RuleAction.order.asc(), RuleAction.id.asc())
        )
        actions = list(result.scalars())

        any_executed = False
        for action in actions:
            if await self.execute(session, action, incident, account):
                any_executed = True

        return any_executed

    async def execute(
        self,
        session: AsyncSession,
        action: RuleAction,
        incident: Incident,
        account: Account,
    ) -> bool:
        """Execute a single action inside a savepoint. Never raises."""
        # Captured up front: a rolled back savepoint expires what it touched
        action_type = action.action_type
        incident_id = incident.id
        meta = self._metadata(action, incident, account)

        try:
            async with session.begin_nested():
                handler = self._get_handler(action_type)
                details = await handler(session, action, incident, account)
                await self._record(session, incident_id, action_type, NotificationStatus.EXECUTED, details, meta)
            return True
        except Exception as e:
            logger.error(f"Error executing action {action_type} for incident {incident_id}: {e}")
            if inspect(account).expired_attributes:
                await session.refresh(account)
            await self._record(session, incident_id, action_type, NotificationStatus.FAILED, str(e), meta)
            return False

    def _get_handler(self, action_type: str) -> ActionHandler:
        try:
            return self._handlers[ActionType(action_type)]
        except ValueError:
            raise ValueError(f"Action type not implemented: {action_type}")

    async def _record(
        self,
        session: AsyncSession,
        incident_id: int,
        action_type: str,
        status: NotificationStatus,
        details: Optional[str],
        meta: Dict[str, Any],
    ) -> Notification:
        notification = Notification(
            incident_id=incident_id,
            action_type=action_type,
            status=status.value,
            details=details,
            meta=meta,
            executed_at=utcnow() if status == NotificationStatus.EXECUTED else None,
        )
        session.add(notification)
        await session.flush()
        return notification

    @staticmethod
    def _metadata(action: RuleAction, incident: Incident, account: Account) -> Dict[str, Any]:
        return {
            "incident_id": incident.id,
            "account_id": account.id,
            "login": account.login,
            "rule_id": incident.rule_id,
            "severity": incident.severity,
            "action_id": action.id,
            "config": action.config or {},
        }

    # ============ Handlers ============

    async def _send_email(self, session, action, incident, account) -> str:
        action_logger.info(
            f"EMAIL sent for incident {incident.id}",
            extra={
                "incident_id": incident.id,
                "account_id": account.id,
                "rule_id": incident.rule_id,
                "description": incident.description,
                "recipients": (action.config or {}).get("recipients"),
            },
        )
        return "Mock email sent to logs"

    async def _send_slack(self, session, action, incident, account) -> str:
        action_logger.info(
            f"SLACK notification for incident {incident.id}",
            extra={
                "incident_id": incident.id,
                "account_id": account.id,
                "rule_id": incident.rule_id,
                "severity": incident.severity,
                "channel": (action.config or {}).get("channel"),
            },
        )
        return "Mock Slack notification sent to logs"

    async def _disable_account(self, session, action, incident, account) -> str:
        account.disable_account()
        await session.flush()

        action_logger.warning(
            f"ACCOUNT DISABLED for incident {incident.id}",
            extra={
                "incident_id": incident.id,
                "account_id": account.id,
                "login": account.login,
                "rule_id": incident.rule_id,
            },
        )
        return f"Account {account.login} disabled"

    async def _disable_trading(self, session, action, incident, account) -> str:
        account.disable_trading()
        await session.flush()

        action_logger.warning(
            f"TRADING DISABLED for incident {incident.id}",
            extra={
                "incident_id": incident.id,
                "account_id": account.id,
                "login": account.login,
                "rule_id": incident.rule_id,
            },
        )
        return f"Trading disabled for account {account.login}"


# Singleton instance
_service_instance: Optional[ActionService] = None


def get_action_service() -> ActionService:
    """Get or create action service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ActionService()
    return _service_instance
