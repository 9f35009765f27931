"""
Rule Evaluator Implementation

Orchestrates one evaluation run:
    active rules -> strategy lookup -> duplicate pre-check -> strategy
        -> incident writer (re-check, insert, SOFT accumulation, actions)

Entry points:
- evaluate_account: periodic / manual check of one account
- evaluate_trade: event check when a trade closes
- evaluate_all_active_accounts: batch over enabled accounts, guarded by a
  short-lived advisory lock per account
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from riskmonitor.core.config import settings
from riskmonitor.db.database import AsyncSessionLocal, WriteSessionLocal, ping
from riskmonitor.db.models import Account, RiskRule, Trade
from riskmonitor.schemas.evaluation import RuleEvaluationResult
from riskmonitor.schemas.risk import AccountStatus
from riskmonitor.services.actions import ActionService
from riskmonitor.services.base import AccountNotFoundError, TradeNotFoundError
from riskmonitor.services.cache import EvaluationLockCache, account_lock_key, get_lock_cache
from riskmonitor.services.evaluation.guard import has_recent_incident, incident_trade_key
from riskmonitor.services.evaluation.interface import (
    EvaluationRequest,
    EvaluationScope,
    RuleEvaluatorInterface,
)
from riskmonitor.services.evaluation.writer import IncidentWriter
from riskmonitor.services.rules import get_rule_handler

logger = logging.getLogger(__name__)


class RuleEvaluatorService(RuleEvaluatorInterface):
    """
    Risk-rule evaluation engine.

    Reads go through ``session_factory``; incidents are written through
    ``write_session_factory`` whose transactions are serialized against
    other writers.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        write_session_factory: Optional[async_sessionmaker] = None,
        lock_cache: Optional[EvaluationLockCache] = None,
        action_service: Optional[ActionService] = None,
    ):
        self._session_factory = session_factory or AsyncSessionLocal
        self._writer = IncidentWriter(write_session_factory or WriteSessionLocal, action_service)
        self._locks = lock_cache or get_lock_cache()

    @property
    def name(self) -> str:
        return "RuleEvaluatorService"

    async def execute(self, input_data: EvaluationRequest) -> list[RuleEvaluationResult]:
        """Dispatch on the request scope."""
        if input_data.scope == EvaluationScope.ACCOUNT:
            return await self.evaluate_account(input_data.target_id)
        if input_data.scope == EvaluationScope.TRADE:
            return await self.evaluate_trade(input_data.target_id)
        return await self.evaluate_all_active_accounts()

    async def health_check(self) -> bool:
        try:
            async with self._session_factory() as session:
                return await ping(session)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def evaluate_account(self, account_id: int) -> list[RuleEvaluationResult]:
        async with self._session_factory() as session:
            account = await session.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(self.name, account_id)
            return await self._evaluate_account(session, account)

    async def evaluate_trade(self, trade_id: int) -> list[RuleEvaluationResult]:
        async with self._session_factory() as session:
            trade = await session.get(Trade, trade_id)
            if trade is None:
                raise TradeNotFoundError(self.name, trade_id)

            # Only closed trades are evaluated
            if not trade.is_closed:
                return []

            account = await session.get(Account, trade.account_id)
            results = []
            for rule in await self._active_rules(session):
                result = await self.evaluate_rule(session, rule, account, trade)
                if result.violated:
                    results.append(result)
            return results

    async def evaluate_all_active_accounts(self) -> list[RuleEvaluationResult]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Account.id)
                .where(
                    Account.status == AccountStatus.ENABLE.value,
                    Account.trading_status == AccountStatus.ENABLE.value,
                )
                .order_by(Account.id)
            )
            account_ids = list(result.scalars())

        results: list[RuleEvaluationResult] = []
        ttl = settings.evaluation_lock_ttl_seconds

        for account_id in account_ids:
            lock_key = account_lock_key(account_id)

            if not await self._locks.acquire(lock_key, ttl):
                logger.debug(f"Account {account_id} is already being evaluated, skipping...")
                continue

            try:
                account_results = await self.evaluate_account(account_id)
                for item in account_results:
                    results.append(item)
            except Exception as e:
                logger.error(f"Evaluation failed for account {account_id}: {e}", exc_info=True)
            finally:
                await self._locks.forget(lock_key)

        return results

    # =========================================================================
    # PER-RULE STEP
    # =========================================================================

    async def evaluate_rule(
        self,
        session: AsyncSession,
        rule: RiskRule,
        account: Account,
        trade: Optional[Trade] = None,
    ) -> RuleEvaluationResult:
        """
        Evaluate one rule for an account (account mode) or for a trade
        (trade mode when ``trade`` is given).
        """
        handler = get_rule_handler(rule.type)
        if handler is None:
            return RuleEvaluationResult(
                rule_id=rule.id,
                rule_name=rule.name,
                rule_type=rule.type,
                violated=False,
                message=f"No handler for rule type: {rule.type}",
            )

        trade_key = incident_trade_key(rule, trade)

        # Cheap filter; the writer re-checks inside its transaction
        if await has_recent_incident(session, rule, account.id, trade_key):
            target = f"trade {trade.id}" if trade is not None else f"account {account.id}"
            logger.debug(f"Recent incident exists for rule {rule.id} on {target}, skipping...")
            return RuleEvaluationResult(rule_id=rule.id, rule_name=rule.name, rule_type=rule.type, violated=False)

        if trade is None:
            check = await handler.evaluate_for_account(session, rule, account)
        else:
            check = await handler.evaluate_for_trade(session, rule, trade, account)

        if not check.violated:
            return RuleEvaluationResult(rule_id=rule.id, rule_name=rule.name, rule_type=rule.type, violated=False)

        # Hand the read connection back to the pool before the writer takes one
        await session.commit()

        return await self._writer.create_incident(rule, account, trade_key, check.evidence)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _evaluate_account(self, session: AsyncSession, account: Account) -> list[RuleEvaluationResult]:
        results = []
        for rule in await self._active_rules(session):
            result = await self.evaluate_rule(session, rule, account)
            if result.violated:
                results.append(result)
        return results

    async def _active_rules(self, session: AsyncSession) -> list[RiskRule]:
        result = await session.execute(
            select(RiskRule).where(RiskRule.is_active.is_(True)).order_by(RiskRule.id)
        )
        return list(result.scalars())


# Singleton instance
_service_instance: Optional[RuleEvaluatorService] = None


def get_rule_evaluator() -> RuleEvaluatorService:
    """Get or create rule evaluator instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = RuleEvaluatorService()
    return _service_instance
