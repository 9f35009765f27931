"""
Test configuration and shared fixtures for the Trade Risk Monitor tests.

Every test gets its own SQLite file database (WAL mode needs a real file)
with both session factories bound to it.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select

from riskmonitor.db.database import create_engine, create_session_factory, init_db
from riskmonitor.db.models import (
    Account,
    Incident,
    Notification,
    RiskRule,
    RuleAction,
    Trade,
    utcnow,
)
from riskmonitor.schemas.risk import AccountStatus, Severity, TradeStatus
from riskmonitor.services.actions import ActionService
from riskmonitor.services.cache import EvaluationLockCache
from riskmonitor.services.evaluation import RuleEvaluatorService


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
async def engine(tmp_path):
    """Fresh database file with all tables."""
    test_engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'risk.db'}")
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def write_session_factory(engine):
    return create_session_factory(engine, serializable=True)


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def lock_cache():
    """In-memory advisory lock table."""
    return EvaluationLockCache()


@pytest.fixture
def evaluator(session_factory, write_session_factory, lock_cache):
    return RuleEvaluatorService(
        session_factory=session_factory,
        write_session_factory=write_session_factory,
        lock_cache=lock_cache,
        action_service=ActionService(),
    )


# =============================================================================
# Seed data
# =============================================================================

class Seed:
    """Inserts rows through their own committed sessions."""

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._next_login = 100001

    async def _add(self, obj):
        async with self._session_factory() as session:
            session.add(obj)
            await session.commit()
        return obj

    async def account(
        self,
        login: Optional[int] = None,
        status: str = AccountStatus.ENABLE.value,
        trading_status: str = AccountStatus.ENABLE.value,
    ) -> Account:
        if login is None:
            login = self._next_login
            self._next_login += 1
        return await self._add(Account(login=login, status=status, trading_status=trading_status))

    async def trade(
        self,
        account: Account,
        volume="1.00",
        duration_seconds: Optional[int] = None,
        closed_ago_seconds: int = 60,
        open_time: Optional[datetime] = None,
    ) -> Trade:
        """
        Closed trade of ``duration_seconds`` that closed ``closed_ago_seconds``
        ago, or an open trade when ``duration_seconds`` is None.
        """
        now = utcnow()
        if duration_seconds is None:
            trade = Trade(
                account_id=account.id,
                type="BUY",
                volume=Decimal(str(volume)),
                open_time=open_time or now - timedelta(minutes=5),
                open_price=Decimal("1.10000"),
                status=TradeStatus.OPEN.value,
            )
        else:
            close_time = now - timedelta(seconds=closed_ago_seconds)
            trade = Trade(
                account_id=account.id,
                type="BUY",
                volume=Decimal(str(volume)),
                open_time=close_time - timedelta(seconds=duration_seconds),
                close_time=close_time,
                open_price=Decimal("1.10000"),
                close_price=Decimal("1.10100"),
                status=TradeStatus.CLOSED.value,
            )
        return await self._add(trade)

    async def rule(self, type: str, severity: str = Severity.HARD.value, name: Optional[str] = None, **params) -> RiskRule:
        return await self._add(
            RiskRule(name=name or f"{type.title()} rule", type=type, severity=severity, **params)
        )

    async def action(self, rule: RiskRule, action_type: str, order: int = 0, config: Optional[dict] = None) -> RuleAction:
        return await self._add(RuleAction(rule_id=rule.id, action_type=action_type, order=order, config=config))

    # ============ Read-back helpers ============

    async def incidents(self, rule: Optional[RiskRule] = None) -> list[Incident]:
        async with self._session_factory() as session:
            query = select(Incident).order_by(Incident.id)
            if rule is not None:
                query = query.where(Incident.rule_id == rule.id)
            return list((await session.execute(query)).scalars())

    async def notifications(self) -> list[Notification]:
        async with self._session_factory() as session:
            result = await session.execute(select(Notification).order_by(Notification.id))
            return list(result.scalars())

    async def reload(self, model, id: int):
        async with self._session_factory() as session:
            return await session.get(model, id)

    async def backdate_incidents(self, minutes: int) -> None:
        async with self._session_factory() as session:
            for incident in (await session.execute(select(Incident))).scalars():
                incident.created_at = incident.created_at - timedelta(minutes=minutes)
            await session.commit()


@pytest.fixture
def seed(session_factory):
    return Seed(session_factory)
