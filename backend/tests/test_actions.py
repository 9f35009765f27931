"""
Tests for the Action Executor.
"""

import logging

import pytest

from riskmonitor.core.logging import RISK_ACTIONS_LOGGER
from riskmonitor.db.models import Account, Incident, RiskRule, utcnow
from riskmonitor.schemas.risk import AccountStatus, NotificationStatus
from riskmonitor.services.actions import ActionService


async def run_actions(write_session_factory, rule, account):
    """Create an incident for ``rule`` and execute its actions in one transaction."""
    async with write_session_factory() as session:
        async with session.begin():
            stored_account = await session.get(Account, account.id)
            stored_rule = await session.get(RiskRule, rule.id)
            incident = Incident(
                rule_id=stored_rule.id,
                account_id=stored_account.id,
                severity=stored_rule.severity,
                description="Trade closed in 10s (minimum required: 60s)",
                created_at=utcnow(),
            )
            session.add(incident)
            await session.flush()
            return await ActionService().execute_actions(session, stored_rule, incident, stored_account)


class TestActionService:
    """Tests for action execution and notification records."""

    @pytest.mark.asyncio
    async def test_actions_run_in_order(self, seed, write_session_factory):
        account = await seed.account(login=700001)
        rule = await seed.rule("DURATION", min_duration_seconds=60)
        await seed.action(rule, "DISABLE_TRADING", order=2)
        await seed.action(rule, "SLACK", order=1, config={"channel": "#risk"})
        await seed.action(rule, "EMAIL", order=0, config={"recipients": ["risk@example.com"]})

        assert await run_actions(write_session_factory, rule, account)

        notifications = await seed.notifications()
        assert [n.action_type for n in notifications] == ["EMAIL", "SLACK", "DISABLE_TRADING"]
        assert [n.details for n in notifications] == [
            "Mock email sent to logs",
            "Mock Slack notification sent to logs",
            "Trading disabled for account 700001",
        ]
        assert all(n.executed_at is not None for n in notifications)
        assert notifications[1].meta["config"] == {"channel": "#risk"}
        assert notifications[1].meta["login"] == 700001

        stored = await seed.reload(Account, account.id)
        assert stored.trading_status == AccountStatus.DISABLE.value
        assert stored.status == AccountStatus.ENABLE.value

    @pytest.mark.asyncio
    async def test_failing_action_does_not_stop_the_rest(self, seed, write_session_factory):
        account = await seed.account(login=700002)
        rule = await seed.rule("DURATION", min_duration_seconds=60)
        await seed.action(rule, "FAX", order=0)
        await seed.action(rule, "DISABLE_ACCOUNT", order=1)

        assert await run_actions(write_session_factory, rule, account)

        failed, executed = await seed.notifications()
        assert failed.status == NotificationStatus.FAILED.value
        assert failed.details == "Action type not implemented: FAX"
        assert failed.executed_at is None
        assert executed.status == NotificationStatus.EXECUTED.value
        assert executed.details == "Account 700002 disabled"

        stored = await seed.reload(Account, account.id)
        assert stored.status == AccountStatus.DISABLE.value

    @pytest.mark.asyncio
    async def test_only_failures_report_not_executed(self, seed, write_session_factory):
        account = await seed.account()
        rule = await seed.rule("DURATION", min_duration_seconds=60)
        await seed.action(rule, "FAX")

        assert not await run_actions(write_session_factory, rule, account)
        assert len(await seed.notifications()) == 1

    @pytest.mark.asyncio
    async def test_no_actions(self, seed, write_session_factory):
        account = await seed.account()
        rule = await seed.rule("DURATION", min_duration_seconds=60)

        assert not await run_actions(write_session_factory, rule, account)
        assert await seed.notifications() == []

    @pytest.mark.asyncio
    async def test_email_goes_to_action_log(self, seed, write_session_factory, caplog):
        account = await seed.account()
        rule = await seed.rule("DURATION", min_duration_seconds=60)
        await seed.action(rule, "EMAIL")

        with caplog.at_level(logging.INFO, logger=RISK_ACTIONS_LOGGER):
            await run_actions(write_session_factory, rule, account)

        records = [r for r in caplog.records if r.name == RISK_ACTIONS_LOGGER]
        assert len(records) == 1
        assert records[0].getMessage().startswith("EMAIL sent for incident")
