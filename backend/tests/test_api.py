"""
Tests for the HTTP endpoints.

The app runs in-process through httpx's ASGI transport with the database
session and evaluator dependencies pointed at the test database.
"""

import pytest
from datetime import timedelta

from httpx import ASGITransport, AsyncClient

from riskmonitor.db.database import get_db
from riskmonitor.db.models import utcnow
from riskmonitor.main import app
from riskmonitor.services.evaluation import get_rule_evaluator


@pytest.fixture
async def client(session_factory, evaluator):
    async def override_get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rule_evaluator] = lambda: evaluator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


class TestMeta:
    """Tests for the health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestEvaluationEndpoints:
    """Tests for /api/v1/evaluate."""

    @pytest.mark.asyncio
    async def test_evaluate_account(self, client, seed):
        account = await seed.account(login=424242)
        await seed.trade(account, duration_seconds=10)
        await seed.rule("DURATION", min_duration_seconds=60)

        response = await client.post(f"/api/v1/evaluate/account/{account.id}", json={"trigger": "periodic"})

        assert response.status_code == 200
        body = response.json()
        assert body["login"] == 424242
        assert body["violations_found"] == 1
        assert body["trigger"] == "periodic"
        assert body["results"][0]["description"] == "Trade closed in 10s (minimum required: 60s)"

    @pytest.mark.asyncio
    async def test_evaluate_account_without_body(self, client, seed):
        account = await seed.account()

        response = await client.post(f"/api/v1/evaluate/account/{account.id}")

        assert response.status_code == 200
        assert response.json()["trigger"] == "manual"
        assert response.json()["violations_found"] == 0

    @pytest.mark.asyncio
    async def test_evaluate_unknown_account(self, client):
        response = await client.post("/api/v1/evaluate/account/999")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_evaluate_trade(self, client, seed):
        account = await seed.account()
        trade = await seed.trade(account, duration_seconds=10)
        await seed.rule("DURATION", min_duration_seconds=60)

        response = await client.post(f"/api/v1/evaluate/trade/{trade.id}", json={"trigger": "event"})

        assert response.status_code == 200
        body = response.json()
        assert body["trade_id"] == trade.id
        assert body["account_id"] == account.id
        assert body["violations_found"] == 1

    @pytest.mark.asyncio
    async def test_evaluate_unknown_trade(self, client):
        response = await client.post("/api/v1/evaluate/trade/999")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_evaluate_all_active(self, client, seed):
        for _ in range(2):
            account = await seed.account()
            await seed.trade(account, duration_seconds=10)
        await seed.rule("DURATION", min_duration_seconds=60)

        response = await client.post("/api/v1/evaluate/all-active")

        assert response.status_code == 200
        body = response.json()
        assert body["total_accounts_evaluated"] == 2
        assert body["total_violations_found"] == 2


class TestTradeEndpoints:
    """Tests for /api/v1/trades."""

    @pytest.mark.asyncio
    async def test_close_trade_triggers_evaluation(self, client, seed):
        account = await seed.account()
        trade = await seed.trade(account, open_time=utcnow() - timedelta(seconds=10))
        await seed.rule("DURATION", min_duration_seconds=60)

        response = await client.post(f"/api/v1/trades/{trade.id}/close", json={"close_price": 1.2})

        assert response.status_code == 200
        body = response.json()
        assert body["trade"]["status"] == "closed"
        assert body["trade"]["close_price"] == pytest.approx(1.2)
        assert len(body["evaluation"]) == 1
        assert body["evaluation"][0]["trade_id"] == trade.id
        assert len(await seed.incidents()) == 1

    @pytest.mark.asyncio
    async def test_close_trade_twice(self, client, seed):
        account = await seed.account()
        trade = await seed.trade(account, duration_seconds=600)

        response = await client.post(f"/api/v1/trades/{trade.id}/close", json={"close_price": 1.2})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_close_unknown_trade(self, client):
        response = await client.post("/api/v1/trades/999/close", json={"close_price": 1.2})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_close_price_must_be_positive(self, client, seed):
        account = await seed.account()
        trade = await seed.trade(account)

        response = await client.post(f"/api/v1/trades/{trade.id}/close", json={"close_price": 0})
        assert response.status_code == 422
