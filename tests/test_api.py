"""Tests for the FastAPI endpoints."""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from swapsolver.api.app import create_app
from swapsolver.config import USDT_ON_ETH, USDT_ON_TRON, Settings
from swapsolver.engine.processor import SwapEngine


@pytest.fixture
def settings():
    return Settings(intent_relay_api_key="super-secret")


@pytest.fixture
def engine(settings):
    return SwapEngine.from_settings(settings)


@pytest_asyncio.fixture
async def client(engine, settings):
    """Create async test client."""
    app = create_app(engine=engine, settings=settings, manage_engine=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def quote_body(quote_id: str = "q1", amount: str = "10000000", token_in: str = USDT_ON_ETH) -> dict:
    return {
        "quote_id": quote_id,
        "defuse_asset_identifier_in": token_in,
        "defuse_asset_identifier_out": USDT_ON_TRON,
        "exact_amount_in": amount,
        "min_deadline_ms": 60000,
    }


def accept_body() -> dict:
    payload = {"intents": [{"intent": "token_diff", "diff": {USDT_ON_ETH: "-10000000", USDT_ON_TRON: "9000000"}}]}
    return {"signed_data": {"standard": "erc191", "payload": json.dumps(payload), "signature": "sig"}}


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "swapsolver"
        assert data["engine_running"] is False

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["config"]["environment"] == "test"
        assert data["config"]["relay"]["api_key"] == "***"
        assert "super-secret" not in response.text
        assert data["stats"]["total"] == 0


class TestQuoteEndpoints:
    """Quote submission and acceptance."""

    @pytest.mark.asyncio
    async def test_submit_supported_quote(self, client):
        response = await client.post("/api/v1/quotes", json=quote_body())

        assert response.status_code == 202
        data = response.json()
        assert data["accepted"] is True
        assert data["swap"]["state"] == "pending_acceptance"
        assert data["swap"]["amount_in"] == "10000000"
        assert data["swap"]["amount_out"] == "9000000"

    @pytest.mark.asyncio
    async def test_submit_unsupported_quote(self, client):
        response = await client.post("/api/v1/quotes", json=quote_body(token_in="nep141:wrap.near"))

        assert response.status_code == 202
        assert response.json() == {"accepted": False, "swap": None}

    @pytest.mark.asyncio
    async def test_submit_invalid_amount(self, client):
        response = await client.post("/api/v1/quotes", json=quote_body(amount="1.5"))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_accept_quote(self, client):
        created = (await client.post("/api/v1/quotes", json=quote_body())).json()["swap"]

        response = await client.post("/api/v1/quotes/q1/accept", json=accept_body())

        assert response.status_code == 202
        data = response.json()
        assert data["id"] == created["id"]
        assert data["state"] == "quote_accepted"
        assert data["user_deposit_hash"]

    @pytest.mark.asyncio
    async def test_accept_unknown_quote_creates_swap(self, client):
        response = await client.post("/api/v1/quotes/remote/accept", json=accept_body())

        assert response.status_code == 202
        assert response.json()["amount_out"] == "9000000"

    @pytest.mark.asyncio
    async def test_accept_unknown_unsupported_quote_rejected(self, client):
        payload = {"intents": [{"intent": "token_diff", "diff": {"nep141:junk.near": "-1", USDT_ON_TRON: "1"}}]}
        body = {"signed_data": {"standard": "erc191", "payload": json.dumps(payload), "signature": "sig"}}

        response = await client.post("/api/v1/quotes/remote/accept", json=body)

        assert response.status_code == 422
        stats = (await client.get("/api/v1/stats")).json()
        assert stats["total"] == 0


class TestSwapEndpoints:
    """Swap introspection."""

    @pytest.mark.asyncio
    async def test_get_swap(self, client):
        created = (await client.post("/api/v1/quotes", json=quote_body())).json()["swap"]

        response = await client.get(f"/api/v1/swaps/{created['id']}")

        assert response.status_code == 200
        assert response.json()["quote_id"] == "q1"

    @pytest.mark.asyncio
    async def test_get_missing_swap(self, client):
        response = await client.get("/api/v1/swaps/swap-missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_swaps_by_state(self, client):
        await client.post("/api/v1/quotes", json=quote_body("q1"))
        await client.post("/api/v1/quotes", json=quote_body("q2"))
        await client.post("/api/v1/quotes/q2/accept", json=accept_body())

        everything = (await client.get("/api/v1/swaps")).json()
        pending = (await client.get("/api/v1/swaps", params={"state": "pending_acceptance"})).json()
        accepted = (await client.get("/api/v1/swaps", params={"state": "quote_accepted"})).json()

        assert len(everything) == 2
        assert [s["quote_id"] for s in pending] == ["q1"]
        assert [s["quote_id"] for s in accepted] == ["q2"]

    @pytest.mark.asyncio
    async def test_list_swaps_unknown_state(self, client):
        response = await client.get("/api/v1/swaps", params={"state": "bogus"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_stats(self, client, engine):
        await client.post("/api/v1/quotes", json=quote_body("q1"))
        await client.post("/api/v1/quotes", json=quote_body("q2"))
        await client.post("/api/v1/quotes/q2/accept", json=accept_body())
        await engine.process_all_states()

        response = await client.get("/api/v1/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["in_flight"] == 0
        assert data["by_state"]["pending_acceptance"] == 1
        assert data["by_state"]["intent_created"] == 1
        assert len(data["by_state"]) == 15
