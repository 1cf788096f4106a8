# tests/test_app.py — Health, envelopes and cross-cutting middleware
import pytest
from httpx import AsyncClient

from responses import ok, fail
from services.problem_service import ProblemService


def test_envelope_helpers():
    assert ok({"a": 1}) == {"success": True, "data": {"a": 1}}
    assert ok(message="done") == {"success": True, "message": "done"}
    assert fail("nope", "BAD") == {"success": False, "message": "nope", "code": "BAD"}
    assert fail("bad", "VALIDATION_ERROR", {"x": "y"})["errors"] == {"x": "y"}


@pytest.mark.asyncio
class TestApp:
    async def test_health(self, client: AsyncClient):
        res = await client.get("/api/health")
        assert res.status_code == 200
        data = res.json()["data"]
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["environment"] == "test"

    async def test_root(self, client: AsyncClient):
        res = await client.get("/")
        assert res.json()["data"]["health"] == "/api/health"

    async def test_unknown_route(self, client: AsyncClient):
        res = await client.get("/api/nowhere")
        assert res.status_code == 404
        body = res.json()
        assert body == {"success": False, "message": "Route GET /api/nowhere not found", "code": "NOT_FOUND"}

    async def test_method_not_allowed(self, client: AsyncClient):
        res = await client.delete("/api/problems/featured")
        assert res.status_code == 405
        assert res.json()["code"] == "METHOD_NOT_ALLOWED"

    async def test_request_id_round_trip(self, client: AsyncClient):
        res = await client.get("/api/health", headers={"X-Request-ID": "trace-abc"})
        assert res.headers["X-Request-ID"] == "trace-abc"
        assert res.headers["X-Response-Time"].endswith("s")

    async def test_request_id_generated(self, client: AsyncClient):
        res = await client.get("/api/health")
        assert len(res.headers["X-Request-ID"]) == 36

    async def test_security_headers(self, client: AsyncClient):
        res = await client.get("/api/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"

    async def test_unhandled_error_keeps_request_headers(self, client: AsyncClient, monkeypatch):
        async def explode(self):
            raise RuntimeError("featured lookup failed")

        monkeypatch.setattr(ProblemService, "get_featured_problems", explode)
        res = await client.get("/api/problems/featured", headers={"X-Request-ID": "trace-500"})
        assert res.status_code == 500
        assert res.json()["code"] == "INTERNAL_ERROR"
        assert res.headers["X-Request-ID"] == "trace-500"
        assert res.headers["X-Content-Type-Options"] == "nosniff"
