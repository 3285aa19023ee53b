import pytest
import httpx
from app.main import app

@pytest.mark.asyncio
async def test_health():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/v1/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok", "service": "foodshare-api"}


@pytest.mark.asyncio
async def test_missing_api_key_is_401(client):
    r = await client.get("/v1/me")
    assert r.status_code == 401
    assert r.json()["detail"] == "Missing X-API-Key"

    r = await client.get("/v1/me", headers={"X-API-Key": "fs_not-a-real-key"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid API key"
