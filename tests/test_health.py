import pytest


@pytest.mark.asyncio
async def test_health_needs_no_auth_or_fields(client):
    r = await client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_unknown_route_is_404(client):
    r = await client.get("/v1/listings")
    assert r.status_code == 404
