"""
API integration tests for /api/ip — the whitelist workflow end to end.

    no entry → POST /api/ip/request → PENDING → admin WHITELIST → admitted
"""

import uuid

import pytest

from access.gate import BLACKLIST_MESSAGES, NEEDS_APPROVAL, WAITING_APPROVAL


async def _entry_id(client, admin_headers, ip):
    response = await client.get("/api/ip", headers=admin_headers)
    return next(e["id"] for e in response.json()["data"] if e["ip"] == ip)


@pytest.mark.asyncio
async def test_request_access_creates_pending_entry(client):
    response = await client.post("/api/ip/request", json={"note": "hello"})

    assert response.status_code == 200
    assert response.json()["data"] == {"ip": "127.0.0.1", "status": "PENDING"}


@pytest.mark.asyncio
async def test_request_access_for_explicit_ip(client):
    response = await client.post("/api/ip/request", json={"ip": "198.51.100.7"})
    assert response.json()["data"]["ip"] == "198.51.100.7"


@pytest.mark.asyncio
async def test_request_access_is_idempotent(client, admin_headers):
    await client.post("/api/ip/request", json={})
    await client.post("/api/ip/request", json={})

    response = await client.get("/api/ip", headers=admin_headers)
    assert len(response.json()["data"]) == 1


@pytest.mark.asyncio
async def test_whitelist_flow(client, admin_headers):
    body = {"topic": "tea"}

    response = await client.post("/api/articles/generate", json=body)
    assert response.json()["error"] == NEEDS_APPROVAL

    await client.post("/api/ip/request", json={"note": "please"})
    response = await client.post("/api/articles/generate", json=body)
    assert response.status_code == 403
    assert response.json()["error"] == WAITING_APPROVAL

    entry_id = await _entry_id(client, admin_headers, "127.0.0.1")
    response = await client.patch(
        f"/api/ip/{entry_id}/status", json={"status": "WHITELIST"}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "WHITELIST"
    assert data["approvedAt"] is not None

    response = await client.post("/api/articles/generate", json=body)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "queued"


@pytest.mark.asyncio
async def test_blacklisted_ip_gets_a_known_phrase(client, admin_headers):
    await client.post("/api/ip/request", json={})
    entry_id = await _entry_id(client, admin_headers, "127.0.0.1")
    await client.patch(f"/api/ip/{entry_id}/status", json={"status": "BLACKLIST"}, headers=admin_headers)

    response = await client.post("/api/novels/generate", json={"title": "x"})

    assert response.status_code == 403
    body = response.json()
    assert body["status"] == "Blacklisted"
    assert body["message"] in BLACKLIST_MESSAGES


@pytest.mark.asyncio
async def test_blacklisted_ip_cannot_reset_itself(client, admin_headers):
    await client.post("/api/ip/request", json={})
    entry_id = await _entry_id(client, admin_headers, "127.0.0.1")
    await client.patch(f"/api/ip/{entry_id}/status", json={"status": "BLACKLIST"}, headers=admin_headers)

    response = await client.post("/api/ip/request", json={})
    assert response.json()["data"]["status"] == "BLACKLIST"


@pytest.mark.asyncio
async def test_admin_routes_require_key(client, admin_headers):
    assert (await client.get("/api/ip")).status_code == 403
    assert (await client.get("/api/ip", headers={"X-Admin-Key": "wrong"})).status_code == 403

    response = await client.patch(f"/api/ip/{uuid.uuid4()}/status", json={"status": "WHITELIST"})
    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Forbidden"}


@pytest.mark.asyncio
async def test_admin_routes_closed_without_configured_key(client):
    response = await client.get("/api/ip", headers={"X-Admin-Key": ""})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_set_status_unknown_entry_is_404(client, admin_headers):
    response = await client.patch(
        f"/api/ip/{uuid.uuid4()}/status", json={"status": "WHITELIST"}, headers=admin_headers
    )
    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_set_status_rejects_unknown_status(client, admin_headers):
    await client.post("/api/ip/request", json={})
    entry_id = await _entry_id(client, admin_headers, "127.0.0.1")

    response = await client.patch(
        f"/api/ip/{entry_id}/status", json={"status": "MAYBE"}, headers=admin_headers
    )
    assert response.status_code == 400
