"""Tests for the POST /api/webhook/test receiver."""

import pytest

from worker.webhook import SIGNATURE_HEADER, TYPE_HEADER, serialize, sign


@pytest.mark.asyncio
async def test_receiver_verifies_signature(client):
    body = serialize({"success": True, "jobId": "article-1-abc", "data": {}})

    response = await client.post(
        "/api/webhook/test?secret=s",
        content=body,
        headers={SIGNATURE_HEADER: sign("s", body), TYPE_HEADER: "article"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["signatureVerified"] is True
    assert data["event"] == "article"


@pytest.mark.asyncio
async def test_receiver_flags_bad_signature(client):
    response = await client.post(
        "/api/webhook/test",
        content='{"a":1}',
        headers={SIGNATURE_HEADER: "0" * 64, "X-Webhook-Secret": "s"},
    )
    assert response.json()["data"]["signatureVerified"] is False


@pytest.mark.asyncio
async def test_receiver_without_secret_skips_verification(client):
    response = await client.post("/api/webhook/test", content='{"a":1}')
    assert response.json()["data"]["signatureVerified"] is None
