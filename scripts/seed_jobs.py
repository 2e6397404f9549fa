"""
Seed script — walks a fresh install through the whole admission flow.

Usage:
    ADMIN_API_KEY=changeme python -m scripts.seed_jobs

Steps:
- requests access for this machine's IP (lands as PENDING)
- whitelists it with the admin key
- submits one public article job and one public novel job, each with a
  webhook pointing back at the API's own /api/webhook/test receiver, so the
  signed callback shows up in the API log once the worker finishes

Run this after the API and a worker are up.
"""

import os

import httpx

BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")
WEBHOOK_SECRET = "seed-secret"


def seed():
    admin_key = os.environ.get("ADMIN_API_KEY")
    if not admin_key:
        raise SystemExit("Set ADMIN_API_KEY to the value the API was started with")

    client = httpx.Client(base_url=BASE_URL, timeout=10.0)
    admin_headers = {"X-Admin-Key": admin_key}

    # ── Access: request, then approve ───────────────────────────
    resp = client.post("/api/ip/request", json={"note": "seed script"})
    resp.raise_for_status()
    ip = resp.json()["data"]["ip"]
    print(f"Requested access for {ip}: {resp.json()['data']['status']}")

    entries = client.get("/api/ip", headers=admin_headers)
    entries.raise_for_status()
    entry = next(e for e in entries.json()["data"] if e["ip"] == ip)

    resp = client.patch(f"/api/ip/{entry['id']}/status", json={"status": "WHITELIST"}, headers=admin_headers)
    resp.raise_for_status()
    print(f"Whitelisted {ip}")

    # ── Jobs ────────────────────────────────────────────────────
    webhook_url = f"{BASE_URL}/api/webhook/test?secret={WEBHOOK_SECRET}"
    jobs = [
        ("/api/articles/generate", {
            "topic": "How message queues keep web apps responsive",
            "keywords": ["queue", "retry", "webhook"],
            "category": "engineering",
        }),
        ("/api/novels/generate", {
            "title": "The Last Lighthouse",
            "prompt": "A keeper discovers the light has been signalling someone",
            "genre": "mystery",
            "approxWords": 1500,
        }),
    ]

    print(f"\nSubmitting {len(jobs)} jobs to {BASE_URL}...\n")
    for path, body in jobs:
        body = {**body, "webhookUrl": webhook_url, "webhookSecret": WEBHOOK_SECRET}
        resp = client.post(path, json=body)
        resp.raise_for_status()
        data = resp.json()["data"]
        print(f"  [{data['status']}] {data['jobId']} (queue position ~{data['queuePosition']})")

    print("\nDone! Jobs are now waiting for the worker.")
    print(f"Queue status:  curl {BASE_URL}/api/queue/status")


if __name__ == "__main__":
    seed()
