#!/usr/bin/env python3
"""
MediaHub Quickstart — the full session lifecycle in one script.

Register → login → current user → channel page → refresh → reuse the
old refresh token (rejected) → logout.
Run with: python examples/quickstart.py

Requires: pip install httpx
Backend must be running (with media storage configured): http://localhost:8000
"""

import httpx

from _common import BASE, check_backend, register_and_login


def main():
    check_backend()
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Register + login ──────────────────────────────────────────
    print("\n1. Registering and logging in...")
    session = register_and_login(client)
    user = session["user"]
    auth = {"Authorization": f"Bearer {session['access_token']}"}
    print(f"   User: {user['username']} ({user['id'][:8]}...)")

    # ── Current user ──────────────────────────────────────────────
    print("\n2. Fetching current user...")
    resp = client.get("/users/current-user", headers=auth)
    assert resp.status_code == 200, f"Failed: {resp.text}"
    print(f"   Avatar: {resp.json()['data']['avatar']}")

    # ── Own channel page ──────────────────────────────────────────
    print("\n3. Fetching channel profile...")
    resp = client.get(f"/users/channel/{user['username']}", headers=auth)
    assert resp.status_code == 200, f"Failed: {resp.text}"
    channel = resp.json()["data"]
    print(f"   Subscribers: {channel['subscribers_count']}")

    # ── Refresh ───────────────────────────────────────────────────
    print("\n4. Rotating the refresh token...")
    old_refresh = session["refresh_token"]
    resp = client.post("/users/refresh-token", json={"refresh_token": old_refresh})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    fresh = resp.json()["data"]
    auth = {"Authorization": f"Bearer {fresh['access_token']}"}
    print("   New pair issued")

    resp = client.post("/users/refresh-token", json={"refresh_token": old_refresh})
    print(f"   Reusing the old refresh token → {resp.status_code} {resp.json()['message']}")

    # ── Logout ────────────────────────────────────────────────────
    print("\n5. Logging out...")
    resp = client.post("/users/logout", headers=auth)
    assert resp.status_code == 200, f"Failed: {resp.text}"
    resp = client.post("/users/refresh-token", json={"refresh_token": fresh["refresh_token"]})
    print(f"   Refresh after logout → {resp.status_code}")

    print("\nDone.")


if __name__ == "__main__":
    main()
