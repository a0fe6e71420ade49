"""
Shared helpers for MediaHub examples.

Handles the health check and account setup (register + login) so each
example can focus on its specific workflow.
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"

# 1x1 transparent PNG, enough to pass as an avatar
TINY_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def check_backend() -> None:
    """Verify the backend is reachable and healthy."""
    try:
        resp = httpx.get(f"{BASE}/health", timeout=5)
    except httpx.ConnectError:
        print(f"ERROR: Backend not reachable at {BASE}")
        print("Start it with:  mediahub serve --reload")
        sys.exit(1)

    health = resp.json()
    print(f"Backend {health['status']} (database: {health['database']})")
    if health["database"] != "ok":
        sys.exit(1)


def register_and_login(client: httpx.Client) -> dict:
    """Register a fresh user and log in; returns the login `data` payload.

    Uses a unique username per run so examples are idempotent.
    """
    run_id = uuid.uuid4().hex[:8]
    username = f"demo{run_id}"
    password = "demo-password-123"

    resp = client.post(
        "/users/register",
        data={
            "fullname": f"Demo User {run_id}",
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        },
        files={"avatar": ("avatar.png", TINY_PNG, "image/png")},
    )
    if resp.status_code != 201:
        print(f"ERROR: Registration failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    resp = client.post("/users/login", json={"username": username, "password": password})
    if resp.status_code != 200:
        print(f"ERROR: Login failed: {resp.status_code} {resp.text}")
        sys.exit(1)

    return resp.json()["data"]
