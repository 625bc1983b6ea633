#!/usr/bin/env python3
"""
VidTube session lifecycle — register, login, rotate, replay, logout.

Shows the refresh-token contract end to end: each refresh token works
exactly once, and logging out kills the current one.
Run with: python examples/session_lifecycle.py

Requires: pip install httpx
Backend must be running: http://localhost:8000
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api/v1"


def main():
    run_id = uuid.uuid4().hex[:6]
    username = f"alice{run_id}"
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking backend health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Backend not reachable at {BASE}")
        print("Start it with:  vidtube serve --reload")
        sys.exit(1)
    health = resp.json()
    print(f"  Database: {'✓' if health['database'] == 'ok' else '✗'}")

    # ── Register ──────────────────────────────────────────────────
    print("\n1. Registering...")
    resp = client.post("/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "fullname": "Alice Example",
        "password": "pw1",
    })
    assert resp.status_code == 201, f"Failed: {resp.text}"
    print(f"   User: {resp.json()['username']} ({resp.json()['id'][:8]}...)")

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/auth/login", json={"username": username, "password": "pw1"})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    tokens = resp.json()
    r1 = tokens["refresh_token"]
    print(f"   Access token:  {tokens['access_token'][:24]}...")
    print(f"   Refresh token: {r1[:24]}...")

    # ── Rotate ────────────────────────────────────────────────────
    print("\n3. Refreshing (R1 → R2)...")
    resp = client.post("/auth/refresh", json={"refresh_token": r1})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    r2 = resp.json()["refresh_token"]
    access = resp.json()["access_token"]
    print(f"   New refresh token: {r2[:24]}...")

    # ── Replay ────────────────────────────────────────────────────
    print("\n4. Replaying R1 (must fail)...")
    resp = client.post("/auth/refresh", json={"refresh_token": r1})
    print(f"   {resp.status_code} {resp.json()['detail']}")
    assert resp.status_code == 401

    # ── Logout ────────────────────────────────────────────────────
    print("\n5. Logging out...")
    resp = client.post("/auth/logout", headers={"Authorization": f"Bearer {access}"})
    assert resp.status_code == 200, f"Failed: {resp.text}"

    print("\n6. Refreshing with R2 after logout (must fail)...")
    resp = client.post("/auth/refresh", json={"refresh_token": r2})
    print(f"   {resp.status_code} {resp.json()['detail']}")
    assert resp.status_code == 401

    print("\nDone.")


if __name__ == "__main__":
    main()
