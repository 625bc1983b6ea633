"""VidTube CLI — run the server and drive the account API.

Usage:
    vidtube serve                                  # Run the API with uvicorn
    vidtube init-db                                # Create tables (dev only)
    vidtube register alice alice@x.com "Alice" -p pw1
    vidtube login alice -p pw1                     # Prints the token pair
    vidtube refresh <refresh-token>                # Rotates the pair
    vidtube whoami                                 # Uses VIDTUBE_ACCESS_TOKEN
    vidtube logout
    vidtube channel alice                          # Channel profile
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from vidtube import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("VIDTUBE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the VidTube backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _access_token(token: Optional[str]) -> str:
    """Resolve the access token from flag or VIDTUBE_ACCESS_TOKEN env var."""
    tok = token or os.environ.get("VIDTUBE_ACCESS_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set VIDTUBE_ACCESS_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> dict:
    """Exit with the API's error message on any non-2xx response."""
    if r.is_success:
        return r.json() if r.content else {}
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="vidtube")
def main():
    """VidTube — user accounts and JWT sessions."""


# ---------------------------------------------------------------------------
# Server-side commands
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: VIDTUBE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: VIDTUBE_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from vidtube.config import settings

    uvicorn.run(
        "vidtube.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables directly (use alembic for real deployments)."""
    _run(_init_db_impl())
    click.secho("Tables created.", fg="green")


async def _init_db_impl():
    from vidtube.db.engine import engine
    from vidtube.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


# ---------------------------------------------------------------------------
# Account commands (talk to a running server)
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("email")
@click.argument("fullname")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
def register(username: str, email: str, fullname: str, password: str):
    """Create an account."""
    _run(_register_impl(username, email, fullname, password))


async def _register_impl(username: str, email: str, fullname: str, password: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/register", json={
            "username": username,
            "email": email,
            "fullname": fullname,
            "password": password,
        })
        user = _check(r)
    click.secho(f"Registered {user['username']} ({user['id']})", fg="green")


@main.command()
@click.argument("identifier")
@click.option("--password", "-p", prompt=True, hide_input=True)
def login(identifier: str, password: str):
    """Log in with a username or email and print the token pair."""
    _run(_login_impl(identifier, password))


async def _login_impl(identifier: str, password: str):
    field = "email" if "@" in identifier else "username"
    async with _client() as c:
        r = await c.post("/api/v1/auth/login", json={field: identifier, "password": password})
        data = _check(r)
    click.echo(_pretty_json({
        "access_token": data["access_token"],
        "refresh_token": data["refresh_token"],
        "user": data["user"]["username"],
    }))


@main.command()
@click.argument("refresh_token")
def refresh(refresh_token: str):
    """Exchange a refresh token for a new pair. The old token stops working."""
    _run(_refresh_impl(refresh_token))


async def _refresh_impl(refresh_token: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        data = _check(r)
    click.echo(_pretty_json(data))


@main.command()
@click.option("--token", help="Access token (or set VIDTUBE_ACCESS_TOKEN)")
def whoami(token: Optional[str]):
    """Show the current user."""
    _run(_whoami_impl(_access_token(token)))


async def _whoami_impl(token: str):
    async with _client() as c:
        r = await c.get("/api/v1/users/me", headers={"Authorization": f"Bearer {token}"})
        user = _check(r)
    click.echo(f"{user['username']}  {user['email']}  {user['fullname']}")


@main.command()
@click.option("--token", help="Access token (or set VIDTUBE_ACCESS_TOKEN)")
def logout(token: Optional[str]):
    """End the current session (invalidates the refresh token)."""
    _run(_logout_impl(_access_token(token)))


async def _logout_impl(token: str):
    async with _client() as c:
        r = await c.post("/api/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})
        _check(r)
    click.secho("Logged out.", fg="green")


@main.command()
@click.argument("username")
@click.option("--token", help="Access token (or set VIDTUBE_ACCESS_TOKEN)")
def channel(username: str, token: Optional[str]):
    """Show a channel profile with subscriber counts."""
    _run(_channel_impl(username, _access_token(token)))


async def _channel_impl(username: str, token: str):
    async with _client() as c:
        r = await c.get(
            f"/api/v1/channels/{username}",
            headers={"Authorization": f"Bearer {token}"},
        )
        profile = _check(r)
    click.secho(f"{profile['fullname']} (@{profile['username']})", bold=True)
    click.echo(f"  Subscribers:     {profile['subscribers_count']}")
    click.echo(f"  Subscribed to:   {profile['channels_subscribed_to_count']}")
    click.echo(f"  You subscribe:   {'yes' if profile['is_subscribed'] else 'no'}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
