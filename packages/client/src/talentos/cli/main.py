"""TalentOS CLI — log in and call the metrics API from a terminal.

Usage:
    talentos login -u admin                      # Prompts for password, stores session
    talentos whoami                              # Current user (rehydrated via /auth/me)
    talentos org                                 # Effective organization id
    talentos request GET /metrics/org-1/dora     # Authenticated call, pretty JSON
    talentos request POST /surveys --data '{"title": "Q3"}'
    talentos logout                              # Clears the local session
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import sys
from typing import Optional

import click

from talentos import __version__
from talentos.client.api import ApiClient
from talentos.client.errors import ApiError
from talentos.session.controller import SessionController

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _login_required(login_view: str) -> None:
    click.secho("Session expired. Run `talentos login` to sign in again.", fg="yellow", err=True)


def _client() -> ApiClient:
    """Build an API client backed by the on-disk session file."""
    return ApiClient(on_login_required=_login_required)


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

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


def _pretty_json(data) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="talentos")
def main():
    """TalentOS — authenticated access to the metrics API."""


# ---------------------------------------------------------------------------
# talentos login / logout
# ---------------------------------------------------------------------------


@main.command()
@click.option("--username", "-u", prompt=True, help="Account username")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
def login(username: str, password: str):
    """Log in and store the session locally."""
    _run(_login_impl(username, password))


async def _login_impl(username: str, password: str):
    async with _client() as c:
        try:
            user = await SessionController(c).login(username, password)
        except ApiError as e:
            _fail(e.message)
    name = user.username if user else username
    click.secho(f"Logged in as {name}", fg="green")


@main.command()
def logout():
    """Log out and clear the local session."""
    _run(_logout_impl())


async def _logout_impl():
    async with _client() as c:
        # Suppress the "run talentos login" hint; this logout was requested
        c.on_login_required = lambda _view: None
        await SessionController(c).logout()
    click.echo("Logged out.")


# ---------------------------------------------------------------------------
# talentos whoami / org
# ---------------------------------------------------------------------------


@main.command()
def whoami():
    """Show the logged-in user."""
    _run(_whoami_impl())


async def _whoami_impl():
    async with _client() as c:
        user = await SessionController(c).restore()
    if user is None:
        click.echo("Not logged in.")
        sys.exit(1)
    click.echo(_pretty_json(user.model_dump(by_alias=True)))


@main.command()
def org():
    """Show the organization dashboard calls are scoped to."""
    _run(_org_impl())


async def _org_impl():
    async with _client() as c:
        org_id = await SessionController(c).effective_organization_id()
    if org_id is None:
        _fail("No organization available")
    click.echo(org_id)


# ---------------------------------------------------------------------------
# talentos request
# ---------------------------------------------------------------------------


@main.command()
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "PATCH", "DELETE"], case_sensitive=False))
@click.argument("path")
@click.option("--data", "-d", help="JSON request body")
def request(method: str, path: str, data: Optional[str]):
    """Call an API endpoint with the stored session."""
    body = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            _fail(f"--data is not valid JSON: {e}")
    _run(_request_impl(method, path, body))


async def _request_impl(method: str, path: str, body):
    async with _client() as c:
        try:
            result = await c.request(method, path, json=body)
        except ApiError as e:
            _fail(e.message)
    if result is not None:
        click.echo(_pretty_json(result))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
