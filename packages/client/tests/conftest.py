"""Test fixtures — a fake TalentOS backend behind httpx's ASGI transport.

Learn: The client is exercised against a real FastAPI app mounted through
httpx.ASGITransport, so every test goes through actual HTTP semantics
(status codes, headers, cookies) without a socket. The fake backend is
stateful and inspectable: it records every request it sees, counts
refresh calls, and can hold the refresh endpoint on an asyncio.Event so
tests can line up concurrent 401s behind one refresh.
"""

import asyncio
from typing import Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from httpx import ASGITransport

from talentos.client.api import ApiClient
from talentos.config import Settings
from talentos.schemas.auth import AuthUser
from talentos.session.store import MemoryTokenStore

BASE_URL = "http://testserver/api/v1"

ADMIN = {
    "id": "user-1",
    "username": "admin",
    "role": "admin",
    "organizationId": "org-1",
    "personId": "person-1",
}


class FakeBackend:
    """In-process stand-in for the auth service and metric endpoints."""

    def __init__(self):
        self.access_token: Optional[str] = "T1"
        self.refresh_token = "R1"
        self.rotate_refresh_tokens = False
        self.refresh_fails = False
        self.reject_all_tokens = False
        self.logout_fails = False
        self.refresh_gate: Optional[asyncio.Event] = None
        self.default_org: Optional[dict] = {"id": "org-default", "name": "Acme", "slug": "acme"}
        self.refresh_payload: Optional[dict] = None  # served instead of a new token
        self.me_payload: Optional[dict] = ADMIN

        self.refresh_calls = 0
        self.refresh_bodies: list[dict] = []
        self.logout_bodies: list[dict] = []
        self.unauthorized = 0
        self.seen: list[dict] = []  # protected requests: path, authorization, cookie
        self._issued = 1

        self.app = self._build_app()

    def expire_access_token(self) -> None:
        """Invalidate the current access token server-side."""
        self.access_token = None

    def requests_to(self, path: str) -> list[dict]:
        return [r for r in self.seen if r["path"] == path]

    # ── App ──────────────────────────────────────────────

    def _authorized(self, request: Request) -> bool:
        if self.reject_all_tokens or self.access_token is None:
            return False
        return request.headers.get("authorization") == f"Bearer {self.access_token}"

    def _unauthorized(self) -> JSONResponse:
        self.unauthorized += 1
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    def _record(self, request: Request) -> None:
        self.seen.append({
            "method": request.method,
            "path": request.url.path.removeprefix("/api/v1"),
            "authorization": request.headers.get("authorization"),
            "cookie": request.cookies.get("tos_session"),
        })

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.post("/api/v1/auth/login")
        async def login(request: Request):
            body = await request.json()
            if body.get("username") != "admin" or body.get("password") != "secret":
                return JSONResponse({"error": "Invalid credentials"}, status_code=401)
            if backend.access_token is None:
                backend._issued += 1
                backend.access_token = f"T{backend._issued}"
            response = JSONResponse({
                "token": backend.access_token,
                "refreshToken": backend.refresh_token,
                "user": ADMIN,
            })
            response.set_cookie("tos_session", "cookie-1", httponly=True)
            return response

        @app.post("/api/v1/auth/refresh")
        async def refresh(request: Request):
            backend.refresh_calls += 1
            body = await request.json()
            backend.refresh_bodies.append(body)
            if backend.refresh_gate is not None:
                await backend.refresh_gate.wait()
            if backend.refresh_payload is not None:
                return backend.refresh_payload
            if backend.refresh_fails or body.get("refreshToken") != backend.refresh_token:
                return JSONResponse({"error": "Invalid refresh token"}, status_code=401)
            backend._issued += 1
            backend.access_token = f"T{backend._issued}"
            payload = {"token": backend.access_token}
            if backend.rotate_refresh_tokens:
                backend.refresh_token = f"R{backend._issued}"
                payload["refreshToken"] = backend.refresh_token
            return payload

        @app.post("/api/v1/auth/logout")
        async def logout(request: Request):
            backend.logout_bodies.append(await request.json())
            if backend.logout_fails:
                return JSONResponse({"error": "Logout backend down"}, status_code=503)
            if not backend._authorized(request):
                return backend._unauthorized()
            return Response(status_code=204)

        @app.get("/api/v1/auth/me")
        async def me(request: Request):
            backend._record(request)
            if not backend._authorized(request):
                return backend._unauthorized()
            return JSONResponse(backend.me_payload)

        @app.get("/api/v1/public/default-organization")
        async def default_organization():
            return backend.default_org

        @app.get("/api/v1/metrics/{org_id}/{name}")
        async def metric(org_id: str, name: str, request: Request):
            backend._record(request)
            if not backend._authorized(request):
                return backend._unauthorized()
            return {"org": org_id, "metric": name, "value": 42}

        @app.post("/api/v1/surveys")
        async def create_survey(request: Request):
            backend._record(request)
            if not backend._authorized(request):
                return backend._unauthorized()
            return JSONResponse({"id": "survey-1", **(await request.json())}, status_code=201)

        @app.get("/api/v1/broken")
        async def broken():
            return JSONResponse({"message": "Database unavailable"}, status_code=500)

        @app.get("/api/v1/forbidden")
        async def forbidden():
            return JSONResponse({"error": "Not allowed"}, status_code=403)

        @app.get("/api/v1/teapot")
        async def teapot():
            return PlainTextResponse("short and stout", status_code=418)

        @app.get("/api/v1/opaque")
        async def opaque():
            return JSONResponse({"detail": "something"}, status_code=409)

        return app


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def config(tmp_path):
    return Settings(api_url=BASE_URL, token_store_path=tmp_path / "session.json")


@pytest.fixture()
def redirects():
    """Login views the client was sent to, in order."""
    return []


@pytest.fixture()
def store():
    return MemoryTokenStore()


@pytest_asyncio.fixture()
async def client(backend, config, store, redirects):
    """Client with no session stored."""
    async with ApiClient(
        store,
        config=config,
        transport=ASGITransport(app=backend.app),
        on_login_required=redirects.append,
    ) as c:
        yield c


@pytest.fixture()
def logged_in(store):
    """Seed the store as if admin had logged in (token T1, refresh R1)."""
    store.save_tokens("T1", "R1")
    store.save_user(AuthUser.model_validate(ADMIN))
    return store
