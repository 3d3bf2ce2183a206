"""Request executor — every backend call goes through ApiClient.

Learn: One httpx.AsyncClient per ApiClient. Its cookie jar is the
cookie credential channel and is always on; the bearer header is added
per request from the token store, read synchronously right before
sending so a replay picks up a freshly rotated token.

401 handling, in order:
1. refresh/login endpoint → raise, never recover (no refresh loops)
2. no token was attached → AuthMissingError, not an expired session
3. already replayed once after a refresh → AuthExpiredError
4. otherwise → wait for the RefreshCoordinator, then replay once
"""

from typing import Any, Callable, Optional

import httpx
import structlog

from talentos.client.errors import (
    AuthExpiredError,
    AuthMissingError,
    NetworkError,
    ServerError,
)
from talentos.client.refresh import RefreshCoordinator
from talentos.config import Settings, settings
from talentos.schemas.auth import RefreshRequest, RefreshResponse
from talentos.session.store import FileTokenStore, TokenStore

logger = structlog.get_logger()


def _log_login_required(login_view: str) -> None:
    logger.info("talentos.login_required", login_view=login_view)


def _error_message(response: httpx.Response) -> str:
    """Pull {error|message} out of an error body, or fall back to the status."""
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        message = body.get("error") or body.get("message")
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


class ApiClient:
    """Authenticated JSON client for the TalentOS backend.

    Use as an async context manager, or call aclose() when done.
    `on_login_required` is called with the login view path whenever the
    session is torn down (failed refresh, logout).
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        *,
        config: Settings = settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_login_required: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.store = store if store is not None else FileTokenStore(config.token_store_path)
        self.on_login_required = on_login_required or _log_login_required
        self._http = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
            transport=transport,
        )
        self.coordinator = RefreshCoordinator(
            self.store,
            exchange=self._exchange_refresh_token,
            on_session_lost=self.redirect_to_login,
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http.cookies

    def redirect_to_login(self) -> None:
        self.on_login_required(self.config.login_view)

    # ── Convenience methods ──────────────────────────────

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, json=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, json=body)

    async def patch(self, path: str, body: Any = None) -> Any:
        return await self.request("PATCH", path, json=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    # ── Core ─────────────────────────────────────────────

    async def request(self, method: str, path: str, json: Any = None) -> Any:
        """Send one request and return its parsed JSON body (None if empty).

        Raises an ApiError subclass on failure. An expired access token is
        refreshed and the request replayed transparently.
        """
        return await self._request(method.upper(), path, json, replayed=False)

    async def _request(self, method: str, path: str, json: Any, replayed: bool) -> Any:
        token = self.store.access_token
        response = await self._send(method, path, json, token)

        if response.status_code == 401 and not self._is_auth_endpoint(path):
            if not token:
                raise AuthMissingError()
            if replayed:
                logger.warning("talentos.auth_rejected_after_refresh", method=method, path=path)
                raise AuthExpiredError()
            await self.coordinator.recover(method, path, stale_token=token)
            return await self._request(method, path, json, replayed=True)

        return self._parse(response)

    async def _send(
        self,
        method: str,
        path: str,
        json: Any,
        token: Optional[str],
    ) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return await self._http.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning("talentos.network_error", method=method, path=path, error=str(e))
            raise NetworkError(f"Could not reach {self.config.api_url}: {e}") from e

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        if not response.is_success:
            raise ServerError(_error_message(response), status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServerError("Response was not valid JSON", status_code=response.status_code) from e

    def _is_auth_endpoint(self, path: str) -> bool:
        return self.config.refresh_path in path or self.config.login_path in path

    async def _exchange_refresh_token(self, refresh_token: Optional[str]) -> RefreshResponse:
        """POST the refresh token. Sent without a bearer header."""
        body = RefreshRequest(refresh_token=refresh_token).model_dump(by_alias=True)
        response = await self._send("POST", self.config.refresh_path, body, token=None)
        data = self._parse(response)
        return RefreshResponse.model_validate(data if isinstance(data, dict) else {})
