"""Refresh coordinator — single-flight token refresh.

Learn: When an access token expires, every in-flight request gets a 401
at roughly the same time. If each one exchanged the refresh token on its
own, the backend would rotate the refresh token several times and all but
the last result would be invalid. So exactly one caller does the exchange
and everyone else waits for it:

    IDLE ──401──► REFRESHING ──ok──► IDLE        (store updated, waiters released)
                      │
                      └──fail──► store cleared, login redirect, waiters rejected

The IDLE → REFRESHING check-then-set has no await in between, so on a
single event loop no other coroutine can slip in. A coordinator is bound
to one ApiClient and therefore one loop.
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from talentos.client.errors import ApiError, SessionExpiredError
from talentos.schemas.auth import RefreshResponse
from talentos.session.store import TokenStore

logger = structlog.get_logger()

# (refresh_token) -> parsed refresh response; raises ApiError on failure
TokenExchange = Callable[[Optional[str]], Awaitable[RefreshResponse]]


class RefreshState(str, enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass
class PendingRequest:
    """A request parked while another caller refreshes the token.

    The future resolves (or fails) exactly once, when that refresh settles.
    The request itself is replayed by its own caller afterwards.
    """

    method: str
    path: str
    future: asyncio.Future


class RefreshCoordinator:
    """Owns the refresh gate and the list of parked requests."""

    def __init__(
        self,
        store: TokenStore,
        exchange: TokenExchange,
        on_session_lost: Callable[[], None],
    ):
        self.store = store
        self._exchange = exchange
        self._on_session_lost = on_session_lost
        self.state = RefreshState.IDLE
        self._waiters: list[PendingRequest] = []

    @property
    def pending(self) -> list[PendingRequest]:
        """Requests currently parked behind the in-flight refresh."""
        return list(self._waiters)

    async def recover(self, method: str, path: str, stale_token: str) -> None:
        """Wait until a token newer than `stale_token` is stored.

        Returns when the caller should replay its request with whatever
        access token is now in the store. Raises SessionExpiredError if
        the session could not be recovered.
        """
        current = self.store.access_token
        if current is None:
            # Session already torn down (failed refresh or logout)
            raise SessionExpiredError()
        if current != stale_token:
            # A refresh finished after this request was sent
            return

        if self.state is RefreshState.REFRESHING:
            pending = PendingRequest(
                method=method,
                path=path,
                future=asyncio.get_running_loop().create_future(),
            )
            self._waiters.append(pending)
            logger.debug("talentos.refresh_queued", method=method, path=path, queued=len(self._waiters))
            await pending.future
            return

        self.state = RefreshState.REFRESHING
        # Waiters are only released as successful once a new token is stored
        error: Optional[SessionExpiredError] = SessionExpiredError("Token refresh did not complete")
        try:
            await self._refresh()
            error = None
        except SessionExpiredError as e:
            error = e
            raise
        except asyncio.CancelledError:
            error = SessionExpiredError("Token refresh was interrupted")
            raise
        finally:
            self.state = RefreshState.IDLE
            self._release(error)

    async def _refresh(self) -> None:
        logger.info("talentos.refresh_started", queued=len(self._waiters))
        cause: Optional[Exception] = None
        try:
            result = await self._exchange(self.store.refresh_token)
            if result.token:
                self.store.save_tokens(result.token, result.refresh_token)
                logger.info("talentos.refresh_succeeded", rotated=bool(result.refresh_token))
                return
            reason = "refresh response carried no token"
        except ApiError as e:
            reason, cause = e.message, e
        except Exception as e:
            # Malformed response body or a store that can't be written
            reason, cause = f"{type(e).__name__}: {e}", e

        logger.warning("talentos.refresh_failed", reason=reason, queued=len(self._waiters))
        # Credentials go before the redirect so nothing after it sees them
        self.store.clear()
        self._on_session_lost()
        raise SessionExpiredError() from cause

    def _release(self, error: Optional[SessionExpiredError]) -> None:
        waiters, self._waiters = self._waiters, []
        for pending in waiters:
            if pending.future.done():
                continue  # waiter was cancelled
            if error is None:
                pending.future.set_result(None)
            else:
                pending.future.set_exception(SessionExpiredError(error.message))
