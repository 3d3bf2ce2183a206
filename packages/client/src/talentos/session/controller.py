"""Session controller — login, logout, and start-up rehydration.

Learn: The controller seeds the token store on login and clears it on
logout. Everything else (rotating tokens, tearing the session down when
a refresh fails) belongs to the RefreshCoordinator.

Logout contract: the client always ends up logged out, whatever the
server says. The server notification is best-effort; the local clear
and the login redirect happen unconditionally, in that order.
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from talentos.client.api import ApiClient
from talentos.client.errors import ApiError, LoginError, ServerError
from talentos.schemas.auth import (
    AuthUser,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    Organization,
)

logger = structlog.get_logger()


class SessionController:
    def __init__(self, client: ApiClient):
        self.client = client
        self.store = client.store
        self.config = client.config

    @property
    def user(self) -> Optional[AuthUser]:
        return self.store.user

    async def login(self, username: str, password: str) -> Optional[AuthUser]:
        """Exchange credentials for a session and store it.

        Does not redirect anywhere; that's up to the caller. Raises the
        server's error (ServerError) or LoginError if no token came back.
        """
        body = LoginRequest(username=username, password=password).model_dump()
        data = await self.client.post(self.config.login_path, body)
        result = LoginResponse.model_validate(data if isinstance(data, dict) else {})
        if not result.token:
            raise LoginError(result.error or "Login failed")

        # Replace, don't merge: nothing from an earlier session survives
        self.store.clear()
        self.store.save_tokens(result.token, result.refresh_token)
        if result.user:
            self.store.save_user(result.user)

        logger.info(
            "talentos.logged_in",
            username=username,
            user_id=result.user.id if result.user else None,
        )
        return result.user

    async def logout(self) -> None:
        """Log out locally; tell the server if it's reachable.

        Never raises an ApiError and is safe to call repeatedly.
        """
        body = LogoutRequest(refresh_token=self.store.refresh_token).model_dump(by_alias=True)
        try:
            await self.client.post(self.config.logout_path, body)
        except ApiError as e:
            logger.info("talentos.logout_notify_failed", error=e.message, status=e.status_code)

        self.store.clear()
        logger.info("talentos.logged_out")
        self.client.redirect_to_login()

    async def refresh_user(self) -> AuthUser:
        """Fetch the current user from /auth/me and cache it.

        A body that isn't a user (null, unknown role) raises ServerError.
        """
        data = await self.client.get(self.config.me_path)
        if not data:
            raise ServerError(f"Empty {self.config.me_path} response", status_code=200)
        try:
            user = AuthUser.model_validate(data)
        except ValidationError as e:
            raise ServerError(f"Invalid {self.config.me_path} response", status_code=200) from e
        self.store.save_user(user)
        return user

    async def restore(self) -> Optional[AuthUser]:
        """Rehydrate the session at start-up.

        Only calls the backend when a token is already stored. Failures
        leave the caller anonymous (None) rather than raising.
        """
        if not self.store.access_token:
            return None
        try:
            return await self.refresh_user()
        except ApiError as e:
            logger.info("talentos.restore_failed", error=e.message, status=e.status_code)
            return None

    async def effective_organization_id(self) -> Optional[str]:
        """Organization to scope dashboard calls to.

        The user's own org, then the cached org, then the backend's
        public default organization (which works without logging in).
        """
        user = self.store.user
        if user and user.organization_id:
            return user.organization_id
        if self.store.organization_id:
            return self.store.organization_id

        try:
            data = await self.client.get(self.config.default_org_path)
        except ApiError as e:
            logger.info("talentos.default_org_unavailable", error=e.message)
            return None
        if not isinstance(data, dict) or not data.get("id"):
            return None

        org = Organization.model_validate(data)
        self.store.save_organization_id(org.id)
        return org.id
