"""Errors raised by the API client.

Learn: Every failure the client surfaces is an ApiError, so callers
(and logout's best-effort server notify) can catch one type.

- NetworkError: transport failed, no response. Never retried.
- ServerError: non-2xx response, message taken from the body.
- AuthMissingError: 401 on a call that carried no token.
- AuthExpiredError: 401 again on a replay after a successful refresh.
- SessionExpiredError: the refresh exchange itself failed; the session
  has already been cleared and the login redirect issued.
- LoginError: login answered 2xx but without a token.
"""

from typing import Optional


class ApiError(Exception):
    """Base for all client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(ApiError):
    pass


class ServerError(ApiError):
    pass


class AuthMissingError(ApiError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)


class AuthExpiredError(ApiError):
    def __init__(self, message: str = "Authentication rejected after token refresh"):
        super().__init__(message, status_code=401)


class SessionExpiredError(ApiError):
    def __init__(self, message: str = "Session expired"):
        super().__init__(message, status_code=401)


class LoginError(ApiError):
    pass
