"""HTTP access to the TalentOS backend.

Learn: ApiClient is the request executor; RefreshCoordinator makes sure
concurrent 401s share one token refresh. Errors live in errors.py.
"""

from talentos.client.api import ApiClient
from talentos.client.errors import (
    ApiError,
    AuthExpiredError,
    AuthMissingError,
    LoginError,
    NetworkError,
    ServerError,
    SessionExpiredError,
)
from talentos.client.refresh import RefreshCoordinator, RefreshState

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthExpiredError",
    "AuthMissingError",
    "LoginError",
    "NetworkError",
    "RefreshCoordinator",
    "RefreshState",
    "ServerError",
    "SessionExpiredError",
]
