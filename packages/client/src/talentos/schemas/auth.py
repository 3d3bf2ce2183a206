"""Pydantic schemas for the auth service wire format.

Learn: The backend speaks camelCase (refreshToken, organizationId).
Fields are snake_case in Python with camelCase aliases, and
populate_by_name lets tests and callers use either spelling.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["admin", "developer", "viewer"]


class AuthUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    username: str
    role: UserRole
    organization_id: Optional[str] = Field(None, alias="organizationId")
    person_id: Optional[str] = Field(None, alias="personId")


# ─── Login ───────────────────────────────────────────────


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    """Body of POST /auth/login.

    token is optional here: a 2xx without one is a failed login whose
    reason (if any) is in `error`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: Optional[str] = None
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    user: Optional[AuthUser] = None
    error: Optional[str] = None


# ─── Refresh / logout ────────────────────────────────────


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class RefreshResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: Optional[str] = None
    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class LogoutRequest(RefreshRequest):
    pass


class Organization(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    slug: Optional[str] = None
