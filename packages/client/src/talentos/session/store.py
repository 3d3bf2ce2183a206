"""Token store — persisted credentials and cached identity.

Learn: The store is the single source of truth for credentials. Reads
are plain synchronous attribute access so the request path can attach
the bearer header without awaiting anything. There's no expiry
tracking: an expired token is discovered when the backend says 401.

Two implementations share one interface:
- FileTokenStore: JSON file, survives process restarts (the CLI uses it)
- MemoryTokenStore: process-local, for embedding and tests
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from talentos.schemas.auth import AuthUser

logger = structlog.get_logger()

# Persisted keys. clear() drops all of them together.
_KEYS = ("token", "refresh_token", "user", "organization_id")


class TokenStore:
    """Key-value credential store backed by a dict.

    Subclasses decide where the dict lives by overriding _load/_persist/_wipe.
    """

    def __init__(self):
        self._data: dict[str, Any] = self._load()

    # ── Reads (synchronous) ──────────────────────────────

    @property
    def access_token(self) -> Optional[str]:
        return self._data.get("token")

    @property
    def refresh_token(self) -> Optional[str]:
        return self._data.get("refresh_token")

    @property
    def user(self) -> Optional[AuthUser]:
        raw = self._data.get("user")
        return AuthUser.model_validate(raw) if raw else None

    @property
    def organization_id(self) -> Optional[str]:
        return self._data.get("organization_id")

    def is_empty(self) -> bool:
        return not any(self._data.get(k) for k in _KEYS)

    # ── Writes ───────────────────────────────────────────

    def save_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Store a new access token. The refresh token is only replaced when rotated."""
        self._data["token"] = access_token
        if refresh_token:
            self._data["refresh_token"] = refresh_token
        self._persist()

    def save_user(self, user: AuthUser) -> None:
        self._data["user"] = user.model_dump(by_alias=True)
        if user.organization_id:
            self._data["organization_id"] = user.organization_id
        self._persist()

    def save_organization_id(self, organization_id: str) -> None:
        self._data["organization_id"] = organization_id
        self._persist()

    def clear(self) -> None:
        self._data = {}
        self._wipe()

    # ── Backend hooks ────────────────────────────────────

    def _load(self) -> dict[str, Any]:
        return {}

    def _persist(self) -> None:
        pass

    def _wipe(self) -> None:
        pass


class MemoryTokenStore(TokenStore):
    """Credentials held only for the life of the process."""


class FileTokenStore(TokenStore):
    """Credentials persisted to a JSON file.

    Writes go to a temp file in the same directory and are moved into
    place with os.replace, so readers see either the old or the new
    session, never half of one.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        super().__init__()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("talentos.token_store_unreadable", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("talentos.token_store_unreadable", path=str(self.path), error="not an object")
            return {}
        loaded = {k: data[k] for k in _KEYS if k in data}
        if loaded.get("user"):
            try:
                AuthUser.model_validate(loaded["user"])
            except ValidationError as e:
                logger.warning(
                    "talentos.token_store_unreadable",
                    path=str(self.path),
                    error=f"invalid cached user: {e.error_count()} error(s)",
                )
                del loaded["user"]
        return loaded

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _wipe(self) -> None:
        self.path.unlink(missing_ok=True)
