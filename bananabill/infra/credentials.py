# bananabill/infra/credentials.py
"""
Credential stores holding the access/refresh token pair and the cached
user profile.

Classes:
- CredentialStore        -> interface used by the gateway and auth use cases
- MemoryCredentialStore  -> process-local store (tests, one-shot scripts)
- SqliteCredentialStore  -> durable store in the local session file
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from bananabill.config import DefaultConfig
from bananabill.domain.models import TokenPair, UserProfile
from bananabill.infra.db import connect
from bananabill.infra.migrations import apply_migrations


ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"


class CredentialStore:
    """Read/write access to the session. Subclasses implement the storage."""

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, items: Dict[str, Optional[str]]) -> None:
        """Writes every item at once; a None value deletes the key."""
        raise NotImplementedError

    def get(self) -> Optional[TokenPair]:
        access = self._read(ACCESS_TOKEN_KEY)
        refresh = self._read(REFRESH_TOKEN_KEY)
        if access is None and refresh is None:
            return None
        return TokenPair(access_token=access or "", refresh_token=refresh or "")

    def set(self, pair: TokenPair) -> None:
        self._write({
            ACCESS_TOKEN_KEY: pair.access_token,
            REFRESH_TOKEN_KEY: pair.refresh_token,
        })

    def clear(self) -> None:
        """Drops both tokens and the cached profile together."""
        self._write({ACCESS_TOKEN_KEY: None, REFRESH_TOKEN_KEY: None, USER_KEY: None})

    def get_access_token(self) -> Optional[str]:
        return self._read(ACCESS_TOKEN_KEY) or None

    def get_refresh_token(self) -> Optional[str]:
        return self._read(REFRESH_TOKEN_KEY) or None

    def get_user(self) -> Optional[UserProfile]:
        raw = self._read(USER_KEY)
        if not raw:
            return None
        return UserProfile.from_json(raw)

    def set_user(self, user: Optional[UserProfile]) -> None:
        self._write({USER_KEY: user.to_json() if user else None})


class MemoryCredentialStore(CredentialStore):
    def __init__(self, pair: Optional[TokenPair] = None):
        self._data: Dict[str, str] = {}
        if pair is not None:
            self.set(pair)

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, items: Dict[str, Optional[str]]) -> None:
        for key, value in items.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value


class SqliteCredentialStore(CredentialStore):
    """Session persisted in the `session` table, surviving restarts."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        apply_migrations(db_path)

    def _read(self, key: str) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT value FROM session WHERE name = ?", (key,)).fetchone()
            return row[0] if row else None

    def _write(self, items: Dict[str, Optional[str]]) -> None:
        now = datetime.now().isoformat(timespec="seconds")
        with connect(self.db_path) as c:
            for key, value in items.items():
                if value is None:
                    c.execute("DELETE FROM session WHERE name = ?", (key,))
                else:
                    c.execute(
                        """
                        INSERT INTO session (name, value, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(name) DO UPDATE SET
                            value=excluded.value,
                            updated_at=excluded.updated_at
                        """,
                        (key, value, now),
                    )


def build_credential_store(config: DefaultConfig) -> CredentialStore:
    """Composes the single store shared by the gateway and the use cases."""
    return SqliteCredentialStore(config.session_db)
