"""
In-memory store for documentation UI sessions.

Sessions are opaque random tokens mapped to an expiry timestamp. Expired or
unknown tokens are evicted when checked; there is no background sweep.
"""

from __future__ import annotations

import secrets
import time
from threading import Lock
from typing import Callable

DEFAULT_TTL_SECONDS = 2 * 60 * 60


class DocsSessionStore:
    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, float] = {}
        self._lock = Lock()

    def create(self) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[token] = self._clock() + self.ttl_seconds
        return token

    def is_valid(self, token: str | None) -> bool:
        if not token:
            return False
        with self._lock:
            expires_at = self._sessions.get(token)
            if expires_at is None:
                return False
            if expires_at <= self._clock():
                del self._sessions[token]
                return False
            return True

    def revoke(self, token: str | None) -> None:
        if not token:
            return None
        with self._lock:
            self._sessions.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
