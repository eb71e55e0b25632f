"""Administrator gate for the passcode panel."""

from __future__ import annotations

import hmac
from collections import deque
from datetime import datetime, timedelta
from typing import Deque, Optional

from .exceptions import AdminAuthError, AdminLockedError
from .ops import StructuredLogger


class AdminGate:
    """Compare a shared admin secret and throttle repeated failures."""

    def __init__(
        self,
        secret: str,
        *,
        max_attempts: int = 5,
        lockout_minutes: int = 15,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._secret = secret
        self._max_attempts = max_attempts
        self._lockout_window = timedelta(minutes=lockout_minutes)
        self._failures: Deque[datetime] = deque()
        self._logger = logger or StructuredLogger()

    def verify(self, password: str, *, at: Optional[datetime] = None) -> None:
        """Raise unless ``password`` matches; a locked gate rejects even the right secret."""

        now = at or datetime.utcnow()
        if self.is_locked(at=now):
            raise AdminLockedError()
        if hmac.compare_digest((password or "").encode("utf-8"), self._secret.encode("utf-8")):
            self._failures.clear()
            return
        self._failures.append(now)
        self._logger.warning("admin_login_failed", failures=len(self._failures))
        raise AdminAuthError()

    def is_locked(self, *, at: Optional[datetime] = None) -> bool:
        now = at or datetime.utcnow()
        self._prune(now)
        return len(self._failures) >= self._max_attempts

    def _prune(self, now: datetime) -> None:
        while self._failures and now - self._failures[0] > self._lockout_window:
            self._failures.popleft()


__all__ = ["AdminGate"]
