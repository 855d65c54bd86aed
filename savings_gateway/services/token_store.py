"""Session-scoped PIN state: attempt counter, lock window and current token"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta

from savings_gateway.config import settings
from savings_gateway.domain.lockout import LockoutPolicy
from savings_gateway.domain.models import PinSession
from savings_gateway.utils.date_utils import Clock, ceil_seconds_until, utc_now


class PinTokenStore:
    """
    Holds the PinSession for one user.

    Invariants:
    - A token is returned only while token_expires_at is in the future
    - A locked session never yields a token

    Mutating methods are synchronous; callers that read-modify-write across
    an await (the authorizer) hold `lock` for the whole attempt.
    """

    def __init__(self, policy: LockoutPolicy | None = None, clock: Clock = utc_now):
        self.policy = policy or LockoutPolicy.from_pairs(settings.lockout_tiers)
        self.clock = clock
        self.lock = asyncio.Lock()
        self._session = PinSession()

    @property
    def session(self) -> PinSession:
        """Copy of the current state for display and tests; an expired token is cleared first"""
        self.current_token()
        return replace(self._session)

    @property
    def failed_attempts(self) -> int:
        return self._session.failed_attempts

    @property
    def locked_until(self) -> datetime | None:
        return self._session.locked_until

    def record_failure(self) -> None:
        session = self._session
        session.failed_attempts += 1
        duration = self.policy.lockout_duration_for(session.failed_attempts)
        if duration > 0:
            session.locked_until = self.clock() + timedelta(seconds=duration)
        self.clear_token()

    def record_success(self, token: str, ttl_seconds: int) -> None:
        self._session = PinSession(
            failed_attempts=0,
            locked_until=None,
            current_token=token,
            token_expires_at=self.clock() + timedelta(seconds=ttl_seconds),
        )

    def is_locked(self) -> bool:
        locked_until = self._session.locked_until
        return locked_until is not None and locked_until > self.clock()

    def remaining_lock_seconds(self) -> int:
        if self._session.locked_until is None:
            return 0
        return ceil_seconds_until(self._session.locked_until, self.clock())

    def current_token(self) -> str | None:
        """Usable token without consuming it"""
        session = self._session
        if session.current_token is None or session.token_expires_at is None:
            return None
        if session.token_expires_at <= self.clock() or self.is_locked():
            self.clear_token()
            return None
        return session.current_token

    def consume_token(self) -> str | None:
        """Return the usable token and clear it; the next request must re-verify"""
        token = self.current_token()
        self.clear_token()
        return token

    def discard_token(self, token: str) -> None:
        """Clear the stored token if it is still `token`"""
        if self._session.current_token == token:
            self.clear_token()

    def clear_token(self) -> None:
        """Drop any token; attempts and lock window are untouched"""
        self._session.current_token = None
        self._session.token_expires_at = None
