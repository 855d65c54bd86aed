"""Per-user ownership of PIN sessions"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator

from savings_gateway.config import settings
from savings_gateway.domain.lockout import LockoutPolicy
from savings_gateway.domain.ports import CredentialVerifier
from savings_gateway.services.authorizer import PinAuthorizer
from savings_gateway.services.token_store import PinTokenStore
from savings_gateway.utils.date_utils import Clock, utc_now

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    One PinAuthorizer (and its PinTokenStore) per user, created on first use.

    A session is kept while it is checked out, holds a token, is locked or
    has failed attempts on record. Anything else is dropped, so lookups for
    unknown users never grow the registry.
    """

    def __init__(
        self,
        verifier: CredentialVerifier,
        policy: LockoutPolicy | None = None,
        clock: Clock = utc_now,
    ):
        self.verifier = verifier
        self.policy = policy or LockoutPolicy.from_pairs(settings.lockout_tiers)
        self.clock = clock
        self._authorizers: Dict[str, PinAuthorizer] = {}
        self._in_use: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._authorizers)

    def get(self, user_id: str) -> PinAuthorizer | None:
        """Existing session for user_id, without creating one"""
        return self._authorizers.get(user_id)

    def authorizer_for(self, user_id: str) -> PinAuthorizer:
        authorizer = self._authorizers.get(user_id)
        if authorizer is None:
            authorizer = PinAuthorizer(
                user_id=user_id,
                verifier=self.verifier,
                store=PinTokenStore(policy=self.policy, clock=self.clock),
            )
            self._authorizers[user_id] = authorizer
        return authorizer

    @contextmanager
    def checkout(self, user_id: str) -> Iterator[PinAuthorizer]:
        """Hold the user's session for one request; idle sessions are dropped on exit"""
        authorizer = self.authorizer_for(user_id)
        self._in_use[user_id] = self._in_use.get(user_id, 0) + 1
        try:
            yield authorizer
        finally:
            remaining = self._in_use[user_id] - 1
            if remaining:
                self._in_use[user_id] = remaining
            else:
                del self._in_use[user_id]
                self._evict_if_idle(user_id)

    def end_session(self, user_id: str) -> None:
        """Logout: drop the token; attempt counters and any lock are kept"""
        authorizer = self._authorizers.get(user_id)
        if authorizer is None:
            return
        authorizer.store.clear_token()
        self._evict_if_idle(user_id)
        logger.info("PIN session ended", extra={"user_id": user_id})

    def _evict_if_idle(self, user_id: str) -> None:
        authorizer = self._authorizers.get(user_id)
        if authorizer is None or user_id in self._in_use:
            return
        store = authorizer.store
        if store.failed_attempts == 0 and not store.is_locked() and store.current_token() is None:
            del self._authorizers[user_id]
