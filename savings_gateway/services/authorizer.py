"""PIN authorizer - one PIN entry attempt against the credential verifier"""

from savings_gateway.config import settings
from savings_gateway.domain.exceptions import (
    AuthorizationUnavailable,
    IncorrectPin,
    PinLockError,
    PinRejected,
    VerifierUnavailable,
)
from savings_gateway.domain.ports import CredentialVerifier
from savings_gateway.infrastructure.observability.logging import log_authorization
from savings_gateway.infrastructure.observability.metrics import (
    pin_lockout_counter,
    record_authorization,
    verifier_failure_counter,
)
from savings_gateway.services.token_store import PinTokenStore


class PinAuthorizer:
    """
    Drives the PIN state machine for one user session.

    Idle -> Unlocked(attempting) -> TokenIssued on success, back to
    Unlocked or Locked on a wrong PIN. Attempts are serialized on the
    store's lock, so failures and successes land in the order the
    verifier calls completed.
    """

    def __init__(
        self,
        user_id: str,
        verifier: CredentialVerifier,
        store: PinTokenStore | None = None,
        max_displayed_attempts: int | None = None,
        default_ttl_seconds: int | None = None,
    ):
        self.user_id = user_id
        self.verifier = verifier
        self.store = store or PinTokenStore()
        self.max_displayed_attempts = (
            settings.max_displayed_attempts if max_displayed_attempts is None else max_displayed_attempts
        )
        self.default_ttl_seconds = default_ttl_seconds or settings.pin_token_ttl_seconds

    def is_locked(self) -> bool:
        return self.store.is_locked()

    def remaining_lock_seconds(self) -> int:
        return self.store.remaining_lock_seconds()

    async def authorize(self, candidate_pin: str) -> str:
        """
        Verify candidate_pin and return a fresh single-use token.

        Raises:
            PinLockError: Session locked; the verifier is not called
            IncorrectPin: Wrong PIN, attempt counted
            AuthorizationUnavailable: Verifier unreachable, attempt not counted
        """
        async with self.store.lock:
            if self.store.is_locked():
                self._report("locked")
                raise PinLockError(self.store.locked_until)

            try:
                grant = await self.verifier.verify(self.user_id, candidate_pin)
            except PinRejected as e:
                self.store.record_failure()
                if self.store.is_locked():
                    pin_lockout_counter.inc()
                    self._report("locked")
                    raise PinLockError(self.store.locked_until) from e

                self._report("incorrect_pin")
                attempts_remaining = max(0, self.max_displayed_attempts - self.store.failed_attempts)
                raise IncorrectPin(attempts_remaining) from e
            except (VerifierUnavailable, TimeoutError) as e:
                verifier_failure_counter.inc()
                self._report("unavailable")
                raise AuthorizationUnavailable(f"PIN verification unavailable: {e}") from e

            ttl = grant.ttl_seconds if grant.ttl_seconds > 0 else self.default_ttl_seconds
            self.store.record_success(grant.token, ttl)
            self._report("issued")
            return grant.token

    def _report(self, outcome: str) -> None:
        record_authorization(outcome)
        log_authorization(
            self.user_id,
            outcome,
            self.store.failed_attempts,
            self.store.locked_until if outcome == "locked" else None,
        )
