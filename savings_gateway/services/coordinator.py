"""Transaction request coordinator - the single entry point for money-moving flows"""

import logging
import time

from savings_gateway.domain.allocation import AllocationEngine
from savings_gateway.domain.exceptions import (
    BiometricFailed,
    BiometricUnavailable,
    HistoryUnavailable,
    PaymentRejected,
    SetupIncomplete,
)
from savings_gateway.domain.models import (
    AuthorizedChargeRequest,
    AutoAdaptive,
    PaymentIntent,
    PaymentResult,
    RoundUpRule,
)
from savings_gateway.domain.ports import PaymentGateway, PinPrompt, TransactionHistorySource
from savings_gateway.domain.roundup import suggest_increment
from savings_gateway.infrastructure.observability.logging import log_submission
from savings_gateway.infrastructure.observability.metrics import record_submission
from savings_gateway.services.authorizer import PinAuthorizer
from savings_gateway.services.biometric import BiometricBridge
from savings_gateway.services.pending import PendingAuthorization

logger = logging.getLogger(__name__)


async def resolve_adaptive_increment(
    history: TransactionHistorySource | None,
    user_id: str,
    rule: RoundUpRule,
) -> int | None:
    """Increment for an enabled auto-adaptive rule, or None when it does not apply"""
    strategy = rule.strategy
    if not rule.enabled or not isinstance(strategy, AutoAdaptive) or history is None:
        return None

    try:
        amounts = await history.recent_spend_amounts(user_id, strategy.analysis_window_days)
    except HistoryUnavailable as e:
        logger.warning(
            "History unavailable, using minimum adaptive increment",
            extra={"user_id": user_id, "error": str(e)},
        )
        return None

    return suggest_increment(amounts, strategy)


class TransactionRequestCoordinator:
    """
    Preview -> authorize -> submit for one user session.

    Every submission obtains a fresh token; a token is never sent twice,
    even when the caller retries the same intent.
    """

    def __init__(
        self,
        authorizer: PinAuthorizer,
        gateway: PaymentGateway,
        pin_prompt: PinPrompt,
        engine: AllocationEngine | None = None,
        biometric: BiometricBridge | None = None,
        history: TransactionHistorySource | None = None,
    ):
        self.authorizer = authorizer
        self.gateway = gateway
        self.pin_prompt = pin_prompt
        self.engine = engine or AllocationEngine()
        self.biometric = biometric
        self.history = history

    async def preview(self, intent: PaymentIntent, rule: RoundUpRule) -> AuthorizedChargeRequest:
        """Charge preview shown before any authorization is requested"""
        adaptive_increment = await resolve_adaptive_increment(self.history, intent.user_id, rule)
        return self.engine.build_charge(
            base_amount_cents=intent.amount_cents,
            fee_cents=intent.fee_cents,
            rule=rule,
            adaptive_increment_cents=adaptive_increment,
            available_balance_cents=intent.available_balance_cents,
        )

    def request_authorization(self, user_id: str) -> PendingAuthorization:
        """Start obtaining a token; await the handle, or cancel() it on teardown"""
        if user_id != self.authorizer.user_id:
            raise ValueError("Coordinator is bound to a different user session")
        return PendingAuthorization(self._obtain_token(user_id))

    async def submit(self, intent: PaymentIntent, rule: RoundUpRule | None = None) -> PaymentResult:
        """
        Authorize and submit one payment intent.

        Raises:
            PinLockError / IncorrectPin / AuthorizationUnavailable: authorization failed
            AuthorizationCancelled: the pending request was torn down
            PaymentRejected subclasses: surfaced as-is from the payment API
        """
        start_time = time.time()
        rule = rule or RoundUpRule.disabled()

        charge = await self.preview(intent, rule)

        token = await self.request_authorization(intent.user_id)
        # Single use: the session must re-verify for the next submission
        self.authorizer.store.discard_token(token)
        charge = charge.with_token(token)

        try:
            result = await self.gateway.submit(intent, charge)
        except PaymentRejected as e:
            self._report(intent, charge, e.code, start_time)
            raise

        self._report(intent, charge, result.status, start_time)
        return result

    async def _obtain_token(self, user_id: str) -> str:
        if self.biometric is not None:
            try:
                return await self.biometric.authenticate_and_authorize(user_id)
            except (BiometricUnavailable, BiometricFailed, SetupIncomplete) as e:
                logger.info(
                    "Falling back to manual PIN entry",
                    extra={"user_id": user_id, "reason": type(e).__name__},
                )

        pin = await self.pin_prompt.request_pin(user_id)
        return await self.authorizer.authorize(pin)

    def _report(self, intent: PaymentIntent, charge: AuthorizedChargeRequest, outcome: str, start_time: float) -> None:
        record_submission(outcome, charge.round_up_amount_cents)
        log_submission(
            intent.intent_id,
            intent.user_id,
            outcome,
            charge.total_to_authorize_cents,
            charge.round_up_amount_cents,
            (time.time() - start_time) * 1000,
        )
