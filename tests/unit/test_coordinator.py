"""Unit tests for the transaction request coordinator"""

import asyncio
import gc
import pytest
from savings_gateway.domain.exceptions import (
    AuthorizationCancelled,
    DailyLimitExceeded,
    IncorrectPin,
    InsufficientFunds,
)
from savings_gateway.domain.models import (
    KES_10,
    KES_100,
    Allocation,
    AutoAdaptive,
    FixedIncrement,
    MpesaMethod,
    PaymentIntent,
    RoundUpRule,
)
from savings_gateway.domain.ports import CaptureOutcome
from savings_gateway.services.coordinator import TransactionRequestCoordinator


@pytest.fixture
def coordinator(authorizer, gateway, pin_prompt, history) -> TransactionRequestCoordinator:
    return TransactionRequestCoordinator(authorizer, gateway, pin_prompt, history=history)


@pytest.fixture
def intent() -> PaymentIntent:
    return PaymentIntent(
        intent_id="intent_1",
        user_id="user_1",
        amount_cents=1250,
        destination="till:552211",
        method=MpesaMethod(phone="254712345678"),
        fee_cents=30,
    )


@pytest.fixture
def kes_10_rule() -> RoundUpRule:
    return RoundUpRule(
        enabled=True,
        strategy=FixedIncrement(KES_10),
        allocation=Allocation(main_pct=20, savings_pct=80),
    )


async def test_submit_sends_tokenized_charge(coordinator, intent, kes_10_rule, gateway):
    result = await coordinator.submit(intent, kes_10_rule)

    (submitted_intent, charge), = gateway.submissions
    assert submitted_intent == intent
    assert charge.pin_token == "tok-1"
    assert charge.round_up_amount_cents == 750
    assert charge.total_to_authorize_cents == 2030
    assert charge.split.main_share_cents == 150
    assert charge.split.savings_share_cents == 600
    assert result.settlement_id == "stl-1"
    assert result.charge == charge


async def test_retry_gets_fresh_token(coordinator, intent, kes_10_rule, gateway, verifier, authorizer):
    """Test the same intent submitted twice never reuses a token"""
    await coordinator.submit(intent, kes_10_rule)
    await coordinator.submit(intent, kes_10_rule)

    assert gateway.tokens == ["tok-1", "tok-2"]
    assert len(verifier.calls) == 2
    assert authorizer.store.current_token() is None


async def test_no_rule_means_no_round_up(coordinator, intent, gateway):
    await coordinator.submit(intent)

    _, charge = gateway.submissions[0]
    assert charge.round_up_amount_cents == 0
    assert charge.total_to_authorize_cents == 1280


async def test_preview_does_not_authorize(coordinator, intent, kes_10_rule, verifier):
    charge = await coordinator.preview(intent, kes_10_rule)

    assert charge.total_to_authorize_cents == 2030
    assert charge.pin_token is None
    assert verifier.calls == []


async def test_wrong_pin_stops_before_gateway(coordinator, intent, pin_prompt, gateway):
    pin_prompt.pin = "0000"

    with pytest.raises(IncorrectPin):
        await coordinator.submit(intent)

    assert gateway.submissions == []


async def test_unaffordable_payment_never_prompts(coordinator, kes_10_rule, pin_prompt, verifier):
    intent = PaymentIntent(
        intent_id="intent_2",
        user_id="user_1",
        amount_cents=5000,
        destination="wallet:friend",
        available_balance_cents=4000,
    )

    with pytest.raises(InsufficientFunds):
        await coordinator.submit(intent, kes_10_rule)

    assert pin_prompt.requests == []
    assert verifier.calls == []


async def test_payment_rejection_passes_through(coordinator, intent, gateway, authorizer):
    gateway.error = DailyLimitExceeded("Daily limit reached")

    with pytest.raises(DailyLimitExceeded) as exc_info:
        await coordinator.submit(intent)

    assert exc_info.value.code == "DAILY_LIMIT_EXCEEDED"
    assert authorizer.store.current_token() is None


async def test_biometric_path_skips_pin_prompt(authorizer, gateway, pin_prompt, bridge, intent):
    await bridge.enroll("user_1", "1234")
    coordinator = TransactionRequestCoordinator(authorizer, gateway, pin_prompt, biometric=bridge)

    await coordinator.submit(intent)

    assert pin_prompt.requests == []
    assert gateway.tokens == ["tok-1"]


async def test_cancelled_biometric_falls_back_to_pin(authorizer, gateway, pin_prompt, bridge, capture, intent):
    await bridge.enroll("user_1", "1234")
    capture.outcome = CaptureOutcome.CANCELLED
    coordinator = TransactionRequestCoordinator(authorizer, gateway, pin_prompt, biometric=bridge)

    await coordinator.submit(intent)

    assert pin_prompt.requests == ["user_1"]
    assert len(gateway.submissions) == 1


async def test_adaptive_rule_uses_history(coordinator, history, gateway):
    history.amounts = [30000, 30000, 30000]
    rule = RoundUpRule(enabled=True, strategy=AutoAdaptive(KES_10, 2 * KES_100, analysis_window_days=14))
    intent = PaymentIntent(intent_id="intent_3", user_id="user_1", amount_cents=12345, destination="till:1")

    await coordinator.submit(intent, rule)

    _, charge = gateway.submissions[0]
    assert history.windows == [14]
    assert charge.round_up_amount_cents == 7655  # Next KES 100 boundary


async def test_adaptive_rule_survives_history_outage(coordinator, history, gateway):
    history.available = False
    rule = RoundUpRule(enabled=True, strategy=AutoAdaptive(KES_10, 2 * KES_100))
    intent = PaymentIntent(intent_id="intent_4", user_id="user_1", amount_cents=12345, destination="till:1")

    await coordinator.submit(intent, rule)

    _, charge = gateway.submissions[0]
    assert charge.round_up_amount_cents == 655  # Minimum increment


async def test_cancel_pending_authorization(authorizer, gateway, pin_prompt, bridge, capture):
    """Test tearing down the prompt rejects the request and stops the capture"""
    await bridge.enroll("user_1", "1234")
    capture.hang = True
    coordinator = TransactionRequestCoordinator(authorizer, gateway, pin_prompt, biometric=bridge)

    pending = coordinator.request_authorization("user_1")
    await asyncio.sleep(0)

    assert pending.cancel("payment sheet closed")
    with pytest.raises(AuthorizationCancelled) as exc_info:
        await pending

    await asyncio.sleep(0)
    assert exc_info.value.reason == "payment sheet closed"
    assert capture.was_cancelled
    assert pin_prompt.requests == []


async def test_abandoned_cancel_is_not_reported(coordinator, verifier):
    """Test cancelling a request nobody awaits leaves nothing for the loop to report"""
    verifier.gate = asyncio.Event()
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda loop, context: reported.append(context))
    try:
        pending = coordinator.request_authorization("user_1")
        await asyncio.sleep(0)
        assert pending.cancel()
        await asyncio.sleep(0)

        del pending
        gc.collect()
    finally:
        loop.set_exception_handler(None)

    assert reported == []


async def test_cancel_after_resolution_is_noop(coordinator):
    pending = coordinator.request_authorization("user_1")

    assert await pending == "tok-1"
    assert pending.done()
    assert not pending.cancel()


async def test_request_for_other_user_rejected(coordinator):
    with pytest.raises(ValueError):
        coordinator.request_authorization("user_2")
