"""Unit tests for charge composition and round-up splits"""

import pytest
from savings_gateway.domain.allocation import AllocationEngine, split_round_up
from savings_gateway.domain.exceptions import InsufficientFunds, InvalidRoundUpRule
from savings_gateway.domain.models import (
    KES_10,
    Allocation,
    AllocationSplit,
    AuthorizedChargeRequest,
    FixedIncrement,
    RoundUpRule,
)


@pytest.fixture
def engine() -> AllocationEngine:
    return AllocationEngine()


@pytest.fixture
def kes_10_rule() -> RoundUpRule:
    return RoundUpRule(enabled=True, strategy=FixedIncrement(KES_10))


def test_split_remainder_goes_to_savings():
    """Test 101 cents at 50/50 keeps every cent"""
    split = split_round_up(101, Allocation(main_pct=50, savings_pct=50))

    assert split.main_share_cents == 50
    assert split.savings_share_cents == 51


@pytest.mark.parametrize("main_pct", [0, 1, 33, 50, 67, 99, 100])
@pytest.mark.parametrize("round_up", [0, 1, 7, 655, 9999])
def test_split_always_sums_to_round_up(main_pct: int, round_up: int):
    split = split_round_up(round_up, Allocation(main_pct=main_pct, savings_pct=100 - main_pct))

    assert split.main_share_cents + split.savings_share_cents == round_up
    assert split.main_share_cents >= 0 and split.savings_share_cents >= 0


def test_build_charge_totals(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    """Test total = base + fee + round-up, all to savings by default"""
    charge = engine.build_charge(base_amount_cents=1250, fee_cents=30, rule=kes_10_rule)

    assert charge.round_up_amount_cents == 750
    assert charge.total_to_authorize_cents == 2030
    assert charge.split == AllocationSplit(main_share_cents=0, savings_share_cents=750)
    assert charge.description == "Round up to nearest KES 10"
    assert charge.pin_token is None


def test_round_up_source_amount_override(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    """Test round-up may derive from an amount other than the base"""
    charge = engine.build_charge(base_amount_cents=1250, fee_cents=0, rule=kes_10_rule, amount_cents=1999)

    assert charge.round_up_amount_cents == 1
    assert charge.total_to_authorize_cents == 1251


def test_balance_short_of_base_and_fee_is_rejected(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    with pytest.raises(InsufficientFunds):
        engine.build_charge(
            base_amount_cents=1250,
            fee_cents=30,
            rule=kes_10_rule,
            available_balance_cents=1279,
        )


def test_round_up_skipped_when_unaffordable(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    """Test the payment still goes through without its round-up"""
    charge = engine.build_charge(
        base_amount_cents=1250,
        fee_cents=30,
        rule=kes_10_rule,
        available_balance_cents=1500,
    )

    assert charge.round_up_amount_cents == 0
    assert charge.total_to_authorize_cents == 1280
    assert charge.split == AllocationSplit(main_share_cents=0, savings_share_cents=0)


def test_round_up_kept_when_affordable(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    charge = engine.build_charge(
        base_amount_cents=1250,
        fee_cents=30,
        rule=kes_10_rule,
        available_balance_cents=2030,
    )

    assert charge.round_up_amount_cents == 750


def test_negative_fee_rejected(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    with pytest.raises(ValueError):
        engine.build_charge(base_amount_cents=1000, fee_cents=-1, rule=kes_10_rule)


def test_charge_rejects_inconsistent_total():
    with pytest.raises(ValueError):
        AuthorizedChargeRequest(
            base_amount_cents=1000,
            fee_cents=0,
            round_up_amount_cents=100,
            total_to_authorize_cents=1000,
            split=AllocationSplit(main_share_cents=0, savings_share_cents=100),
            description="",
        )


def test_with_token_returns_new_charge(engine: AllocationEngine, kes_10_rule: RoundUpRule):
    charge = engine.build_charge(base_amount_cents=1250, fee_cents=0, rule=kes_10_rule)

    tokenized = charge.with_token("tok-1")

    assert tokenized.pin_token == "tok-1"
    assert charge.pin_token is None
    assert tokenized.total_to_authorize_cents == charge.total_to_authorize_cents


@pytest.mark.parametrize("main_pct,savings_pct", [(60, 50), (-10, 110), (0, 0)])
def test_invalid_allocation(main_pct: int, savings_pct: int):
    with pytest.raises(InvalidRoundUpRule):
        Allocation(main_pct=main_pct, savings_pct=savings_pct)
