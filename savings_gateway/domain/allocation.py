"""Allocation engine - composes the charge to authorize and splits the round-up"""

import logging

from savings_gateway.domain.exceptions import InsufficientFunds
from savings_gateway.domain.models import (
    Allocation,
    AllocationSplit,
    AuthorizedChargeRequest,
    RoundUpRule,
)
from savings_gateway.domain.roundup import RoundUpCalculator

logger = logging.getLogger(__name__)


def split_round_up(round_up_cents: int, allocation: Allocation) -> AllocationSplit:
    """
    Split a round-up between main wallet and savings.

    Integer division for the main share; savings absorbs the remainder so
    main + savings == round_up for every input.

    Example:
        101 cents at 50/50 -> main 50, savings 51
    """
    main_share = round_up_cents * allocation.main_pct // 100
    return AllocationSplit(
        main_share_cents=main_share,
        savings_share_cents=round_up_cents - main_share,
    )


class AllocationEngine:
    """Builds the AuthorizedChargeRequest preview for a payment"""

    def __init__(self, calculator: RoundUpCalculator | None = None):
        self.calculator = calculator or RoundUpCalculator()

    def build_charge(
        self,
        base_amount_cents: int,
        fee_cents: int,
        rule: RoundUpRule,
        amount_cents: int | None = None,
        adaptive_increment_cents: int | None = None,
        available_balance_cents: int | None = None,
    ) -> AuthorizedChargeRequest:
        """
        Compose base + fee + round-up; the PIN token is attached later.

        Args:
            base_amount_cents: Amount moved to the destination
            fee_cents: Transaction fee (>= 0)
            rule: Round-up rule to apply
            amount_cents: Amount the round-up derives from (default: base amount)
            adaptive_increment_cents: Suggested increment for auto-adaptive rules
            available_balance_cents: When given, a round-up the balance cannot
                cover is skipped; a balance short of base + fee is rejected

        Raises:
            InsufficientFunds: Balance does not cover base + fee
        """
        if base_amount_cents < 0:
            raise ValueError("Base amount cannot be negative")
        if fee_cents < 0:
            raise ValueError("Fee cannot be negative")

        source_amount = base_amount_cents if amount_cents is None else amount_cents
        calculation = self.calculator.calculate(rule, source_amount, adaptive_increment_cents)
        round_up = calculation.round_up_amount_cents

        if available_balance_cents is not None:
            required = base_amount_cents + fee_cents
            if available_balance_cents < required:
                raise InsufficientFunds(
                    f"Balance {available_balance_cents} does not cover {required}"
                )
            if available_balance_cents < required + round_up:
                logger.warning(
                    "Skipping round-up due to insufficient funds",
                    extra={
                        "requested_round_up_cents": round_up,
                        "available_balance_cents": available_balance_cents,
                    },
                )
                round_up = 0

        return AuthorizedChargeRequest(
            base_amount_cents=base_amount_cents,
            fee_cents=fee_cents,
            round_up_amount_cents=round_up,
            total_to_authorize_cents=base_amount_cents + fee_cents + round_up,
            split=split_round_up(round_up, rule.allocation),
            description=calculation.description,
        )
