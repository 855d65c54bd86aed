"""Round-up calculator - derives a savings increment from a payment amount"""

from typing import Sequence, assert_never

from savings_gateway.config import settings
from savings_gateway.domain.models import (
    KES_10,
    KES_50,
    KES_100,
    AutoAdaptive,
    FixedIncrement,
    Percentage,
    RoundUpCalculation,
    RoundUpRule,
    RoundUpStrategy,
)

# Spend spread above which mid-range spenders get the larger increment
ADAPTIVE_SPREAD_CENTS = 10_000


def fixed_round_up(amount_cents: int, increment_cents: int) -> int:
    """
    Amount needed to reach the next multiple of increment_cents.

    An amount that is already a multiple gets no round-up.

    Example:
        amount=1250 (KES 12.50), increment=1000 (KES 10) -> 750 (reaches KES 20.00)
    """
    remainder = amount_cents % increment_cents
    if remainder == 0:
        return 0
    return increment_cents - remainder


def percentage_round_up(amount_cents: int, bps: int) -> int:
    """floor(amount * bps / 10000), never negative"""
    return max(0, amount_cents * bps // 10_000)


def clamp_increment(increment_cents: int, strategy: AutoAdaptive) -> int:
    return min(max(increment_cents, strategy.min_increment_cents), strategy.max_increment_cents)


def suggest_increment(spend_amounts_cents: Sequence[int], strategy: AutoAdaptive) -> int:
    """
    Suggest an auto-adaptive increment from recent spend amounts.

    Heuristic:
    - Average spend < KES 50: KES 10
    - Average spend < KES 200: KES 50, or KES 100 when spend varies widely
    - Average spend < KES 500: KES 100
    - Otherwise: KES 200

    The suggestion is clamped to the rule's [min, max]. No history means min.
    """
    if not spend_amounts_cents:
        return strategy.min_increment_cents

    count = len(spend_amounts_cents)
    average = sum(spend_amounts_cents) // count
    variance = sum((amount - average) ** 2 for amount in spend_amounts_cents) // count

    if average < 5_000:
        candidate = KES_10
    elif average < 20_000:
        candidate = KES_100 if variance > ADAPTIVE_SPREAD_CENTS**2 else KES_50
    elif average < 50_000:
        candidate = KES_100
    else:
        candidate = 2 * KES_100

    return clamp_increment(candidate, strategy)


def format_money(amount_cents: int, currency: str) -> str:
    """KES 100 for whole units, KES 12.50 otherwise"""
    units, cents = divmod(amount_cents, 100)
    if cents == 0:
        return f"{currency} {units}"
    return f"{currency} {units}.{cents:02d}"


def format_bps(bps: int) -> str:
    whole, fraction = divmod(bps, 100)
    if fraction == 0:
        return str(whole)
    return f"{whole}.{fraction:02d}".rstrip("0")


def describe_strategy(strategy: RoundUpStrategy, currency: str) -> str:
    """Fixed display template per strategy"""
    match strategy:
        case FixedIncrement(value_cents=value):
            return f"Round up to nearest {format_money(value, currency)}"
        case Percentage(bps=bps):
            return f"Save {format_bps(bps)}% of each transaction"
        case AutoAdaptive():
            return "Smart auto round-up based on spending"
        case _:
            assert_never(strategy)


class RoundUpCalculator:
    """Pure evaluation of a round-up rule against an amount"""

    def __init__(self, currency: str | None = None):
        self.currency = currency or settings.currency

    def describe(self, rule: RoundUpRule) -> str:
        if not rule.enabled:
            return "Round-up disabled"
        return describe_strategy(rule.strategy, self.currency)

    def calculate(
        self,
        rule: RoundUpRule,
        amount_cents: int,
        adaptive_increment_cents: int | None = None,
    ) -> RoundUpCalculation:
        """
        Evaluate rule against amount_cents.

        Args:
            rule: The user's round-up rule
            amount_cents: Payment amount the round-up is derived from
            adaptive_increment_cents: Increment suggested from history for
                auto-adaptive rules; clamped to the rule's bounds, min when absent

        Returns:
            RoundUpCalculation with a non-negative round-up amount
        """
        description = self.describe(rule)
        if not rule.enabled or amount_cents <= 0:
            return RoundUpCalculation(
                input_amount_cents=amount_cents,
                round_up_amount_cents=0,
                strategy_used=rule.strategy,
                description=description,
            )

        strategy = rule.strategy
        match strategy:
            case FixedIncrement(value_cents=value):
                round_up = fixed_round_up(amount_cents, value)
            case Percentage(bps=bps):
                round_up = percentage_round_up(amount_cents, bps)
            case AutoAdaptive():
                increment = clamp_increment(
                    adaptive_increment_cents
                    if adaptive_increment_cents is not None
                    else strategy.min_increment_cents,
                    strategy,
                )
                round_up = fixed_round_up(amount_cents, increment)
            case _:
                assert_never(strategy)

        return RoundUpCalculation(
            input_amount_cents=amount_cents,
            round_up_amount_cents=max(0, round_up),
            strategy_used=strategy,
            description=description,
        )
