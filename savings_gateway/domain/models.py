"""Domain models - pure Python dataclasses for PIN sessions, round-up rules and charges"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Union

from savings_gateway.domain.exceptions import InvalidRoundUpRule

KES_10 = 1_000
KES_50 = 5_000
KES_100 = 10_000


@dataclass
class PinSession:
    """Attempt counters and authorization token for one user session"""

    failed_attempts: int = 0
    locked_until: datetime | None = None
    current_token: str | None = None
    token_expires_at: datetime | None = None


@dataclass(frozen=True)
class LockoutTier:
    """Lockout applied once failed attempts reach the threshold"""

    attempt_threshold: int
    lockout_seconds: int


@dataclass(frozen=True)
class PinGrant:
    """Token issued by the credential verifier after a correct PIN"""

    token: str
    ttl_seconds: int


# Round-up strategies. Each variant carries only its own fields.


@dataclass(frozen=True)
class FixedIncrement:
    """Round up to the next multiple of value_cents"""

    value_cents: int

    def __post_init__(self) -> None:
        if self.value_cents <= 0:
            raise InvalidRoundUpRule("Fixed increment must be positive")

    @classmethod
    def nearest_10(cls) -> "FixedIncrement":
        return cls(KES_10)

    @classmethod
    def nearest_50(cls) -> "FixedIncrement":
        return cls(KES_50)

    @classmethod
    def nearest_100(cls) -> "FixedIncrement":
        return cls(KES_100)


@dataclass(frozen=True)
class Percentage:
    """Save a share of every amount, in basis points (500 = 5%)"""

    bps: int

    def __post_init__(self) -> None:
        if not 0 <= self.bps <= 10_000:
            raise InvalidRoundUpRule("Percentage must be between 0 and 10000 basis points")


@dataclass(frozen=True)
class AutoAdaptive:
    """Fixed increment derived from recent spending, bounded to [min, max]"""

    min_increment_cents: int
    max_increment_cents: int
    analysis_window_days: int = 30

    def __post_init__(self) -> None:
        if self.min_increment_cents <= 0:
            raise InvalidRoundUpRule("min_increment must be positive")
        if self.max_increment_cents < self.min_increment_cents:
            raise InvalidRoundUpRule("max_increment must be >= min_increment")
        if not 7 <= self.analysis_window_days <= 90:
            raise InvalidRoundUpRule("Analysis window must be 7-90 days")


RoundUpStrategy = Union[FixedIncrement, Percentage, AutoAdaptive]


@dataclass(frozen=True)
class Allocation:
    """Split of a round-up between the main wallet and savings"""

    main_pct: int = 0
    savings_pct: int = 100

    def __post_init__(self) -> None:
        if not (0 <= self.main_pct <= 100 and 0 <= self.savings_pct <= 100):
            raise InvalidRoundUpRule("Allocation percentages must be between 0 and 100")
        if self.main_pct + self.savings_pct != 100:
            raise InvalidRoundUpRule("Allocation percentages must sum to 100")


@dataclass(frozen=True)
class RoundUpRule:
    """User-configured round-up rule"""

    enabled: bool
    strategy: RoundUpStrategy
    allocation: Allocation = field(default_factory=Allocation)

    def __post_init__(self) -> None:
        if not isinstance(self.strategy, (FixedIncrement, Percentage, AutoAdaptive)):
            raise InvalidRoundUpRule(f"Unknown round-up strategy: {self.strategy!r}")

    @classmethod
    def disabled(cls) -> "RoundUpRule":
        return cls(enabled=False, strategy=FixedIncrement.nearest_10())


@dataclass(frozen=True)
class RoundUpCalculation:
    """Output of evaluating a rule against an amount"""

    input_amount_cents: int
    round_up_amount_cents: int
    strategy_used: RoundUpStrategy
    description: str


@dataclass(frozen=True)
class AllocationSplit:
    """Round-up shares per destination"""

    main_share_cents: int
    savings_share_cents: int


@dataclass(frozen=True)
class AuthorizedChargeRequest:
    """Final figures handed to the payment API; immutable once built"""

    base_amount_cents: int
    fee_cents: int
    round_up_amount_cents: int
    total_to_authorize_cents: int
    split: AllocationSplit
    description: str
    pin_token: str | None = None

    def __post_init__(self) -> None:
        if self.base_amount_cents < 0 or self.fee_cents < 0 or self.round_up_amount_cents < 0:
            raise ValueError("Charge amounts cannot be negative")
        if self.total_to_authorize_cents != self.base_amount_cents + self.fee_cents + self.round_up_amount_cents:
            raise ValueError("total_to_authorize must equal base + fee + round-up")
        if self.split.main_share_cents + self.split.savings_share_cents != self.round_up_amount_cents:
            raise ValueError("Round-up split must add up to the round-up amount")

    def with_token(self, pin_token: str) -> "AuthorizedChargeRequest":
        return replace(self, pin_token=pin_token)


# Payment methods, matched exhaustively wherever they are interpreted


@dataclass(frozen=True)
class WalletMethod:
    """Debit the main wallet"""


@dataclass(frozen=True)
class SavingsMethod:
    """Debit the savings wallet"""


@dataclass(frozen=True)
class MpesaMethod:
    """Mobile money collection from a phone number"""

    phone: str


@dataclass(frozen=True)
class CardMethod:
    """Charge a saved card"""

    card_reference: str


PaymentMethod = Union[WalletMethod, SavingsMethod, MpesaMethod, CardMethod]


@dataclass(frozen=True)
class PaymentIntent:
    """A money movement the user wants to make"""

    intent_id: str
    user_id: str
    amount_cents: int
    destination: str
    method: PaymentMethod = field(default_factory=WalletMethod)
    fee_cents: int = 0
    description: str | None = None
    available_balance_cents: int | None = None


@dataclass(frozen=True)
class PaymentResult:
    """Settlement identifiers returned by the payment API"""

    intent_id: str
    status: str  # "success" or "pending"
    settlement_id: str
    reference: str | None
    charge: AuthorizedChargeRequest
