"""Pydantic schemas for API request/response validation"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from savings_gateway.domain.models import (
    Allocation,
    AuthorizedChargeRequest,
    AutoAdaptive,
    CardMethod,
    FixedIncrement,
    MpesaMethod,
    PaymentIntent,
    Percentage,
    RoundUpRule,
    SavingsMethod,
    WalletMethod,
)


class FixedStrategySchema(BaseModel):
    type: Literal["fixed"] = "fixed"
    increment_cents: int = Field(..., gt=0, description="Round up to the next multiple of this amount")


class PercentageStrategySchema(BaseModel):
    type: Literal["percentage"] = "percentage"
    bps: int = Field(..., ge=0, le=10_000, description="Basis points of each amount (500 = 5%)")


class AutoStrategySchema(BaseModel):
    type: Literal["auto"] = "auto"
    min_increment_cents: int = Field(..., gt=0)
    max_increment_cents: int = Field(..., gt=0)
    analysis_window_days: int = Field(30, ge=7, le=90)


StrategySchema = Annotated[
    Union[FixedStrategySchema, PercentageStrategySchema, AutoStrategySchema],
    Field(discriminator="type"),
]


class AllocationSchema(BaseModel):
    main_pct: int = Field(0, ge=0, le=100)
    savings_pct: int = Field(100, ge=0, le=100)


class RoundUpRuleSchema(BaseModel):
    """Request body for PUT /v1/round-up-rules/{user_id}"""

    enabled: bool = True
    strategy: StrategySchema
    allocation: AllocationSchema = AllocationSchema()

    def to_domain(self) -> RoundUpRule:
        """Raises InvalidRoundUpRule for cross-field violations"""
        strategy = self.strategy
        if isinstance(strategy, FixedStrategySchema):
            domain_strategy = FixedIncrement(strategy.increment_cents)
        elif isinstance(strategy, PercentageStrategySchema):
            domain_strategy = Percentage(strategy.bps)
        else:
            domain_strategy = AutoAdaptive(
                min_increment_cents=strategy.min_increment_cents,
                max_increment_cents=strategy.max_increment_cents,
                analysis_window_days=strategy.analysis_window_days,
            )

        return RoundUpRule(
            enabled=self.enabled,
            strategy=domain_strategy,
            allocation=Allocation(
                main_pct=self.allocation.main_pct,
                savings_pct=self.allocation.savings_pct,
            ),
        )

    @staticmethod
    def strategy_from_domain(rule: RoundUpRule) -> StrategySchema:
        strategy = rule.strategy
        if isinstance(strategy, FixedIncrement):
            return FixedStrategySchema(increment_cents=strategy.value_cents)
        if isinstance(strategy, Percentage):
            return PercentageStrategySchema(bps=strategy.bps)
        return AutoStrategySchema(
            min_increment_cents=strategy.min_increment_cents,
            max_increment_cents=strategy.max_increment_cents,
            analysis_window_days=strategy.analysis_window_days,
        )


class RoundUpRuleResponse(RoundUpRuleSchema):
    """Response for round-up rule endpoints"""

    user_id: str
    total_round_ups_count: int
    total_amount_saved_cents: int


class PreviewRequest(BaseModel):
    """Request body for POST /v1/round-up/preview"""

    user_id: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    fee_cents: int = Field(0, ge=0)
    available_balance_cents: Optional[int] = Field(None, ge=0)


class ChargeSchema(BaseModel):
    """Figures of a charge, before or after authorization"""

    amount_cents: int
    fee_cents: int
    round_up_amount_cents: int
    main_share_cents: int
    savings_share_cents: int
    total_to_authorize_cents: int
    description: str

    @classmethod
    def from_charge(cls, charge: AuthorizedChargeRequest) -> "ChargeSchema":
        return cls(
            amount_cents=charge.base_amount_cents,
            fee_cents=charge.fee_cents,
            round_up_amount_cents=charge.round_up_amount_cents,
            main_share_cents=charge.split.main_share_cents,
            savings_share_cents=charge.split.savings_share_cents,
            total_to_authorize_cents=charge.total_to_authorize_cents,
            description=charge.description,
        )


class PinAuthorizeRequest(BaseModel):
    """Request body for POST /v1/pin/authorize"""

    user_id: str = Field(..., min_length=1)
    pin: str = Field(..., min_length=1)


class PinAuthorizeResponse(BaseModel):
    token: str
    expires_in_seconds: int


class PinStatusResponse(BaseModel):
    """Read-only lock state for countdown display"""

    user_id: str
    locked: bool
    remaining_lock_seconds: int
    failed_attempts: int


class LogoutRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class WalletMethodSchema(BaseModel):
    type: Literal["wallet"] = "wallet"


class SavingsMethodSchema(BaseModel):
    type: Literal["savings"] = "savings"


class MpesaMethodSchema(BaseModel):
    type: Literal["mpesa"] = "mpesa"
    phone: str = Field(..., pattern=r"^254[0-9]{9}$")


class CardMethodSchema(BaseModel):
    type: Literal["card"] = "card"
    card_reference: str = Field(..., min_length=1)


MethodSchema = Annotated[
    Union[WalletMethodSchema, SavingsMethodSchema, MpesaMethodSchema, CardMethodSchema],
    Field(discriminator="type"),
]


class PaymentRequest(BaseModel):
    """Request body for POST /v1/payments"""

    intent_id: str = Field(..., min_length=1, description="Client-generated id of the logical payment")
    user_id: str = Field(..., min_length=1)
    pin: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    fee_cents: int = Field(0, ge=0)
    destination: str = Field(..., min_length=1, description="Till, paybill, phone or wallet id")
    method: MethodSchema = WalletMethodSchema()
    description: Optional[str] = None
    available_balance_cents: Optional[int] = Field(None, ge=0)

    def to_intent(self) -> PaymentIntent:
        method = self.method
        if isinstance(method, MpesaMethodSchema):
            domain_method = MpesaMethod(phone=method.phone)
        elif isinstance(method, CardMethodSchema):
            domain_method = CardMethod(card_reference=method.card_reference)
        elif isinstance(method, SavingsMethodSchema):
            domain_method = SavingsMethod()
        else:
            domain_method = WalletMethod()

        return PaymentIntent(
            intent_id=self.intent_id,
            user_id=self.user_id,
            amount_cents=self.amount_cents,
            destination=self.destination,
            method=domain_method,
            fee_cents=self.fee_cents,
            description=self.description,
            available_balance_cents=self.available_balance_cents,
        )


class PaymentResponse(BaseModel):
    """Response for POST /v1/payments"""

    intent_id: str
    status: str
    settlement_id: str
    reference: Optional[str] = None
    charge: ChargeSchema
