"""Round-up rule management and charge preview endpoints"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from savings_gateway.api.dependencies import get_history_client, get_request_id
from savings_gateway.api.errors import to_http_exception
from savings_gateway.api.v1.schemas import (
    AllocationSchema,
    ChargeSchema,
    PreviewRequest,
    RoundUpRuleResponse,
    RoundUpRuleSchema,
)
from savings_gateway.domain.allocation import AllocationEngine
from savings_gateway.domain.exceptions import InsufficientFunds, InvalidRoundUpRule
from savings_gateway.domain.models import RoundUpRule
from savings_gateway.infrastructure.clients.history import HistoryClient
from savings_gateway.infrastructure.database.models import RoundUpRuleRecord
from savings_gateway.infrastructure.database.repositories import RoundUpRuleRepository, rule_from_record
from savings_gateway.infrastructure.database.session import get_db
from savings_gateway.services.coordinator import resolve_adaptive_increment

router = APIRouter()


def _rule_response(record: RoundUpRuleRecord) -> RoundUpRuleResponse:
    rule = rule_from_record(record)
    return RoundUpRuleResponse(
        user_id=record.user_id,
        enabled=rule.enabled,
        strategy=RoundUpRuleSchema.strategy_from_domain(rule),
        allocation=AllocationSchema(
            main_pct=rule.allocation.main_pct,
            savings_pct=rule.allocation.savings_pct,
        ),
        total_round_ups_count=record.total_round_ups_count,
        total_amount_saved_cents=record.total_amount_saved_cents,
    )


@router.get("/round-up-rules/{user_id}", response_model=RoundUpRuleResponse)
def get_round_up_rule(user_id: str, db: Session = Depends(get_db)):
    """Current rule and usage counters for a user"""
    record = RoundUpRuleRepository(db).get_record(user_id)
    if not record:
        raise HTTPException(status_code=404, detail="Round-up rule not found")
    return _rule_response(record)


@router.put("/round-up-rules/{user_id}", response_model=RoundUpRuleResponse)
def put_round_up_rule(
    user_id: str,
    request_body: RoundUpRuleSchema,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Create or replace a user's round-up rule.

    Usage counters survive replacement; switching strategy clears the
    previous strategy's settings.
    """
    request_id = get_request_id(request)

    try:
        rule = request_body.to_domain()
    except InvalidRoundUpRule as e:
        logging.warning(f"Rejected round-up rule: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    record = RoundUpRuleRepository(db).save_rule(user_id, rule)
    db.commit()
    db.refresh(record)

    logging.info(
        "Round-up rule saved",
        extra={"request_id": request_id, "user_id": user_id, "strategy": record.strategy},
    )
    return _rule_response(record)


@router.post("/round-up/preview", response_model=ChargeSchema)
async def preview_round_up(
    request_body: PreviewRequest,
    request: Request,
    db: Session = Depends(get_db),
    history_client: HistoryClient = Depends(get_history_client),
):
    """
    Show what a payment would charge, before any PIN is entered.

    Users without a stored rule get a zero round-up.
    """
    request_id = get_request_id(request)
    rule = RoundUpRuleRepository(db).get_rule(request_body.user_id) or RoundUpRule.disabled()

    adaptive_increment = await resolve_adaptive_increment(history_client, request_body.user_id, rule)

    try:
        charge = AllocationEngine().build_charge(
            base_amount_cents=request_body.amount_cents,
            fee_cents=request_body.fee_cents,
            rule=rule,
            adaptive_increment_cents=adaptive_increment,
            available_balance_cents=request_body.available_balance_cents,
        )
    except InsufficientFunds as e:
        logging.warning(f"Preview exceeds balance: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    return ChargeSchema.from_charge(charge)
