"""POST /v1/payments - authorize and submit a payment with round-up"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from savings_gateway.api.dependencies import (
    get_history_client,
    get_payment_client,
    get_request_id,
    get_session_registry,
)
from savings_gateway.api.errors import to_http_exception
from savings_gateway.api.v1.schemas import ChargeSchema, PaymentRequest, PaymentResponse
from savings_gateway.domain.exceptions import (
    AuthorizationUnavailable,
    IncorrectPin,
    PaymentRejected,
    PinLockError,
)
from savings_gateway.domain.models import RoundUpRule
from savings_gateway.infrastructure.clients.history import HistoryClient
from savings_gateway.infrastructure.clients.payments import PaymentClient
from savings_gateway.infrastructure.database.repositories import RoundUpRuleRepository
from savings_gateway.infrastructure.database.session import get_db
from savings_gateway.services.coordinator import TransactionRequestCoordinator
from savings_gateway.services.sessions import SessionRegistry

router = APIRouter()


class SubmittedPin:
    """PIN prompt answered by the PIN carried in the request body"""

    def __init__(self, pin: str):
        self._pin = pin

    async def request_pin(self, user_id: str) -> str:
        return self._pin


@router.post("/payments", response_model=PaymentResponse)
async def create_payment(
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_session_registry),
    payment_client: PaymentClient = Depends(get_payment_client),
    history_client: HistoryClient = Depends(get_history_client),
):
    """
    Make a payment, rounding up into savings per the user's rule.

    Flow:
    1. Load the user's round-up rule (disabled when none is stored)
    2. Build the charge preview, checking the balance if one is given
    3. Verify the PIN for a fresh single-use token
    4. Submit the charge to the payment API
    5. Bump round-up usage counters
    """
    request_id = get_request_id(request)
    repo = RoundUpRuleRepository(db)
    rule = repo.get_rule(request_body.user_id) or RoundUpRule.disabled()

    try:
        with sessions.checkout(request_body.user_id) as authorizer:
            coordinator = TransactionRequestCoordinator(
                authorizer=authorizer,
                gateway=payment_client,
                pin_prompt=SubmittedPin(request_body.pin),
                history=history_client,
            )
            result = await coordinator.submit(request_body.to_intent(), rule)

    except (PinLockError, IncorrectPin, AuthorizationUnavailable) as e:
        db.rollback()
        logging.warning(
            f"Payment authorization refused: {type(e).__name__}",
            extra={"request_id": request_id, "intent_id": request_body.intent_id},
        )
        raise to_http_exception(e)

    except PaymentRejected as e:
        db.rollback()
        logging.warning(
            f"Payment rejected: {e.code}",
            extra={"request_id": request_id, "intent_id": request_body.intent_id},
        )
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    repo.record_usage(request_body.user_id, result.charge.round_up_amount_cents)
    db.commit()

    return PaymentResponse(
        intent_id=result.intent_id,
        status=result.status,
        settlement_id=result.settlement_id,
        reference=result.reference,
        charge=ChargeSchema.from_charge(result.charge),
    )
