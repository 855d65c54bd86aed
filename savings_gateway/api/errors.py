"""Mapping of domain failures to HTTP responses"""

from fastapi import HTTPException

from savings_gateway.domain.exceptions import (
    AuthorizationUnavailable,
    DailyLimitExceeded,
    DomainException,
    GatewayUnavailable,
    IncorrectPin,
    InsufficientFunds,
    InvalidRoundUpRule,
    PaymentRejected,
    PinLockError,
    SelfTransferNotAllowed,
    TokenExpired,
)
from savings_gateway.utils.date_utils import ceil_seconds_until, utc_now


def to_http_exception(error: DomainException) -> HTTPException:
    """Status code and structured detail for a typed domain failure"""
    if isinstance(error, PinLockError):
        retry_after = ceil_seconds_until(error.unlock_at, utc_now())
        return HTTPException(
            status_code=423,
            detail={"code": "PIN_LOCKED", "message": str(error), "unlock_at": error.unlock_at.isoformat()},
            headers={"Retry-After": str(retry_after)},
        )
    if isinstance(error, IncorrectPin):
        return HTTPException(
            status_code=401,
            detail={"code": "INCORRECT_PIN", "message": str(error), "attempts_remaining": error.attempts_remaining},
        )
    if isinstance(error, (AuthorizationUnavailable, GatewayUnavailable)):
        return HTTPException(status_code=503, detail={"code": "UNAVAILABLE", "message": str(error)})
    if isinstance(error, InvalidRoundUpRule):
        return HTTPException(status_code=422, detail={"code": "INVALID_ROUND_UP_RULE", "message": str(error)})

    if isinstance(error, PaymentRejected):
        if isinstance(error, InsufficientFunds):
            status_code = 402
        elif isinstance(error, TokenExpired):
            status_code = 409
        elif isinstance(error, (DailyLimitExceeded, SelfTransferNotAllowed)):
            status_code = 422
        else:
            status_code = 400
        return HTTPException(status_code=status_code, detail={"code": error.code, "message": str(error)})

    return HTTPException(status_code=400, detail={"code": type(error).__name__, "message": str(error)})
