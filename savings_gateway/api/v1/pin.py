"""PIN session endpoints: authorize, status and logout"""

import logging
from fastapi import APIRouter, Depends, Query, Request

from savings_gateway.api.dependencies import get_request_id, get_session_registry
from savings_gateway.api.errors import to_http_exception
from savings_gateway.api.v1.schemas import (
    LogoutRequest,
    PinAuthorizeRequest,
    PinAuthorizeResponse,
    PinStatusResponse,
)
from savings_gateway.domain.exceptions import AuthorizationUnavailable, IncorrectPin, PinLockError
from savings_gateway.services.sessions import SessionRegistry
from savings_gateway.utils.date_utils import ceil_seconds_until

router = APIRouter()


@router.post("/pin/authorize", response_model=PinAuthorizeResponse)
async def authorize_pin(
    request_body: PinAuthorizeRequest,
    request: Request,
    sessions: SessionRegistry = Depends(get_session_registry),
):
    """
    Verify a PIN and open a short-lived authorization window.

    Errors:
        401: wrong PIN, with attempts_remaining
        423: session locked, with unlock_at and Retry-After
        503: verifier unreachable; the attempt is not counted
    """
    request_id = get_request_id(request)

    with sessions.checkout(request_body.user_id) as authorizer:
        try:
            token = await authorizer.authorize(request_body.pin)
        except (PinLockError, IncorrectPin, AuthorizationUnavailable) as e:
            logging.warning(
                f"PIN authorization refused: {type(e).__name__}",
                extra={"request_id": request_id, "user_id": request_body.user_id},
            )
            raise to_http_exception(e)

        session = authorizer.store.session
        return PinAuthorizeResponse(
            token=token,
            expires_in_seconds=ceil_seconds_until(session.token_expires_at, authorizer.store.clock()),
        )


@router.get("/pin/status", response_model=PinStatusResponse)
async def get_pin_status(
    user_id: str = Query(..., description="User identifier"),
    sessions: SessionRegistry = Depends(get_session_registry),
):
    """Lock state for the countdown display; never touches the verifier or opens a session"""
    authorizer = sessions.get(user_id)
    if authorizer is None:
        return PinStatusResponse(user_id=user_id, locked=False, remaining_lock_seconds=0, failed_attempts=0)

    return PinStatusResponse(
        user_id=user_id,
        locked=authorizer.is_locked(),
        remaining_lock_seconds=authorizer.remaining_lock_seconds(),
        failed_attempts=authorizer.store.failed_attempts,
    )


@router.post("/pin/logout", status_code=204)
async def logout(
    request_body: LogoutRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
):
    """
    End the session by dropping any outstanding token.

    Failed attempts and an active lock survive logout; only a correct PIN
    clears them.
    """
    sessions.end_session(request_body.user_id)
