"""Payment/transfer API HTTP client"""

from typing import Any, Dict, assert_never

import httpx

from savings_gateway.config import settings
from savings_gateway.domain.exceptions import PAYMENT_REJECTIONS, GatewayUnavailable, PaymentRejected
from savings_gateway.domain.models import (
    AuthorizedChargeRequest,
    CardMethod,
    MpesaMethod,
    PaymentIntent,
    PaymentMethod,
    PaymentResult,
    SavingsMethod,
    WalletMethod,
)


def method_payload(method: PaymentMethod) -> Dict[str, Any]:
    """Wire shape of a payment method"""
    match method:
        case WalletMethod():
            return {"type": "wallet"}
        case SavingsMethod():
            return {"type": "savings"}
        case MpesaMethod(phone=phone):
            return {"type": "mpesa", "phone": phone}
        case CardMethod(card_reference=card_reference):
            return {"type": "card", "card_reference": card_reference}
        case _:
            assert_never(method)


def charge_payload(intent: PaymentIntent, charge: AuthorizedChargeRequest) -> Dict[str, Any]:
    if charge.pin_token is None:
        raise ValueError("Charge must carry a PIN token before submission")
    return {
        "intent_id": intent.intent_id,
        "user_id": intent.user_id,
        "amount": charge.base_amount_cents,
        "fee": charge.fee_cents,
        "round_up_amount": charge.round_up_amount_cents,
        "round_up_split": {
            "main": charge.split.main_share_cents,
            "savings": charge.split.savings_share_cents,
        },
        "total": charge.total_to_authorize_cents,
        "pin_token": charge.pin_token,
        "destination": intent.destination,
        "method": method_payload(intent.method),
        "description": intent.description,
    }


class PaymentClient:
    """Client for the external payment/transfer API. Rejections are never retried here."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.payment_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def submit(self, intent: PaymentIntent, charge: AuthorizedChargeRequest) -> PaymentResult:
        """
        Submit an authorized charge.

        Raises:
            PaymentRejected: Subclass matching the API rejection code
            GatewayUnavailable: On timeout, transport or 5xx errors
        """
        payload = charge_payload(intent, charge)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(f"{self.base_url}/payments", json=payload)

                if 400 <= response.status_code < 500:
                    raise self._rejection(response)
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise GatewayUnavailable("Invalid payment API response: expected a JSON object")

                return PaymentResult(
                    intent_id=intent.intent_id,
                    status=data.get("status", "success"),
                    settlement_id=str(data["settlement_id"]),
                    reference=data.get("reference"),
                    charge=charge,
                )

            except httpx.TimeoutException as e:
                raise GatewayUnavailable(f"Payment API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise GatewayUnavailable(f"Payment API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise GatewayUnavailable(f"Payment API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise GatewayUnavailable(f"Invalid payment API response: {e}") from e

    @staticmethod
    def _rejection(response: httpx.Response) -> PaymentRejected:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code") or f"HTTP_{response.status_code}"
        message = body.get("message") or body.get("detail") or code
        rejection = PAYMENT_REJECTIONS.get(code)
        if rejection is None:
            return PaymentRejected(message, code=code)
        return rejection(message)
