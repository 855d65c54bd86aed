"""Credential verifier HTTP client for server-side PIN checks"""

import httpx

from savings_gateway.config import settings
from savings_gateway.domain.exceptions import PinRejected, VerifierUnavailable
from savings_gateway.domain.models import PinGrant


class VerifierClient:
    """Client for the external PIN verification API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.verifier_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def verify(self, user_id: str, pin: str) -> PinGrant:
        """
        Verify a PIN and obtain a transaction token.

        A 401/403, or a 200 with `verified: false`, is a wrong-PIN verdict.
        Anything else that is not a usable grant has no verdict.

        Raises:
            PinRejected: The PIN is wrong
            VerifierUnavailable: On timeout, transport or server errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/auth/verify-pin",
                    json={"user_id": user_id, "pin": pin},
                )
                if response.status_code in (401, 403):
                    raise PinRejected("Verifier rejected the PIN")
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise VerifierUnavailable("Invalid verifier response: expected a JSON object")

                if not data.get("verified", True):
                    raise PinRejected("Verifier rejected the PIN")

                return PinGrant(
                    token=str(data["token"]),
                    ttl_seconds=int(data.get("ttl_seconds") or 0),
                )

            except httpx.TimeoutException as e:
                raise VerifierUnavailable(f"Verifier timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise VerifierUnavailable(f"Verifier error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise VerifierUnavailable(f"Verifier unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise VerifierUnavailable(f"Invalid verifier response: {e}") from e
