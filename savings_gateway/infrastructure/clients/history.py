"""Transaction history HTTP client feeding auto-adaptive round-ups"""

from typing import List

import httpx

from savings_gateway.config import settings
from savings_gateway.domain.exceptions import HistoryUnavailable

# Outgoing money only; deposits and round-ups say nothing about spend size
SPEND_TYPES = {"payment", "bill_payment", "transfer_out"}


class HistoryClient:
    """Read-only client for recent completed transactions"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.history_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def recent_spend_amounts(self, user_id: str, window_days: int | None = None) -> List[int]:
        """
        Fetch spend amounts (cents) for the last window_days.

        Raises:
            HistoryUnavailable: On timeout, HTTP errors, or invalid response
        """
        days = window_days or settings.adaptive_window_days
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/transactions/recent",
                    params={"user_id": user_id, "days": days},
                )
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise HistoryUnavailable("Invalid history data: expected a JSON object")

                return [
                    int(txn["amount_cents"])
                    for txn in data.get("transactions", [])
                    if txn.get("type") in SPEND_TYPES and txn.get("status", "completed") == "completed"
                ]

            except httpx.TimeoutException as e:
                raise HistoryUnavailable(f"History API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise HistoryUnavailable(f"History API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise HistoryUnavailable(f"History API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise HistoryUnavailable(f"Invalid history data: {e}") from e
