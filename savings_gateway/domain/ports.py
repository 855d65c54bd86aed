"""Interfaces of the external collaborators the authorization flow depends on"""

from enum import Enum
from typing import List, Protocol

from savings_gateway.domain.models import AuthorizedChargeRequest, PaymentIntent, PaymentResult, PinGrant


class CredentialVerifier(Protocol):
    """Server-side PIN check."""

    async def verify(self, user_id: str, pin: str) -> PinGrant:
        """Return a grant for a correct PIN.

        Raises PinRejected for a wrong PIN and VerifierUnavailable when no
        verdict could be obtained.
        """
        ...


class CaptureOutcome(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    DEVICE_ERROR = "device_error"


class BiometricCapture(Protocol):
    """Device biometric prompt."""

    async def is_available(self) -> bool:
        """Hardware present and at least one biometric enrolled."""
        ...

    async def capture(self, prompt: str) -> CaptureOutcome:
        ...


class SecretStore(Protocol):
    """Device-local secure storage; reads are gated by the OS biometric prompt."""

    async def get_sealed_pin(self, user_id: str) -> str | None:
        ...

    async def set_sealed_pin(self, user_id: str, pin: str) -> None:
        ...

    async def clear_sealed_pin(self, user_id: str) -> None:
        ...

    async def is_biometric_enabled(self, user_id: str) -> bool:
        ...

    async def set_biometric_enabled(self, user_id: str, enabled: bool) -> None:
        ...


class PaymentGateway(Protocol):
    """External payment/transfer API."""

    async def submit(self, intent: PaymentIntent, charge: AuthorizedChargeRequest) -> PaymentResult:
        """Raises a PaymentRejected subclass when the charge is refused."""
        ...


class TransactionHistorySource(Protocol):
    """Read-only recent spend amounts, used by auto-adaptive round-ups."""

    async def recent_spend_amounts(self, user_id: str, window_days: int) -> List[int]:
        ...


class PinPrompt(Protocol):
    """Manual PIN entry surface."""

    async def request_pin(self, user_id: str) -> str:
        ...
