"""Biometric bridge - turns a device biometric success into PIN-equivalent authorization"""

import asyncio
import logging
import re

from savings_gateway.config import settings
from savings_gateway.domain.exceptions import (
    BiometricFailed,
    BiometricUnavailable,
    InvalidPinFormat,
    PinLockError,
    SetupIncomplete,
)
from savings_gateway.domain.ports import BiometricCapture, CaptureOutcome, SecretStore
from savings_gateway.infrastructure.observability.metrics import record_biometric
from savings_gateway.services.authorizer import PinAuthorizer

logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^[0-9]{4}$")


def validate_pin_format(pin: str) -> None:
    if not PIN_PATTERN.match(pin):
        raise InvalidPinFormat("PIN must be a 4-digit numeric code")


class BiometricBridge:
    """
    Substitutes a biometric prompt for manual PIN entry.

    A successful capture only unseals the stored PIN; that PIN is then
    verified through PinAuthorizer exactly like a typed one, so biometrics
    never bypass the lockout or server-side verification.
    """

    def __init__(
        self,
        authorizer: PinAuthorizer,
        capture: BiometricCapture,
        secrets: SecretStore,
        prompt: str | None = None,
    ):
        self.authorizer = authorizer
        self.capture = capture
        self.secrets = secrets
        self.prompt = prompt or settings.biometric_prompt

    async def is_available(self, user_id: str) -> bool:
        return await self.capture.is_available() and await self.secrets.is_biometric_enabled(user_id)

    async def enroll(self, user_id: str, pin: str) -> None:
        """Seal pin behind biometric-gated storage and enable the bridge for user_id"""
        if not await self.capture.is_available():
            raise BiometricUnavailable("Biometric authentication is not available on this device")
        validate_pin_format(pin)
        await self.secrets.set_sealed_pin(user_id, pin)
        await self.secrets.set_biometric_enabled(user_id, True)
        logger.info("Biometric authorization enabled", extra={"user_id": user_id})

    async def disable(self, user_id: str) -> None:
        await self.secrets.clear_sealed_pin(user_id)
        await self.secrets.set_biometric_enabled(user_id, False)
        logger.info("Biometric authorization disabled", extra={"user_id": user_id})

    async def authenticate_and_authorize(self, user_id: str) -> str:
        """
        Biometric prompt -> sealed PIN -> PinAuthorizer.authorize.

        Raises:
            BiometricUnavailable: No capable device or not enabled for user_id
            BiometricFailed: Capture cancelled or device error
            SetupIncomplete: Sealed PIN missing or unreadable; re-enroll
            PinLockError / IncorrectPin / AuthorizationUnavailable: from the authorizer
        """
        if user_id != self.authorizer.user_id:
            raise ValueError("Biometric bridge is bound to a different user session")

        if not await self.is_available(user_id):
            record_biometric("unavailable")
            raise BiometricUnavailable("Biometric authorization is not enabled")

        # No point prompting while the authorizer would refuse anyway
        if self.authorizer.is_locked():
            raise PinLockError(self.authorizer.store.locked_until)

        try:
            outcome = await self._capture()
            if outcome is CaptureOutcome.CANCELLED:
                raise BiometricFailed("cancelled")
            if outcome is not CaptureOutcome.SUCCESS:
                raise BiometricFailed("device_error")
        except BiometricFailed:
            record_biometric("failed")
            raise

        try:
            pin = await self.secrets.get_sealed_pin(user_id)
        except Exception as e:
            record_biometric("setup_incomplete")
            raise SetupIncomplete("Sealed PIN could not be read; re-enroll biometrics") from e
        if not pin:
            record_biometric("setup_incomplete")
            raise SetupIncomplete("No sealed PIN for this user; re-enroll biometrics")

        token = await self.authorizer.authorize(pin)
        record_biometric("authorized")
        return token

    async def _capture(self) -> CaptureOutcome:
        try:
            return await self.capture.capture(self.prompt)
        except asyncio.CancelledError as e:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # Device-side dismissal surfaced as a cancellation
            raise BiometricFailed("cancelled") from e
        except BiometricFailed:
            raise
        except Exception as e:
            raise BiometricFailed(f"device_error: {e}") from e
