"""Domain-specific exceptions"""

from datetime import datetime


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


# PIN authorization


class PinLockError(DomainException):
    """Session is locked after too many wrong PINs; recoverable by waiting"""

    def __init__(self, unlock_at: datetime):
        super().__init__(f"PIN entry locked until {unlock_at.isoformat()}")
        self.unlock_at = unlock_at


class IncorrectPin(DomainException):
    """Verifier rejected the PIN; counts towards the lockout"""

    def __init__(self, attempts_remaining: int):
        super().__init__(f"Incorrect PIN, {attempts_remaining} attempt(s) remaining")
        self.attempts_remaining = attempts_remaining


class AuthorizationUnavailable(DomainException):
    """Verifier unreachable or erroring; does not affect lockout state"""

    pass


class AuthorizationCancelled(DomainException):
    """Pending authorization was torn down before it resolved"""

    def __init__(self, reason: str = "cancelled"):
        super().__init__(f"Authorization cancelled: {reason}")
        self.reason = reason


# Credential verifier outcomes


class PinRejected(DomainException):
    """Verifier verdict: the PIN is wrong"""

    pass


class VerifierUnavailable(DomainException):
    """Verifier call failed without a verdict (timeout, transport, 5xx)"""

    pass


# Biometrics


class BiometricUnavailable(DomainException):
    """Device cannot capture biometrics or the user has not enabled them"""

    pass


class BiometricFailed(DomainException):
    """Capture was cancelled or failed at device level"""

    def __init__(self, reason: str):
        super().__init__(f"Biometric authentication failed: {reason}")
        self.reason = reason


class SetupIncomplete(DomainException):
    """Biometric enrollment exists but the sealed PIN is missing or unreadable"""

    pass


class InvalidPinFormat(DomainException, ValueError):
    """PIN is not a 4-digit numeric code"""

    pass


# Round-ups


class InvalidRoundUpRule(DomainException, ValueError):
    """Round-up rule fields are inconsistent"""

    pass


# Payment submission


class PaymentRejected(DomainException):
    """Payment API refused the charge"""

    code = "PAYMENT_REJECTED"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code


class InsufficientFunds(PaymentRejected):
    code = "INSUFFICIENT_FUNDS"


class TokenExpired(PaymentRejected):
    code = "TOKEN_EXPIRED"


class DailyLimitExceeded(PaymentRejected):
    code = "DAILY_LIMIT_EXCEEDED"


class SelfTransferNotAllowed(PaymentRejected):
    code = "SELF_TRANSFER_NOT_ALLOWED"


class GatewayUnavailable(PaymentRejected):
    code = "GATEWAY_UNAVAILABLE"


PAYMENT_REJECTIONS = {
    cls.code: cls
    for cls in (InsufficientFunds, TokenExpired, DailyLimitExceeded, SelfTransferNotAllowed, GatewayUnavailable)
}


class HistoryUnavailable(DomainException):
    """Recent transaction history could not be read"""

    pass
