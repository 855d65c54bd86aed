"""Pytest fixtures for testing"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from savings_gateway.api.main import create_app
from savings_gateway.domain.exceptions import HistoryUnavailable, PinRejected
from savings_gateway.domain.lockout import LockoutPolicy
from savings_gateway.domain.models import AuthorizedChargeRequest, PaymentIntent, PaymentResult, PinGrant
from savings_gateway.domain.ports import CaptureOutcome
from savings_gateway.infrastructure.database.models import Base
from savings_gateway.infrastructure.database.session import get_db
from savings_gateway.services.authorizer import PinAuthorizer
from savings_gateway.services.biometric import BiometricBridge
from savings_gateway.services.token_store import PinTokenStore

CORRECT_PIN = "1234"


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


class FakeClock:
    """Manually advanced UTC clock"""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeVerifier:
    """Grants CORRECT_PIN, rejects anything else; `error` overrides both"""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self.calls: List[tuple] = []
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def verify(self, user_id: str, pin: str) -> PinGrant:
        self.calls.append((user_id, pin))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if pin != CORRECT_PIN:
            raise PinRejected("wrong pin")
        return PinGrant(token=f"tok-{len(self.calls)}", ttl_seconds=self.ttl_seconds)


class FakeBiometricCapture:
    def __init__(self):
        self.available = True
        self.outcome = CaptureOutcome.SUCCESS
        self.error: BaseException | None = None
        self.hang = False
        self.was_cancelled = False
        self.prompts: List[str] = []

    async def is_available(self) -> bool:
        return self.available

    async def capture(self, prompt: str) -> CaptureOutcome:
        self.prompts.append(prompt)
        if self.hang:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.was_cancelled = True
                raise
        if self.error is not None:
            raise self.error
        return self.outcome


class FakeSecretStore:
    def __init__(self):
        self.pins: Dict[str, str] = {}
        self.enabled: Dict[str, bool] = {}
        self.fail_reads = False

    async def get_sealed_pin(self, user_id: str) -> str | None:
        if self.fail_reads:
            raise OSError("keystore entry invalidated")
        return self.pins.get(user_id)

    async def set_sealed_pin(self, user_id: str, pin: str) -> None:
        self.pins[user_id] = pin

    async def clear_sealed_pin(self, user_id: str) -> None:
        self.pins.pop(user_id, None)

    async def is_biometric_enabled(self, user_id: str) -> bool:
        return self.enabled.get(user_id, False)

    async def set_biometric_enabled(self, user_id: str, enabled: bool) -> None:
        self.enabled[user_id] = enabled


class FakePaymentGateway:
    """Records every submitted charge; raises `error` when set"""

    def __init__(self):
        self.submissions: List[tuple] = []
        self.error: Exception | None = None

    @property
    def tokens(self) -> List[str]:
        return [charge.pin_token for _, charge in self.submissions]

    async def submit(self, intent: PaymentIntent, charge: AuthorizedChargeRequest) -> PaymentResult:
        self.submissions.append((intent, charge))
        if self.error is not None:
            raise self.error
        return PaymentResult(
            intent_id=intent.intent_id,
            status="success",
            settlement_id=f"stl-{len(self.submissions)}",
            reference=None,
            charge=charge,
        )


class FakePinPrompt:
    def __init__(self, pin: str = CORRECT_PIN):
        self.pin = pin
        self.requests: List[str] = []

    async def request_pin(self, user_id: str) -> str:
        self.requests.append(user_id)
        return self.pin


class FakeHistory:
    def __init__(self, amounts: List[int] | None = None):
        self.amounts = amounts or []
        self.available = True
        self.windows: List[int] = []

    async def recent_spend_amounts(self, user_id: str, window_days: int) -> List[int]:
        self.windows.append(window_days)
        if not self.available:
            raise HistoryUnavailable("history service down")
        return list(self.amounts)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def store(clock: FakeClock) -> PinTokenStore:
    """Token store on the default tiers: 3 -> 30s, 5 -> 5min, 8 -> 30min"""
    return PinTokenStore(policy=LockoutPolicy(), clock=clock)


@pytest.fixture
def authorizer(verifier: FakeVerifier, store: PinTokenStore) -> PinAuthorizer:
    return PinAuthorizer(
        user_id="user_1",
        verifier=verifier,
        store=store,
        max_displayed_attempts=3,
        default_ttl_seconds=120,
    )


@pytest.fixture
def capture() -> FakeBiometricCapture:
    return FakeBiometricCapture()


@pytest.fixture
def secrets() -> FakeSecretStore:
    return FakeSecretStore()


@pytest.fixture
def bridge(authorizer: PinAuthorizer, capture: FakeBiometricCapture, secrets: FakeSecretStore) -> BiometricBridge:
    return BiometricBridge(authorizer, capture, secrets, prompt="Confirm payment")


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def pin_prompt() -> FakePinPrompt:
    return FakePinPrompt()


@pytest.fixture
def history() -> FakeHistory:
    return FakeHistory()
