"""Unit tests for session-scoped PIN state"""

from datetime import timedelta
from savings_gateway.services.token_store import PinTokenStore


def test_token_valid_until_expiry(store: PinTokenStore, clock):
    store.record_success("tok-1", ttl_seconds=60)

    clock.advance(59)
    assert store.current_token() == "tok-1"

    clock.advance(1)
    assert store.current_token() is None
    assert store.session.token_expires_at is None


def test_third_failure_locks(store: PinTokenStore, clock):
    """Test default tiers lock for 30s on the third failure"""
    store.record_failure()
    store.record_failure()
    assert not store.is_locked()

    store.record_failure()

    assert store.is_locked()
    assert store.locked_until == clock.now + timedelta(seconds=30)
    assert store.remaining_lock_seconds() == 30


def test_remaining_seconds_count_down(store: PinTokenStore, clock):
    for _ in range(3):
        store.record_failure()

    clock.advance(10.5)
    assert store.remaining_lock_seconds() == 20  # Rounded up

    clock.advance(19.5)
    assert store.remaining_lock_seconds() == 0
    assert not store.is_locked()


def test_failure_clears_token(store: PinTokenStore):
    store.record_success("tok-1", ttl_seconds=60)

    store.record_failure()

    assert store.current_token() is None


def test_success_resets_attempts(store: PinTokenStore):
    store.record_failure()
    store.record_failure()

    store.record_success("tok-1", ttl_seconds=60)

    assert store.failed_attempts == 0
    assert store.locked_until is None


def test_locked_session_yields_no_token(store: PinTokenStore):
    store.record_success("tok-1", ttl_seconds=600)
    store._session.locked_until = store.clock() + timedelta(seconds=30)

    assert store.current_token() is None


def test_consume_token_is_single_use(store: PinTokenStore):
    store.record_success("tok-1", ttl_seconds=60)

    assert store.consume_token() == "tok-1"
    assert store.consume_token() is None


def test_discard_token_only_clears_matching(store: PinTokenStore):
    """Test a newer token issued meanwhile survives discarding an older one"""
    store.record_success("tok-2", ttl_seconds=60)

    store.discard_token("tok-1")
    assert store.current_token() == "tok-2"

    store.discard_token("tok-2")
    assert store.current_token() is None


def test_clear_token_keeps_attempts_and_lock(store: PinTokenStore):
    for _ in range(3):
        store.record_failure()

    store.clear_token()

    assert store.failed_attempts == 3
    assert store.is_locked()


def test_clear_token_drops_token(store: PinTokenStore):
    store.record_success("tok-1", ttl_seconds=60)

    store.clear_token()

    assert store.current_token() is None
    assert store.failed_attempts == 0


def test_session_copy_hides_expired_token(store: PinTokenStore, clock):
    store.record_success("tok-1", ttl_seconds=60)
    clock.advance(60)

    snapshot = store.session

    assert snapshot.current_token is None
    assert snapshot.token_expires_at is None


def test_session_is_a_copy(store: PinTokenStore):
    snapshot = store.session
    snapshot.failed_attempts = 99

    assert store.failed_attempts == 0
