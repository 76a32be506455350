from datetime import timedelta

import pytest

from conftest import T0
from wallet_signin.challenge_store import ChallengeStore
from wallet_signin.exceptions import NonceAlreadyConsumed


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ChallengeStore(ttl_seconds=300, clock=clock)


def test_issue_and_read_nonce(store):
    nonce = store.issue_nonce("session-a")
    assert nonce.isalnum()
    assert len(nonce) >= 8
    assert store.current_nonce("session-a") == nonce
    assert store.current_nonce("session-b") is None


def test_nonces_are_per_session(store):
    first = store.issue_nonce("session-a")
    second = store.issue_nonce("session-b")
    assert first != second
    assert store.current_nonce("session-a") == first


def test_reissue_replaces_previous_nonce(store):
    old = store.issue_nonce("session-a")
    new = store.issue_nonce("session-a")
    assert store.current_nonce("session-a") == new
    with pytest.raises(NonceAlreadyConsumed):
        store.consume_nonce("session-a", expected_nonce=old)


def test_consume_is_single_use(store):
    nonce = store.issue_nonce("session-a")
    store.consume_nonce("session-a", expected_nonce=nonce)
    assert store.current_nonce("session-a") is None
    with pytest.raises(NonceAlreadyConsumed):
        store.consume_nonce("session-a")


def test_expired_nonce_is_absent(store, clock):
    store.issue_nonce("session-a")
    clock.advance(301)
    assert store.current_nonce("session-a") is None
    with pytest.raises(NonceAlreadyConsumed):
        store.consume_nonce("session-a")


def test_cleanup_expired_nonces(store, clock):
    store.issue_nonce("session-a")
    clock.advance(200)
    store.issue_nonce("session-b")
    clock.advance(150)

    assert store.cleanup_expired_nonces() == 1
    assert store.current_nonce("session-a") is None
    assert store.current_nonce("session-b") is not None
