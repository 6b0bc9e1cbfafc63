"""Shared fixtures for unit tests."""

from __future__ import annotations

import pytest

from sports_api.auth.gate import AuthGate
from sports_api.auth.key_store import KeyStore
from sports_api.services.rate_limiter import RateLimiter
from sports_api.services.usage_recorder import UsageRecorder
from tests.fakes import FrozenClock, FakeKeyStorage


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def storage() -> FakeKeyStorage:
    return FakeKeyStorage()


@pytest.fixture
def key_store(storage: FakeKeyStorage, clock: FrozenClock) -> KeyStore:
    return KeyStore(storage, cache_ttl=5.0, lookup_timeout=0.5, clock=clock)


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(window_seconds=60, shards=8)


@pytest.fixture
def usage_recorder(storage: FakeKeyStorage, clock: FrozenClock) -> UsageRecorder:
    return UsageRecorder(storage, maxsize=16, flush_interval=0.01, write_timeout=0.5, clock=clock)


@pytest.fixture
def gate(
    key_store: KeyStore,
    rate_limiter: RateLimiter,
    usage_recorder: UsageRecorder,
    clock: FrozenClock,
) -> AuthGate:
    return AuthGate(key_store, rate_limiter, usage_recorder, clock=clock)
