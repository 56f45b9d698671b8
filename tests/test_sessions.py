"""Tests for the checkout session registry."""

import pytest

from intentpay.api.sessions import SessionRegistry
from intentpay.orchestrator import SessionState
from intentpay.utils.locks import _session_locks, get_session_lock


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(intents_api, clock):
    registry = SessionRegistry(intents_api.client(), session_ttl_seconds=60, clock=clock)
    yield registry
    registry.close_all()


class TestSessionEviction:
    """Tests for dropping abandoned sessions."""

    @pytest.mark.asyncio
    async def test_expired_idle_session_is_evicted_on_create(self, registry, clock):
        """Test an untouched idle session is dropped together with its lock."""
        old_id, _ = registry.create()
        get_session_lock(old_id)

        clock.now += 61
        new_id, _ = registry.create()

        assert registry.get(old_id) is None
        assert registry.get(new_id) is not None
        assert len(registry) == 1
        assert old_id not in _session_locks

    @pytest.mark.asyncio
    async def test_recently_used_session_survives(self, registry, clock):
        """Test every lookup refreshes the session's TTL."""
        session_id, _ = registry.create()

        clock.now += 50
        registry.get(session_id)
        clock.now += 50
        registry.create()

        assert registry.get(session_id) is not None
        assert len(registry) == 2

    @pytest.mark.asyncio
    async def test_settled_sessions_are_evicted(self, registry, clock):
        """Test completed and failed sessions expire like idle ones."""
        completed_id, completed = registry.create()
        failed_id, failed = registry.create()
        completed.state = SessionState.COMPLETED
        failed.state = SessionState.FAILED

        clock.now += 120

        assert registry.evict_expired() == 2
        assert len(registry) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "state", [SessionState.QUOTING, SessionState.SUBMITTING, SessionState.POLLING]
    )
    async def test_busy_session_is_kept(self, registry, clock, state):
        """Test sessions with work in flight are never evicted."""
        session_id, orchestrator = registry.create()
        orchestrator.state = state

        clock.now += 3600

        assert registry.evict_expired() == 0
        assert registry.get(session_id) is orchestrator

    @pytest.mark.asyncio
    async def test_default_ttl_comes_from_settings(self, intents_api):
        """Test the TTL defaults to the configured value."""
        registry = SessionRegistry(intents_api.client())

        assert registry.session_ttl_seconds == 3600
