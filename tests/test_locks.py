"""Tests for checkout session locks."""

import asyncio

import pytest

from intentpay.utils.locks import (
    LockTimeoutError,
    clear_session_locks,
    get_session_lock,
    session_lock,
)


class TestSessionLocks:
    """Tests for the concurrency locks module."""

    @pytest.fixture(autouse=True)
    def setup(self):
        """Clear locks before each test."""
        clear_session_locks()

    def test_get_session_lock_reuses_lock(self):
        """Test that the same session always gets the same lock."""
        assert get_session_lock("a") is get_session_lock("a")

    def test_different_sessions_get_different_locks(self):
        """Test that different sessions get different locks."""
        assert get_session_lock("a") is not get_session_lock("b")

    @pytest.mark.asyncio
    async def test_lock_released_after_context(self):
        """Test session_lock releases on exit."""
        async with session_lock("s1", operation="test"):
            assert get_session_lock("s1").locked()

        assert not get_session_lock("s1").locked()

    @pytest.mark.asyncio
    async def test_lock_released_on_error(self):
        """Test session_lock releases when the body raises."""
        with pytest.raises(ValueError):
            async with session_lock("s1"):
                raise ValueError("boom")

        assert not get_session_lock("s1").locked()

    @pytest.mark.asyncio
    async def test_lock_serialises_operations(self):
        """Test that the lock prevents interleaving on one session."""
        results = []

        async def task(name):
            async with session_lock("s2", timeout=10.0, operation=f"task_{name}"):
                results.append(f"{name}_start")
                await asyncio.sleep(0.05)
                results.append(f"{name}_end")

        await asyncio.gather(task("A"), task("B"))

        assert results in [
            ["A_start", "A_end", "B_start", "B_end"],
            ["B_start", "B_end", "A_start", "A_end"],
        ]

    @pytest.mark.asyncio
    async def test_lock_timeout_raises_error(self):
        """Test that lock timeout raises LockTimeoutError."""

        async def hold_lock():
            async with session_lock("s3", timeout=5.0):
                await asyncio.sleep(0.5)

        hold_task = asyncio.create_task(hold_lock())
        await asyncio.sleep(0.05)

        with pytest.raises(LockTimeoutError):
            async with session_lock("s3", timeout=0.1):
                pass

        await hold_task
