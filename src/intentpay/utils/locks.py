"""Concurrency control for checkout sessions.

A checkout session accepts one operation at a time; these per-session locks
serialise requests that target the same session.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: session_id -> asyncio.Lock
_session_locks: dict[str, asyncio.Lock] = {}


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_session_lock(session_id: str) -> asyncio.Lock:
    """Get or create the lock for a checkout session."""
    lock = _session_locks.get(session_id)
    if lock is None:
        lock = _session_locks[session_id] = asyncio.Lock()
    return lock


def discard_session_lock(session_id: str) -> None:
    """Forget the lock of a session that no longer exists."""
    _session_locks.pop(session_id, None)


@asynccontextmanager
async def session_lock(
    session_id: str,
    timeout: Optional[float] = 30.0,
    operation: str = "checkout_operation",
):
    """Exclusive access to one checkout session.

    Args:
        session_id: Checkout session ID
        timeout: Maximum time to wait for lock (None = wait forever)
        operation: Description for logging

    Example:
        async with session_lock(session_id, operation="confirm"):
            await orchestrator.confirm(address)
    """
    lock = get_session_lock(session_id)

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for session {session_id}: {operation}")
        raise LockTimeoutError(
            f"Could not acquire lock for session {session_id} within {timeout}s"
        )

    logger.debug(f"Lock acquired for session {session_id}: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for session {session_id}: {operation}")


def clear_session_locks() -> None:
    """Clear all session locks (useful for testing)."""
    _session_locks.clear()
