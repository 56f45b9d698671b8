"""Utility modules for intentpay."""

from intentpay.utils.locks import (
    LockTimeoutError,
    clear_session_locks,
    get_session_lock,
    session_lock,
)

__all__ = [
    "LockTimeoutError",
    "clear_session_locks",
    "get_session_lock",
    "session_lock",
]
