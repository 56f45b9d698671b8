"""In-memory registry of checkout sessions.

Sessions that are not mid-operation are dropped once they have not been
touched for ``session_ttl_seconds``. Expired sessions are swept whenever a
new session is created.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from intentpay.client import SwapClient
from intentpay.config import get_settings
from intentpay.models import SwapStatus
from intentpay.orchestrator import SessionState, SwapOrchestrator
from intentpay.utils.locks import discard_session_lock

logger = logging.getLogger(__name__)

# Sessions in these states have work in flight and are never evicted
_BUSY_STATES = (SessionState.QUOTING, SessionState.SUBMITTING, SessionState.POLLING)


class SessionRegistry:
    """One SwapOrchestrator per checkout session, sharing a SwapClient."""

    def __init__(
        self,
        client: Optional[SwapClient] = None,
        session_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client or SwapClient()
        self.session_ttl_seconds = (
            session_ttl_seconds
            if session_ttl_seconds is not None
            else get_settings().session_ttl_seconds
        )
        self._clock = clock
        self._sessions: dict[str, SwapOrchestrator] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> tuple[str, SwapOrchestrator]:
        self.evict_expired()

        session_id = uuid.uuid4().hex
        orchestrator = SwapOrchestrator(
            client=self.client,
            on_success=lambda status: self._log_success(session_id, status),
            on_error=lambda error: self._log_failure(session_id, error),
        )
        self._sessions[session_id] = orchestrator
        self._last_seen[session_id] = self._clock()
        logger.info(f"Checkout session created: {session_id}")
        return session_id, orchestrator

    def get(self, session_id: str) -> Optional[SwapOrchestrator]:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is not None:
            self._last_seen[session_id] = self._clock()
        return orchestrator

    def discard(self, session_id: str) -> bool:
        orchestrator = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if orchestrator is None:
            return False
        orchestrator.reset()
        discard_session_lock(session_id)
        logger.info(f"Checkout session closed: {session_id}")
        return True

    def evict_expired(self) -> int:
        """Drop idle or settled sessions not touched within the TTL.

        Returns:
            Number of sessions evicted
        """
        cutoff = self._clock() - self.session_ttl_seconds
        expired = [
            session_id
            for session_id, orchestrator in self._sessions.items()
            if self._last_seen.get(session_id, 0.0) <= cutoff
            and orchestrator.state not in _BUSY_STATES
        ]
        for session_id in expired:
            self.discard(session_id)
        if expired:
            logger.info(f"Evicted {len(expired)} expired checkout sessions")
        return len(expired)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.discard(session_id)

    @staticmethod
    def _log_success(session_id: str, status: SwapStatus) -> None:
        hashes = [tx.hash for tx in status.destination_chain_tx_hashes]
        logger.info(f"Session {session_id}: swap {status.tracking_id} completed {hashes}")

    @staticmethod
    def _log_failure(session_id: str, error: Exception) -> None:
        logger.warning(f"Session {session_id}: swap failed: {error}")
