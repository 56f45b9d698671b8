"""Checkout session driver.

Holds the single live quote and swap handle of one payer session and walks
them through quoting, submission and status polling:

    idle -> quoting -> quoted -> submitting -> polling -> completed
                     (any non-idle state) -> failed
                     (any state) -> idle on reset()

The orchestrator assumes one control flow issuing one operation at a time.
Callers that share an instance between tasks must serialise access
themselves (see ``intentpay.utils.locks``).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Union

from intentpay import assets
from intentpay.client import SwapClient
from intentpay.config import get_settings
from intentpay.errors import (
    IntentPayError,
    InvalidQuoteError,
    SessionResetError,
    SessionStateError,
    WalletNotConnectedError,
    user_message_for,
)
from intentpay.formatting import status_message
from intentpay.models import Quote, QuoteRequest, SwapHandle, SwapStatus
from intentpay.poller import StatusPoller, StatusSink

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Checkout session lifecycle."""

    IDLE = "idle"
    QUOTING = "quoting"
    QUOTED = "quoted"
    SUBMITTING = "submitting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a display layer needs to render the session."""

    state: SessionState
    quote: Optional[Quote]
    handle: Optional[SwapHandle]
    status: Optional[SwapStatus]
    attempts: int
    progress: float
    estimated_time_remaining: float
    status_message: Optional[str]
    error_message: Optional[str]


class SwapOrchestrator:
    """Drives one payer through quote, swap and settlement."""

    def __init__(
        self,
        client: Optional[SwapClient] = None,
        poller: Optional[StatusPoller] = None,
        on_success: Optional[Callable[[SwapStatus], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        slippage_tolerance_bps: Optional[int] = None,
        quote_deadline_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.client = client or SwapClient()
        self.poller = poller or StatusPoller(self.client)
        self.on_success = on_success
        self.on_error = on_error
        self.slippage_tolerance_bps = (
            slippage_tolerance_bps
            if slippage_tolerance_bps is not None
            else settings.slippage_tolerance_bps
        )
        self.quote_deadline_minutes = quote_deadline_minutes or settings.quote_deadline_minutes

        self.state = SessionState.IDLE
        self.quote: Optional[Quote] = None
        self.handle: Optional[SwapHandle] = None
        self.status: Optional[SwapStatus] = None
        self.error: Optional[Exception] = None

        self._observers: list[StatusSink] = []
        self._session = 0
        self._tracking: Optional[asyncio.Task] = None

    # ======================
    # Observers
    # ======================

    def add_observer(self, callback: StatusSink) -> None:
        """Receive every status update of the tracked swap."""
        self._observers.append(callback)

    def remove_observer(self, callback: StatusSink) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _publish(self, status: SwapStatus) -> None:
        self.status = status
        for observer in list(self._observers):
            try:
                observer(status)
            except Exception as e:
                logger.error(f"Status observer raised: {type(e).__name__}: {e}")

    # ======================
    # Operations
    # ======================

    async def request_quote(
        self,
        from_symbol: str,
        to_symbol: str,
        amount: Union[str, Decimal],
        user_address: str,
    ) -> Quote:
        """Quote ``amount`` of ``from_symbol`` into ``to_symbol``.

        Allowed from idle, or from quoted (the previous quote is dropped).
        On failure the session moves to failed and the classified error is
        raised; it is never retried automatically.
        """
        self._require(SessionState.IDLE, SessionState.QUOTED)
        self.quote = None
        session = self._session
        self._transition(SessionState.QUOTING)

        try:
            request = self._build_request(from_symbol, to_symbol, amount, user_address)
            quote = await self.client.request_quote(request)
        except IntentPayError as e:
            if session != self._session:
                raise SessionResetError() from e
            self._record_failure(e)
            raise

        if session != self._session:
            logger.info("Discarding quote that arrived after reset")
            raise SessionResetError()

        self.quote = quote
        self._transition(SessionState.QUOTED)
        return quote

    async def confirm(self, user_address: str) -> SwapHandle:
        """Submit the held quote and start tracking the swap.

        Returns once the swap is submitted; settlement is reported through
        observers, ``on_success`` / ``on_error`` and ``wait()``.
        """
        self._require(SessionState.QUOTED)
        quote = self.quote
        session = self._session
        self._transition(SessionState.SUBMITTING)

        try:
            address = _require_address(user_address)
            handle = await self.client.submit_swap(quote, address)
        except IntentPayError as e:
            if session != self._session:
                raise SessionResetError() from e
            self._record_failure(e)
            raise

        if session != self._session:
            logger.info(f"Swap {handle.tracking_id} submitted after reset, not tracking it")
            raise SessionResetError()

        self.handle = handle
        self._transition(SessionState.POLLING)
        future = self.poller.start(handle.tracking_id, self._publish)
        self._tracking = asyncio.ensure_future(self._track(session, future))
        return handle

    async def wait(self) -> SwapStatus:
        """Wait for the tracked swap to settle.

        Returns the COMPLETED status or raises the poll error. Cancelling the
        waiter does not cancel polling.
        """
        task = self._tracking
        if task is None:
            raise SessionStateError("No swap is being tracked")
        try:
            status, error = await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise SessionResetError("Session was reset while polling")
            raise
        if error is not None:
            raise error
        return status

    def reset(self) -> None:
        """Return to idle from any state, cancelling an active poll."""
        self._session += 1
        self.poller.stop()
        if self._tracking is not None and not self._tracking.done():
            self._tracking.cancel()
        self._tracking = None
        self.quote = None
        self.handle = None
        self.status = None
        self.error = None
        if self.state != SessionState.IDLE:
            self._transition(SessionState.IDLE)

    # ======================
    # Introspection
    # ======================

    @property
    def error_message(self) -> Optional[str]:
        """Message to show the payer for the current failure, if any."""
        if self.error is None:
            return None
        return user_message_for(self.error)

    def snapshot(self) -> SessionSnapshot:
        tracking = self.handle is not None
        return SessionSnapshot(
            state=self.state,
            quote=self.quote,
            handle=self.handle,
            status=self.status,
            attempts=self.poller.attempts if tracking else 0,
            progress=self.poller.progress if tracking else 0.0,
            estimated_time_remaining=self.poller.estimated_time_remaining if tracking else 0.0,
            status_message=status_message(self.status.state) if self.status else None,
            error_message=self.error_message,
        )

    # ======================
    # Internals
    # ======================

    def _build_request(
        self,
        from_symbol: str,
        to_symbol: str,
        amount: Union[str, Decimal],
        user_address: str,
    ) -> QuoteRequest:
        if isinstance(amount, float):
            raise InvalidQuoteError("Amounts must be given as decimal strings")
        address = _require_address(user_address)
        return QuoteRequest(
            origin_asset=assets.get_asset(from_symbol),
            destination_asset=assets.get_asset(to_symbol),
            amount=_amount_string(amount),
            recipient=address,
            refund_to=address,
            slippage_tolerance_bps=self.slippage_tolerance_bps,
            deadline=datetime.now(timezone.utc) + timedelta(minutes=self.quote_deadline_minutes),
            dry_run=True,
        )

    async def _track(
        self, session: int, future: asyncio.Future
    ) -> tuple[Optional[SwapStatus], Optional[Exception]]:
        """Settle the session from the poll outcome.

        The outcome is returned rather than raised so an unobserved failure
        does not surface as an unretrieved task exception.
        """
        try:
            status = await future
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if session == self._session:
                self._record_failure(e)
                if self.on_error:
                    self.on_error(e)
            return None, e

        if session == self._session:
            self.status = status
            self._transition(SessionState.COMPLETED)
            if self.on_success:
                self.on_success(status)
        return status, None

    def _record_failure(self, error: Exception) -> None:
        logger.warning(f"Checkout failed in state {self.state.value}: {type(error).__name__}: {error}")
        self.error = error
        self._transition(SessionState.FAILED)

    def _transition(self, new_state: SessionState) -> None:
        logger.info(f"Checkout session: {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise SessionStateError(
                f"Operation not allowed in state {self.state.value} (expected {allowed})"
            )


def _amount_string(amount: Union[str, Decimal]) -> str:
    if isinstance(amount, Decimal) and amount.is_finite():
        return format(amount, "f")
    return str(amount).strip()


def _require_address(address: Optional[str]) -> str:
    if not address or not address.strip():
        raise WalletNotConnectedError()
    return address.strip()
