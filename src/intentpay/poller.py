"""Swap status poller.

Repeatedly queries the swap status endpoint on a fixed cadence until the swap
reaches a terminal state or the attempt budget runs out, forwarding every
observed status to a caller-supplied sink.

Ticks are timer-scheduled with ``loop.call_later``. Each timer and each
returning status request carries the generation it was started under;
``stop()`` bumps the generation, so a late timer or a late response can never
reach the sink after ``stop()`` returns.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from intentpay.config import get_settings
from intentpay.errors import (
    TRANSIENT_ERRORS,
    IntentPayError,
    PollerBusyError,
    PollingTimeoutError,
    SwapTerminatedError,
)
from intentpay.models import SwapState, SwapStatus

logger = logging.getLogger(__name__)

StatusSink = Callable[[SwapStatus], None]


class PollerState(str, Enum):
    """Lifecycle of one polling run."""

    ARMED = "armed"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    STOPPED = "stopped"


class StatusPoller:
    """Polls one swap at a time.

    Example:
        poller = StatusPoller(client)
        final = await poller.start(handle.tracking_id, on_status)
    """

    def __init__(
        self,
        client,
        interval_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        """Initialize the poller.

        Args:
            client: Object exposing ``async fetch_status(tracking_id)``
            interval_ms: Default delay between ticks (defaults to settings)
            max_attempts: Default attempt budget (defaults to settings)
        """
        settings = get_settings()
        self.client = client
        self.default_interval_ms = interval_ms if interval_ms is not None else settings.poll_interval_ms
        self.default_max_attempts = max_attempts if max_attempts is not None else settings.max_poll_attempts

        self.state = PollerState.ARMED
        self.tracking_id: Optional[str] = None
        self.attempts = 0
        self.last_status: Optional[SwapStatus] = None
        self.last_error: Optional[Exception] = None

        self._interval_ms = self.default_interval_ms
        self._max_attempts = self.default_max_attempts
        self._sink: Optional[StatusSink] = None
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._future: Optional[asyncio.Future] = None

    @property
    def is_polling(self) -> bool:
        return self.state == PollerState.POLLING

    @property
    def progress(self) -> float:
        """Share of the attempt budget consumed, 0 to 100."""
        if self._max_attempts <= 0:
            return 0.0
        return min(self.attempts / self._max_attempts * 100, 100.0)

    @property
    def estimated_time_remaining(self) -> float:
        """Seconds left before the attempt budget runs out (0 when idle)."""
        if not self.is_polling:
            return 0.0
        return max(0, self._max_attempts - self.attempts) * self._interval_ms / 1000

    def start(
        self,
        tracking_id: str,
        sink: StatusSink,
        interval_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> asyncio.Future:
        """Begin polling ``tracking_id``.

        Returns a future that resolves with the COMPLETED status, or fails
        with SwapTerminatedError, PollingTimeoutError or a non-transient
        client error. Calling again for the same swap while polling returns
        the same future.

        Raises:
            PollerBusyError: already polling a different swap
        """
        if self.is_polling:
            if tracking_id == self.tracking_id:
                logger.debug(f"Already polling swap {tracking_id}")
                return self._future
            raise PollerBusyError(
                f"Already polling swap {self.tracking_id}, cannot start {tracking_id}"
            )

        loop = asyncio.get_running_loop()
        self._generation += 1
        self.tracking_id = tracking_id
        self.attempts = 0
        self.last_status = None
        self.last_error = None
        self._sink = sink
        self._interval_ms = interval_ms if interval_ms is not None else self.default_interval_ms
        self._max_attempts = max_attempts if max_attempts is not None else self.default_max_attempts
        self._future = loop.create_future()
        self.state = PollerState.POLLING

        logger.info(
            f"Polling swap {tracking_id} every {self._interval_ms}ms "
            f"(max {self._max_attempts} attempts)"
        )
        self._schedule(0)
        return self._future

    def stop(self) -> None:
        """Cancel any pending tick. Safe to call at any time."""
        self._generation += 1

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
        self._task = None

        if self.is_polling:
            logger.info(f"Polling stopped for swap {self.tracking_id} after {self.attempts} attempts")
            self.state = PollerState.STOPPED
        if self._future is not None and not self._future.done():
            self._future.cancel()

    def _schedule(self, delay_ms: int) -> None:
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay_ms / 1000, self._on_timer, self._generation)

    def _on_timer(self, generation: int) -> None:
        self._timer = None
        # Checked at fire time: a cancelled run must not tick again
        if generation != self._generation or not self.is_polling:
            logger.debug("Discarding stale poll timer")
            return
        self._task = asyncio.get_running_loop().create_task(self._tick(generation))

    async def _tick(self, generation: int) -> None:
        self.attempts += 1
        logger.debug(f"Poll {self.attempts}/{self._max_attempts} for swap {self.tracking_id}")

        try:
            status = await self.client.fetch_status(self.tracking_id)
        except TRANSIENT_ERRORS as e:
            if generation != self._generation:
                return
            logger.warning(
                f"Transient error polling swap {self.tracking_id} "
                f"(attempt {self.attempts}): {type(e).__name__}: {e}"
            )
            self.last_error = e
            self._continue_or_time_out()
            return
        except IntentPayError as e:
            if generation != self._generation:
                return
            logger.error(f"Polling swap {self.tracking_id} failed: {e}")
            self._finish(PollerState.FAILED, error=e)
            return
        except Exception as e:
            if generation != self._generation:
                return
            logger.exception(f"Unexpected error polling swap {self.tracking_id}: {type(e).__name__}: {e}")
            self._finish(PollerState.FAILED, error=e)
            return

        if generation != self._generation:
            return

        self.last_status = status
        self._deliver(status)
        # The sink may have stopped us
        if generation != self._generation:
            return

        if status.state is SwapState.COMPLETED:
            logger.info(f"Swap {self.tracking_id} completed after {self.attempts} polls")
            self._finish(PollerState.COMPLETED, result=status)
        elif status.state in (SwapState.FAILED, SwapState.REFUNDED):
            logger.warning(
                f"Swap {self.tracking_id} {status.state.value.lower()}: "
                f"{status.error_message or 'no reason given'}"
            )
            self._finish(
                PollerState.FAILED,
                error=SwapTerminatedError(status.state.value, status.error_message),
            )
        else:
            # Unknown or missing state counts as still in progress
            self._continue_or_time_out()

    def _deliver(self, status: SwapStatus) -> None:
        if self._sink is None:
            return
        try:
            self._sink(status)
        except Exception as e:
            logger.error(f"Status sink raised for swap {self.tracking_id}: {type(e).__name__}: {e}")

    def _continue_or_time_out(self) -> None:
        if self.attempts >= self._max_attempts:
            logger.warning(f"Polling timeout for swap {self.tracking_id} after {self.attempts} attempts")
            error = PollingTimeoutError(self.tracking_id, self.attempts)
            error.__cause__ = self.last_error
            self._finish(PollerState.TIMED_OUT, error=error)
            return
        self._schedule(self._interval_ms)

    def _finish(
        self,
        state: PollerState,
        result: Optional[SwapStatus] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.state = state
        self._task = None
        future = self._future
        if future is None or future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
