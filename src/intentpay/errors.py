"""Error taxonomy for the checkout flow.

The swap client translates every transport or HTTP failure into one of the
``SwapClientError`` subclasses, so nothing above it ever sees an ``httpx``
exception. Poller and orchestrator add the terminal and session errors.
"""

from typing import Optional


class IntentPayError(Exception):
    """Base class for all intentpay errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class SwapClientError(IntentPayError):
    """A classified failure of a swap API call."""


class UnsupportedAssetError(SwapClientError):
    """Asset symbol is not in the registry. Raised before any network call."""

    user_message = "This asset is not supported."

    def __init__(self, symbol: str, message: Optional[str] = None):
        self.symbol = symbol
        super().__init__(message or f"Unsupported asset: {symbol}")


class InvalidQuoteError(SwapClientError):
    """The remote API rejected the parameters, or returned an unusable quote."""

    user_message = "Invalid request parameters"


class RateLimitedError(SwapClientError):
    """HTTP 429 from the remote API."""

    user_message = "Rate limit exceeded. Please try again later."


class ServiceUnavailableError(SwapClientError):
    """HTTP 5xx (or an unreadable body) from the remote API."""

    user_message = "NEAR Intents service is temporarily unavailable"


class NetworkError(SwapClientError):
    """No response was received (DNS failure, timeout, connection reset)."""

    user_message = "Network error. Please check your connection."


# Errors the status poller absorbs as a consumed attempt
TRANSIENT_ERRORS = (NetworkError, ServiceUnavailableError, RateLimitedError)


class SwapTerminatedError(IntentPayError):
    """The remote API reported the swap as FAILED or REFUNDED."""

    user_message = "Payment failed"

    def __init__(self, state: str, remote_message: Optional[str] = None):
        self.state = state
        self.remote_message = remote_message
        detail = remote_message or "Unknown error"
        super().__init__(f"Swap {state.lower()}: {detail}")


class PollingTimeoutError(IntentPayError):
    """Attempt budget exhausted without reaching a terminal state."""

    user_message = "Polling timeout - payment may still be processing"

    def __init__(self, tracking_id: str, attempts: int):
        self.tracking_id = tracking_id
        self.attempts = attempts
        super().__init__(
            f"Swap {tracking_id} still not settled after {attempts} status checks"
        )


class PollerBusyError(IntentPayError):
    """Poller is already tracking a different swap."""


class SessionStateError(IntentPayError):
    """Operation not allowed in the current session state."""


class SessionResetError(SessionStateError):
    """Session was reset while the operation was in flight."""

    user_message = "The payment was cancelled."


class WalletNotConnectedError(IntentPayError):
    """No wallet address was supplied."""

    user_message = "Please connect your wallet to continue with the payment"


def user_message_for(error: BaseException) -> str:
    """Human-readable message for a failure shown to the payer.

    Remote-provided text wins where the API sent one; otherwise the fixed
    fallback of the error class is used.
    """
    if isinstance(error, SwapTerminatedError) and error.remote_message:
        return error.remote_message
    if isinstance(error, InvalidQuoteError) and error.args and error.args[0]:
        return str(error.args[0])
    if isinstance(error, IntentPayError):
        return error.user_message
    return IntentPayError.user_message
