"""Display helpers for checkout screens.

Only used when rendering; requests always carry the unformatted decimal
strings.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from intentpay.models import SwapState

STATUS_MESSAGES = {
    SwapState.PENDING: "Preparing payment...",
    SwapState.QUOTE_GENERATED: "Quote generated, waiting for deposit...",
    SwapState.DEPOSIT_DETECTED: "Deposit detected, processing...",
    SwapState.KNOWN_DEPOSIT_TX: "Processing your payment...",
    SwapState.PROCESSING: "Executing cross-chain swap...",
    SwapState.COMPLETED: "Payment completed successfully!",
    SwapState.FAILED: "Payment failed",
    SwapState.REFUNDED: "Payment refunded",
}
DEFAULT_STATUS_MESSAGE = "Processing..."


def status_message(state: Optional[SwapState]) -> str:
    """User-friendly message for a swap state."""
    return STATUS_MESSAGES.get(state, DEFAULT_STATUS_MESSAGE)


def format_amount(value: Union[str, Decimal, None], decimals: int = 6) -> str:
    """Format an amount with a fixed number of decimal places."""
    if value is None or value == "":
        return "0"
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return "0"
    if not amount.is_finite():
        return "0"
    quantum = Decimal(1).scaleb(-decimals)
    return f"{amount.quantize(quantum, rounding=ROUND_HALF_UP):f}"
