"""Domain types for quotes, swaps and swap status."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)

# 1Click request constants
SWAP_TYPE_EXACT_INPUT = "EXACT_INPUT"
DEPOSIT_TYPE_ORIGIN_CHAIN = "ORIGIN_CHAIN"
RECIPIENT_TYPE_DESTINATION_CHAIN = "DESTINATION_CHAIN"


@dataclass(frozen=True)
class AssetDescriptor:
    """An asset the 1Click API can route."""

    symbol: str  # e.g., "ETH", "USDC_SOL"
    remote_identifier: str  # e.g., "nep141:eth-0x....omft.near"
    display_name: str
    network: str


@dataclass(frozen=True)
class QuoteRequest:
    """Parameters of a single quote attempt. Immutable once sent."""

    origin_asset: AssetDescriptor
    destination_asset: AssetDescriptor
    amount: str  # decimal string, never a float
    recipient: str
    refund_to: str
    slippage_tolerance_bps: int
    deadline: datetime
    dry_run: bool = True

    def to_payload(self, referral: str, quote_waiting_time_ms: int) -> dict:
        """Render the POST /quote body."""
        return {
            "dry": self.dry_run,
            "swapType": SWAP_TYPE_EXACT_INPUT,
            "slippageTolerance": self.slippage_tolerance_bps,
            "originAsset": self.origin_asset.remote_identifier,
            "depositType": DEPOSIT_TYPE_ORIGIN_CHAIN,
            "destinationAsset": self.destination_asset.remote_identifier,
            "amount": self.amount,
            "refundTo": self.refund_to,
            "refundType": DEPOSIT_TYPE_ORIGIN_CHAIN,
            "recipient": self.recipient,
            "virtualChainRecipient": self.recipient,
            "virtualChainRefundRecipient": self.refund_to,
            "recipientType": RECIPIENT_TYPE_DESTINATION_CHAIN,
            "deadline": _iso8601(self.deadline),
            "referral": referral,
            "quoteWaitingTimeMs": quote_waiting_time_ms,
            "appFees": [],
        }


@dataclass(frozen=True)
class Amount:
    """A quoted amount with its USD equivalent, when the API sent one."""

    value: Decimal
    usd: Optional[Decimal] = None


@dataclass(frozen=True)
class Quote:
    """A signed, time-bounded price offer.

    ``raw`` is the full remote response; it is echoed back verbatim on
    submission, so it must never be edited.
    """

    request: QuoteRequest
    amount_in: Amount
    amount_out: Amount
    time_estimate_seconds: int
    signature: str
    timestamp: str
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def effective_rate(self) -> Decimal:
        """Destination units received per origin unit."""
        if self.amount_in.value == 0:
            return Decimal("0")
        return self.amount_out.value / self.amount_in.value

    @property
    def echoed_request(self) -> dict:
        """The quote request as the remote API recorded it."""
        return self.raw.get("quoteRequest") or {}


@dataclass(frozen=True)
class SwapHandle:
    """Tracking key of a submitted swap."""

    tracking_id: str
    originating_quote: Quote


class SwapState(str, Enum):
    """Swap lifecycle states reported by the status endpoint."""

    PENDING = "PENDING"
    QUOTE_GENERATED = "QUOTE_GENERATED"
    DEPOSIT_DETECTED = "DEPOSIT_DETECTED"
    KNOWN_DEPOSIT_TX = "KNOWN_DEPOSIT_TX"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

    @classmethod
    def parse(cls, value: Any) -> Optional["SwapState"]:
        """Map a remote status string to a state, ``None`` if unrecognised."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            logger.warning(f"Unknown swap status from API: {value!r}")
            return None


TERMINAL_STATES = frozenset({SwapState.COMPLETED, SwapState.FAILED, SwapState.REFUNDED})
IN_PROGRESS_STATES = frozenset(
    {SwapState.DEPOSIT_DETECTED, SwapState.KNOWN_DEPOSIT_TX, SwapState.PROCESSING}
)


@dataclass(frozen=True)
class TransactionHash:
    """On-chain transaction reference."""

    hash: str
    explorer_url: Optional[str] = None


@dataclass(frozen=True)
class SwapStatus:
    """One observation of a swap's progress."""

    tracking_id: str
    state: Optional[SwapState]  # None when the response was ambiguous
    updated_at: Optional[str] = None
    origin_chain_tx_hashes: tuple[TransactionHash, ...] = ()
    destination_chain_tx_hashes: tuple[TransactionHash, ...] = ()
    error_message: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_completed(self) -> bool:
        return self.state is SwapState.COMPLETED

    @property
    def is_processing(self) -> bool:
        return self.state in IN_PROGRESS_STATES

    @classmethod
    def from_payload(cls, tracking_id: str, data: dict) -> "SwapStatus":
        """Build a status from a GET /swap/{id}/status response body."""
        details = data.get("swapDetails") or {}
        if not isinstance(details, dict):
            details = {}
        state = SwapState.parse(data.get("status"))
        error = data.get("error")
        return cls(
            tracking_id=tracking_id,
            state=state,
            updated_at=data.get("updatedAt"),
            origin_chain_tx_hashes=_parse_hashes(details.get("originChainTxHashes")),
            destination_chain_tx_hashes=_parse_hashes(details.get("destinationChainTxHashes")),
            error_message=str(error) if error else None,
            raw=data,
        )


def _parse_hashes(entries: Any) -> tuple[TransactionHash, ...]:
    if not isinstance(entries, list):
        return ()
    hashes = []
    for entry in entries:
        if isinstance(entry, dict) and entry.get("hash"):
            hashes.append(TransactionHash(hash=str(entry["hash"]), explorer_url=entry.get("explorerUrl")))
        elif isinstance(entry, str):
            hashes.append(TransactionHash(hash=entry))
    return tuple(hashes)


def _iso8601(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
