"""Request and response contracts for the checkout API."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from intentpay.formatting import format_amount, status_message
from intentpay.models import Amount, AssetDescriptor, Quote, SwapStatus, TransactionHash
from intentpay.orchestrator import SessionSnapshot


class QuoteBody(BaseModel):
    """Request for a checkout quote."""

    from_asset: str = Field(..., description="Asset the payer sends (e.g., ETH)")
    to_asset: str = Field(default="USDC_ETH", description="Asset the merchant receives")
    amount: str = Field(..., description="Amount of from_asset as a decimal string")
    address: str = Field(..., description="Connected wallet address of the payer")


class ConfirmBody(BaseModel):
    """Request to execute the quoted swap."""

    address: str = Field(..., description="Connected wallet address of the payer")


class AssetView(BaseModel):
    symbol: str
    identifier: str
    name: str
    network: str

    @classmethod
    def from_asset(cls, asset: AssetDescriptor) -> "AssetView":
        return cls(
            symbol=asset.symbol,
            identifier=asset.remote_identifier,
            name=asset.display_name,
            network=asset.network,
        )


class AmountView(BaseModel):
    value: Decimal
    usd: Optional[Decimal] = None
    formatted: str = Field(..., description="Value with 6 decimal places")

    @classmethod
    def from_amount(cls, amount: Amount) -> "AmountView":
        return cls(value=amount.value, usd=amount.usd, formatted=format_amount(amount.value))


class QuoteView(BaseModel):
    from_asset: str
    to_asset: str
    amount: str = Field(..., description="Requested amount, as sent")
    amount_in: AmountView
    amount_out: AmountView
    time_estimate_seconds: int
    deadline: str

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteView":
        return cls(
            from_asset=quote.request.origin_asset.symbol,
            to_asset=quote.request.destination_asset.symbol,
            amount=quote.request.amount,
            amount_in=AmountView.from_amount(quote.amount_in),
            amount_out=AmountView.from_amount(quote.amount_out),
            time_estimate_seconds=quote.time_estimate_seconds,
            deadline=quote.request.deadline.isoformat(),
        )


class TxHashView(BaseModel):
    hash: str
    explorer_url: Optional[str] = None

    @classmethod
    def from_hash(cls, tx: TransactionHash) -> "TxHashView":
        return cls(hash=tx.hash, explorer_url=tx.explorer_url)


class StatusView(BaseModel):
    state: Optional[str] = Field(None, description="Remote swap state, null if unknown")
    message: str
    updated_at: Optional[str] = None
    origin_chain_tx_hashes: list[TxHashView] = Field(default_factory=list)
    destination_chain_tx_hashes: list[TxHashView] = Field(default_factory=list)
    error_message: Optional[str] = None

    @classmethod
    def from_status(cls, status: SwapStatus) -> "StatusView":
        return cls(
            state=status.state.value if status.state else None,
            message=status_message(status.state),
            updated_at=status.updated_at,
            origin_chain_tx_hashes=[TxHashView.from_hash(t) for t in status.origin_chain_tx_hashes],
            destination_chain_tx_hashes=[
                TxHashView.from_hash(t) for t in status.destination_chain_tx_hashes
            ],
            error_message=status.error_message,
        )


class SessionView(BaseModel):
    """Everything the checkout screen renders."""

    session_id: str
    state: str
    quote: Optional[QuoteView] = None
    tracking_id: Optional[str] = None
    status: Optional[StatusView] = None
    attempts: int = 0
    progress: float = 0.0
    estimated_time_remaining: float = 0.0
    error: Optional[str] = None

    @classmethod
    def from_snapshot(cls, session_id: str, snapshot: SessionSnapshot) -> "SessionView":
        quote = snapshot.quote or (snapshot.handle.originating_quote if snapshot.handle else None)
        return cls(
            session_id=session_id,
            state=snapshot.state.value,
            quote=QuoteView.from_quote(quote) if quote else None,
            tracking_id=snapshot.handle.tracking_id if snapshot.handle else None,
            status=StatusView.from_status(snapshot.status) if snapshot.status else None,
            attempts=snapshot.attempts,
            progress=snapshot.progress,
            estimated_time_remaining=snapshot.estimated_time_remaining,
            error=snapshot.error_message,
        )
