"""Supported asset endpoints."""

from fastapi import APIRouter, HTTPException

from intentpay import assets
from intentpay.api.contracts import AssetView

router = APIRouter(prefix="/assets", tags=["assets"])


@router.get("", response_model=list[AssetView])
async def list_supported_assets() -> list[AssetView]:
    """Assets a payer can pay with or a merchant can receive."""
    return [AssetView.from_asset(asset) for asset in assets.list_assets()]


@router.get("/estimate")
async def estimate_swap_time(from_asset: str, to_asset: str) -> dict:
    """Rough settlement time for a pair.

    Heuristic only (3s base, +2s cross-chain); it does not look at live
    network conditions.
    """
    for symbol in (from_asset, to_asset):
        if assets.resolve(symbol) is None:
            raise HTTPException(status_code=400, detail=f"Unsupported asset: {symbol}")
    return {
        "from_asset": from_asset.upper(),
        "to_asset": to_asset.upper(),
        "estimated_seconds": assets.estimate_time(from_asset, to_asset),
        "heuristic": True,
    }
