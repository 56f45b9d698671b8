"""Asset registry for the NEAR Intents 1Click API.

Maps human-readable symbols to the ``nep141:`` identifiers the API expects.
The table is fixed at import time and only ever read.
"""

from typing import Optional

from intentpay.errors import UnsupportedAssetError
from intentpay.models import AssetDescriptor

# Settlement latency heuristic (seconds)
BASE_SWAP_SECONDS = 3
CROSS_CHAIN_PENALTY_SECONDS = 2

_ASSETS = (
    # Ethereum
    AssetDescriptor(
        "ETH",
        "nep141:eth-0x0000000000000000000000000000000000000000.omft.near",
        "Ethereum",
        "Ethereum",
    ),
    AssetDescriptor(
        "USDC_ETH",
        "nep141:eth-0xa0b86a33e6441e6c7d3e4081f7567f8b8e8b8b8b.omft.near",
        "USD Coin (Ethereum)",
        "Ethereum",
    ),
    # Bitcoin
    AssetDescriptor(
        "BTC",
        "nep141:btc-0x0000000000000000000000000000000000000000.omft.near",
        "Bitcoin",
        "Bitcoin",
    ),
    # Solana
    AssetDescriptor(
        "SOL",
        "nep141:sol-0x0000000000000000000000000000000000000000.omft.near",
        "Solana",
        "Solana",
    ),
    AssetDescriptor(
        "USDC_SOL",
        "nep141:sol-5ce3bf3a31af18be40ba30f721101b4341690186.omft.near",
        "USD Coin (Solana)",
        "Solana",
    ),
    # NEAR
    AssetDescriptor("NEAR", "nep141:near.omft.near", "NEAR Protocol", "NEAR"),
    # Arbitrum
    AssetDescriptor(
        "USDC_ARB",
        "nep141:arb-0xaf88d065e77c8cc2239327c5edb3a432268e5831.omft.near",
        "USD Coin (Arbitrum)",
        "Arbitrum",
    ),
)

SUPPORTED_ASSETS: dict[str, AssetDescriptor] = {asset.symbol: asset for asset in _ASSETS}


def _normalize(symbol: str) -> str:
    return symbol.strip().upper()


def resolve(symbol: str) -> Optional[str]:
    """Convert a symbol to its 1Click identifier.

    Lookup is case-insensitive. Returns None if the asset is not supported.
    """
    asset = SUPPORTED_ASSETS.get(_normalize(symbol))
    return asset.remote_identifier if asset else None


def get_asset(symbol: str) -> AssetDescriptor:
    """Look up an asset descriptor, raising UnsupportedAssetError if unknown."""
    asset = SUPPORTED_ASSETS.get(_normalize(symbol))
    if asset is None:
        raise UnsupportedAssetError(symbol)
    return asset


def is_supported(asset: AssetDescriptor) -> bool:
    """Check a descriptor against the registry (symbol and identifier)."""
    return resolve(asset.symbol) == asset.remote_identifier


def list_assets() -> list[AssetDescriptor]:
    """List of supported assets, in registry order."""
    return list(SUPPORTED_ASSETS.values())


def estimate_time(from_symbol: str, to_symbol: str) -> int:
    """Estimate swap settlement time in seconds.

    This is a fixed heuristic, not a measurement: a 3 second base plus a
    2 second cross-chain penalty whenever the two symbols differ. Actual
    network conditions are not taken into account.
    """
    penalty = CROSS_CHAIN_PENALTY_SECONDS if _normalize(from_symbol) != _normalize(to_symbol) else 0
    return BASE_SWAP_SECONDS + penalty
