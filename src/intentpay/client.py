"""Async client for the NEAR Intents 1Click swap API.

Three endpoints are wrapped: quote, swap submission and swap status. Every
failure is classified into the errors of ``intentpay.errors`` before it
leaves this module.

API docs: https://docs.near-intents.org/near-intents/integration/distribution-channels/1click-api
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from intentpay import assets
from intentpay.config import get_settings
from intentpay.errors import (
    InvalidQuoteError,
    NetworkError,
    RateLimitedError,
    ServiceUnavailableError,
    UnsupportedAssetError,
)
from intentpay.models import Amount, AssetDescriptor, Quote, QuoteRequest, SwapHandle, SwapStatus

logger = logging.getLogger(__name__)

# Plain positional decimal: no sign, exponent or surrounding whitespace
_AMOUNT_PATTERN = re.compile(r"[0-9]+(\.[0-9]+)?")


class SwapClient:
    """Stateless wrapper around the 1Click endpoints.

    Holds only configuration; each call opens its own ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        referral: Optional[str] = None,
        quote_waiting_time_ms: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
            referral: Referral tag attached to quote requests
            quote_waiting_time_ms: Solver quoting window sent with quotes
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
        """
        settings = get_settings()
        self.base_url = (base_url or settings.intents_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.referral = referral or settings.referral
        self.quote_waiting_time_ms = (
            quote_waiting_time_ms
            if quote_waiting_time_ms is not None
            else settings.quote_waiting_time_ms
        )
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        """Perform one round trip and classify its outcome.

        Returns the decoded JSON body. Floats in the body are decoded as
        ``Decimal`` so amounts never pass through binary floating point.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Network error calling {method} {path}: {type(e).__name__}: {e}")
            raise NetworkError() from e

        if response.status_code >= 400:
            raise self._classify_status(method, path, response)

        try:
            return response.json(parse_float=Decimal)
        except ValueError as e:
            logger.error(f"Unreadable response from {method} {path}: {response.text[:200]!r}")
            raise ServiceUnavailableError() from e

    @staticmethod
    def _classify_status(method: str, path: str, response: httpx.Response) -> Exception:
        status = response.status_code
        body = _safe_json(response)
        logger.warning(f"NEAR Intents API error {status} on {method} {path}: {body or response.text[:200]}")

        if status == 429:
            return RateLimitedError()
        if status >= 500:
            return ServiceUnavailableError()

        message = body.get("message") if isinstance(body, dict) else None
        if status == 400:
            return InvalidQuoteError(message or "Invalid request parameters")
        return InvalidQuoteError(message or f"Request rejected with HTTP {status}")

    # ======================
    # Quote
    # ======================

    async def request_quote(self, request: QuoteRequest) -> Quote:
        """Get a dry-run quote for converting origin_asset into destination_asset.

        Args:
            request: Quote parameters; the deadline is computed by the caller

        Returns:
            Quote holding the signed remote response

        Raises:
            UnsupportedAssetError: an asset is not in the registry (no round trip)
            InvalidQuoteError: bad amount, remote rejection or malformed quote
            RateLimitedError, ServiceUnavailableError, NetworkError
        """
        for asset in (request.origin_asset, request.destination_asset):
            if not assets.is_supported(asset):
                raise UnsupportedAssetError(asset.symbol)
        _validate_amount(request.amount)

        payload = request.to_payload(self.referral, self.quote_waiting_time_ms)
        # Quotes are always price-discovery probes
        payload["dry"] = True

        logger.info(
            f"Requesting quote: {request.amount} {request.origin_asset.symbol} -> "
            f"{request.destination_asset.symbol}"
        )
        data = await self._request("POST", "/quote", json=payload)
        quote = self._parse_quote(request, payload, data)

        logger.info(
            f"Quote received: {quote.amount_in.value} {request.origin_asset.symbol} -> "
            f"{quote.amount_out.value} {request.destination_asset.symbol} "
            f"(~{quote.time_estimate_seconds}s)"
        )
        return quote

    def _parse_quote(self, request: QuoteRequest, payload: dict, data: Any) -> Quote:
        if not isinstance(data, dict):
            raise InvalidQuoteError("Quote response is not an object")

        details = data.get("quote")
        signature = data.get("signature")
        timestamp = data.get("timestamp")
        if not isinstance(details, dict) or not signature or not timestamp:
            raise InvalidQuoteError("Quote response is missing quote, signature or timestamp")

        raw = dict(data)
        if not isinstance(raw.get("quoteRequest"), dict):
            # Older API versions do not echo the request; keep what was sent
            raw["quoteRequest"] = payload

        time_estimate = details.get("timeEstimate")
        try:
            time_estimate_seconds = int(time_estimate)
        except (TypeError, ValueError):
            time_estimate_seconds = assets.estimate_time(
                request.origin_asset.symbol, request.destination_asset.symbol
            )

        return Quote(
            request=request,
            amount_in=Amount(
                value=_parse_decimal(details.get("amountInFormatted"), "amountInFormatted"),
                usd=_parse_decimal(details.get("amountInUsd"), "amountInUsd", required=False),
            ),
            amount_out=Amount(
                value=_parse_decimal(details.get("amountOutFormatted"), "amountOutFormatted"),
                usd=_parse_decimal(details.get("amountOutUsd"), "amountOutUsd", required=False),
            ),
            time_estimate_seconds=time_estimate_seconds,
            signature=str(signature),
            timestamp=str(timestamp),
            raw=raw,
        )

    # ======================
    # Swap
    # ======================

    async def submit_swap(self, quote: Quote, recipient_address: str) -> SwapHandle:
        """Turn a dry-run quote into a live swap.

        The original quote request is re-sent with ``dry`` forced to false and
        the refund address overridden to ``recipient_address``.

        Returns:
            SwapHandle whose originating_quote is ``quote`` itself
        """
        verify_quote(quote)

        swap_request = {
            **quote.echoed_request,
            "dry": False,
            "refundTo": recipient_address,
            "virtualChainRefundRecipient": recipient_address,
        }
        logger.info(
            f"Submitting swap: {quote.request.amount} {quote.request.origin_asset.symbol} -> "
            f"{quote.request.destination_asset.symbol}"
        )
        data = await self._request(
            "POST",
            "/swap",
            json={"quoteResponse": quote.raw, "swapRequest": swap_request},
        )

        swap_id = data.get("swapId") if isinstance(data, dict) else None
        if not swap_id:
            raise InvalidQuoteError("Swap response is missing swapId")

        logger.info(f"Swap submitted: {swap_id}")
        return SwapHandle(tracking_id=str(swap_id), originating_quote=quote)

    async def fetch_status(self, tracking_id: str) -> SwapStatus:
        """Get the current status of a submitted swap."""
        data = await self._request("GET", f"/swap/{tracking_id}/status")
        if not isinstance(data, dict):
            data = {}
        status = SwapStatus.from_payload(tracking_id, data)
        logger.debug(f"Swap {tracking_id} status: {status.state.value if status.state else 'UNKNOWN'}")
        return status

    # ======================
    # Registry passthroughs
    # ======================

    def get_supported_assets(self) -> list[AssetDescriptor]:
        """List of assets this client can quote."""
        return assets.list_assets()

    def estimate_swap_time(self, from_symbol: str, to_symbol: str) -> int:
        """Heuristic settlement estimate in seconds (see assets.estimate_time)."""
        return assets.estimate_time(from_symbol, to_symbol)


def verify_quote(quote: Quote) -> None:
    """Reject a quote whose request no longer matches what was quoted.

    A quote is only valid for the asset pair and amount it was generated
    for.
    """
    echoed = quote.echoed_request
    expected = {
        "originAsset": quote.request.origin_asset.remote_identifier,
        "destinationAsset": quote.request.destination_asset.remote_identifier,
        "amount": quote.request.amount,
    }
    for key, value in expected.items():
        if str(echoed.get(key)) != str(value):
            logger.warning(f"Quote integrity check failed on {key}: {echoed.get(key)!r} != {value!r}")
            raise InvalidQuoteError(f"Quote does not match its request ({key} changed)")


def _validate_amount(amount: str) -> None:
    if not isinstance(amount, str) or not _AMOUNT_PATTERN.fullmatch(amount):
        raise InvalidQuoteError(f"Amount is not a plain decimal number: {amount!r}")
    if Decimal(amount) <= 0:
        raise InvalidQuoteError(f"Amount must be positive: {amount!r}")


def _parse_decimal(value: Any, name: str, required: bool = True) -> Optional[Decimal]:
    if value is None or value == "":
        if required:
            raise InvalidQuoteError(f"Quote response is missing {name}")
        return None
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise InvalidQuoteError(f"Quote field {name} is not a number: {value!r}")
    if not parsed.is_finite():
        raise InvalidQuoteError(f"Quote field {name} is not finite: {value!r}")
    return parsed


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
