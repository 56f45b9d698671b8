"""Checkout session endpoints.

A thin display-layer adapter: each endpoint calls one orchestrator operation
and returns the session as it stands afterwards. Settlement continues in the
background after ``confirm``; clients poll ``GET /checkout/sessions/{id}``.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from intentpay.api.contracts import ConfirmBody, QuoteBody, SessionView
from intentpay.api.sessions import SessionRegistry
from intentpay.errors import (
    IntentPayError,
    InvalidQuoteError,
    NetworkError,
    RateLimitedError,
    ServiceUnavailableError,
    SessionStateError,
    UnsupportedAssetError,
    WalletNotConnectedError,
    user_message_for,
)
from intentpay.orchestrator import SwapOrchestrator
from intentpay.utils.locks import LockTimeoutError, session_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])

# Error class -> HTTP status
_STATUS_CODES = (
    (UnsupportedAssetError, 400),
    (WalletNotConnectedError, 400),
    (InvalidQuoteError, 422),
    (RateLimitedError, 429),
    (NetworkError, 502),
    (ServiceUnavailableError, 503),
    (SessionStateError, 409),
)


def _registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def _get_session(request: Request, session_id: str) -> SwapOrchestrator:
    orchestrator = _registry(request).get(session_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return orchestrator


def _http_error(error: IntentPayError) -> HTTPException:
    for error_class, status_code in _STATUS_CODES:
        if isinstance(error, error_class):
            return HTTPException(status_code=status_code, detail=user_message_for(error))
    return HTTPException(status_code=500, detail=user_message_for(error))


@router.post("/sessions", response_model=SessionView, status_code=201)
async def create_session(request: Request) -> SessionView:
    """Open a new checkout session in the idle state."""
    session_id, orchestrator = _registry(request).create()
    return SessionView.from_snapshot(session_id, orchestrator.snapshot())


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(request: Request, session_id: str) -> SessionView:
    """Current state of a session, including the latest swap status."""
    orchestrator = _get_session(request, session_id)
    return SessionView.from_snapshot(session_id, orchestrator.snapshot())


@router.post("/sessions/{session_id}/quote", response_model=SessionView)
async def request_quote(request: Request, session_id: str, body: QuoteBody) -> SessionView:
    """Get a dry-run quote for the payment. No funds move."""
    orchestrator = _get_session(request, session_id)
    try:
        async with session_lock(session_id, operation="quote"):
            await orchestrator.request_quote(body.from_asset, body.to_asset, body.amount, body.address)
    except LockTimeoutError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntentPayError as e:
        raise _http_error(e)
    return SessionView.from_snapshot(session_id, orchestrator.snapshot())


@router.post("/sessions/{session_id}/confirm", response_model=SessionView)
async def confirm_payment(request: Request, session_id: str, body: ConfirmBody) -> SessionView:
    """Execute the quoted swap and start tracking it."""
    orchestrator = _get_session(request, session_id)
    try:
        async with session_lock(session_id, operation="confirm"):
            await orchestrator.confirm(body.address)
    except LockTimeoutError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IntentPayError as e:
        raise _http_error(e)
    return SessionView.from_snapshot(session_id, orchestrator.snapshot())


@router.post("/sessions/{session_id}/reset", response_model=SessionView)
async def reset_session(request: Request, session_id: str) -> SessionView:
    """Cancel the flow and return the session to idle (retry affordance)."""
    orchestrator = _get_session(request, session_id)
    orchestrator.reset()
    return SessionView.from_snapshot(session_id, orchestrator.snapshot())


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(request: Request, session_id: str) -> None:
    """Cancel any tracking and forget the session."""
    if not _registry(request).discard(session_id):
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
