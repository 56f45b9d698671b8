"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intentpay import __version__
from intentpay.api.sessions import SessionRegistry
from intentpay.client import SwapClient
from intentpay.config import get_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown: stop every background poll
    app.state.sessions.close_all()


def create_app(swap_client: Optional[SwapClient] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        swap_client: Client shared by all sessions (defaults to a live one)
    """
    settings = get_settings()

    app = FastAPI(
        title="intentpay API",
        description="Cross-chain checkout over NEAR Intents",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.sessions = SessionRegistry(swap_client)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from intentpay.api.routes import assets, checkout, health

    app.include_router(health.router, tags=["Health"])
    app.include_router(assets.router)
    app.include_router(checkout.router)

    return app
