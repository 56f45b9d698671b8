"""Main entry point - runs the checkout API."""

import logging

import uvicorn

from intentpay.api.app import create_app
from intentpay.config import get_settings

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Starting intentpay...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"NEAR Intents API: {settings.intents_api_url}")

    try:
        uvicorn.run(
            create_app(),
            host=settings.api_host,
            port=settings.api_port,
            log_level="debug" if settings.debug else "info",
        )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


if __name__ == "__main__":
    main()
