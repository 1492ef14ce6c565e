"""
API Module Entry Point

Allows execution via: python -m services.api

Configures logging from settings, then serves the application factory with
uvicorn.
"""

import logging

import uvicorn

from utils.config import settings
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point for the API server."""
    setup_logging(level=settings.LOG_LEVEL, format_type=settings.LOG_FORMAT)
    logger.info("Starting API server", extra={"host": settings.API_HOST, "port": settings.API_PORT})
    uvicorn.run(
        "services.api.app:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        workers=settings.API_WORKERS,
        log_config=None,
    )


if __name__ == "__main__":
    main()
