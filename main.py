"""
Dispatch API entry point.

Serves the single task endpoint the voice agent calls for availability
lookups and ticket operations.

Usage:
    Serve:        python main.py
    Seeded demo:  STORE_SEED_PATH=data/seed.json python main.py
"""

import logging

import uvicorn

from serveeasy.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start uvicorn with the configured bind address."""
    logger.info("Listening on %s:%d", settings.server.host, settings.server.port)
    uvicorn.run(
        "serveeasy.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    _run_server()
