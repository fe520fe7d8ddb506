#!/usr/bin/env python3
"""Startup script for PantryPal Backend Service - container entrypoint"""

import sys
import logging
import uvicorn

from core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def start_server():
    """Start the FastAPI server with settings from the environment"""
    logger.info("Starting PantryPal Backend Service")
    logger.info(f"Port: {settings.PORT}")
    logger.info(f"Host: {settings.HOST}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    try:
        # Import the app here to catch any import errors
        from main import app
    except ImportError as e:
        logger.error(f"Failed to import app: {e}")
        sys.exit(1)

    config = uvicorn.Config(
        app=app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info",
        access_log=True,
        use_colors=False,
        server_header=False,  # Don't expose server info
        limit_concurrency=1000,
        timeout_keep_alive=5,
        loop="auto"
    )

    server = uvicorn.Server(config)
    logger.info(f"Server configured, starting on {settings.HOST}:{settings.PORT}")
    server.run()


if __name__ == "__main__":
    start_server()
