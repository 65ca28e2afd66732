# Copyright (c) 2025 OptimNow - Jean Latiere. All Rights Reserved.
# Licensed under the Proprietary Software License.
# See LICENSE file in the project root for full license information.

#!/usr/bin/env python3
"""
Main entry point for the Resource Server.

This script loads environment variables, configures logging and starts the
FastAPI server on the configured port (default: 8080).

Usage:
    python run_server.py

Or with uvicorn directly:
    uvicorn resource_server.main:create_app --factory --host 0.0.0.0 --port 8080
"""

import logging
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

import uvicorn

from resource_server import __version__
from resource_server.config import Settings, settings


def configure_logging(log_level: str) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Set uvicorn loggers to the same level
    logging.getLogger("uvicorn").setLevel(numeric_level)
    logging.getLogger("uvicorn.access").setLevel(numeric_level)
    logging.getLogger("uvicorn.error").setLevel(numeric_level)


def print_startup_banner(config: Settings) -> None:
    """
    Print startup banner with configuration information.

    Args:
        config: Application settings
    """
    lines = [
        f"Resource Server v{__version__}",
        f"  Host:          {config.host}",
        f"  Port:          {config.port}",
        f"  Environment:   {config.environment}",
        f"  Log Level:     {config.log_level}",
        f"  API prefix:    {config.api_prefix}",
        f"  Database:      {config.database_path}",
        f"  Auth provider: {config.auth_provider}",
        f"  Token cache:   {'enabled' if config.redis_url else 'disabled'}",
        f"  Audit DB:      {config.audit_db_path or 'disabled'}",
    ]
    print("\n".join(lines))


def main() -> None:
    """
    Main entry point for the server.

    Loads configuration, configures logging, and starts the server.
    """
    config = settings()

    configure_logging(config.log_level)

    logger = logging.getLogger(__name__)

    print_startup_banner(config)

    logger.info("Starting Resource Server...")
    logger.info(f"Server will listen on {config.host}:{config.port}")

    try:
        uvicorn.run(
            "resource_server.main:create_app",
            factory=True,
            host=config.host,
            port=config.port,
            log_level=config.log_level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error(f"Server failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
