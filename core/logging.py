"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger

    logger.debug("Detailed debugging information")
    logger.info("General informational messages")
    logger.warning("Warning messages for potentially harmful situations")
    logger.error("Error messages for serious problems")

Log Levels (from most to least verbose):
    DEBUG    - Detailed diagnostic information (e.g., "GET /coins/markets - Success")
    INFO     - General informational messages (e.g., "Fetched 100 listings")
    WARNING  - Warnings about potential issues (e.g., "Rate limited by CoinGecko")
    ERROR    - Errors that don't crash the app (e.g., "Market fetch failed")
    CRITICAL - Severe errors that may crash

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional

from core.config import settings


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the root handler and return the "cryptodash" logger.

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] cryptodash: Application started
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format or "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger("cryptodash")
    logger.setLevel(level)
    # aiohttp logs every connection at DEBUG
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

logger = setup_logging(log_level=settings.log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance namespaced under "cryptodash."

    Example:
        # In providers/coingecko/api_client.py:
        logger = get_logger(__name__)  # "cryptodash.providers.coingecko.api_client"
    """
    return logging.getLogger(f"cryptodash.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(provider: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("coingecko", "/coins/markets", {"vs_currency": "usd"})
        [DEBUG] API Request: coingecko /coins/markets | Params: {'vs_currency': 'usd'}
    """
    if params:
        logger.debug(f"API Request: {provider} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {provider} {endpoint}")


def log_api_response(provider: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("coingecko", "/coins/markets", 200, 0.342)
        [DEBUG] API Response: coingecko /coins/markets | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {provider} {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
