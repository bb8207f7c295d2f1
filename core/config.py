"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (meme coins, CORS origins)
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.coingecko_base_url)
    print(settings.meme_coins_list)  # Returns a list of coin ids
"""

from typing import Dict, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        coingecko_base_url: Base URL for the CoinGecko public API
        vs_currency: Quote currency for prices and volumes
        per_page: Number of listings fetched per poll
        fetch_timeout: Per-attempt timeout for the market request (seconds)
        retry_delay: Pause between timeout retries (seconds)
        max_retries: Retries after the first attempt, timeouts only
        auto_refresh_interval: Period of the background poll (seconds)
        refresh_throttle: Minimum age of the last good fetch before another (seconds)
        hot_volume_threshold: 24h volume (USD) for the "hot" view
        new_listing_days: Window for the "new" view, applied to ath_date
        meme_coins: Comma-separated coin ids for the "meme" view
        favorites_path: JSON file holding the favorites list
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
    """

    # ============================================
    # CoinGecko API Configuration
    # ============================================

    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="CoinGecko public API base URL"
    )

    vs_currency: str = Field(
        default="usd",
        description="Quote currency for market listings"
    )

    per_page: int = Field(
        default=100,
        description="Listings fetched per poll (ordered by market cap)"
    )

    # ============================================
    # Fetch Lifecycle
    # ============================================

    fetch_timeout: float = Field(
        default=15.0,
        description="Timeout for a single market request in seconds"
    )

    retry_delay: float = Field(
        default=3.0,
        description="Delay between retries after a timeout (seconds)"
    )

    max_retries: int = Field(
        default=3,
        description="Maximum retries after a timed-out request"
    )

    auto_refresh_interval: float = Field(
        default=60.0,
        description="Background refresh period in seconds"
    )

    refresh_throttle: float = Field(
        default=10.0,
        description="Minimum seconds since the last successful fetch before refreshing again"
    )

    # ============================================
    # View Configuration
    # ============================================

    hot_volume_threshold: float = Field(
        default=1_000_000_000,
        description="Minimum 24h volume (USD) for a coin to be 'hot' ($1B default)"
    )

    new_listing_days: int = Field(
        default=30,
        description="Days to consider a coin new (compared against its ATH date)"
    )

    meme_coins: str = Field(
        default="dogecoin,shiba-inu,pepe,floki,bonk",
        description="Comma-separated CoinGecko ids shown in the meme view"
    )

    view_size: int = Field(
        default=10,
        description="Number of cards in the 'all' and 'gainers' views"
    )

    # ============================================
    # Favorites Storage
    # ============================================

    favorites_path: str = Field(
        default="favorites.json",
        description="Path of the JSON file mirroring the favorites list"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="127.0.0.1",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # CORS Configuration
    # ============================================

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        # Look for .env file in the project root
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        # Case-insensitive environment variable matching
        case_sensitive=False
    )

    # ============================================
    # Custom Properties
    # ============================================

    @property
    def meme_coins_list(self) -> List[str]:
        """
        Convert comma-separated meme coin ids to a list.

        Example:
            >>> settings.meme_coins_list
            ['dogecoin', 'shiba-inu', 'pepe', 'floki', 'bonk']
        """
        return [c.strip().lower() for c in self.meme_coins.split(",") if c.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def get_markets_params(self) -> Dict[str, str]:
        """
        Query parameters for the CoinGecko markets endpoint.

        Returns:
            Dictionary of string query parameters (first page, by market cap)
        """
        return {
            "vs_currency": self.vs_currency,
            "order": "market_cap_desc",
            "per_page": str(self.per_page),
            "page": "1",
            "sparkline": "false",
        }


# ============================================
# Global Settings Instance
# ============================================

# Create a single instance of settings to be imported throughout the application
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import logger here to avoid circular import
    # (logging.py imports config.py, so we can't import at module level)
    from core.logging import logger

    if not settings.coingecko_base_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid COINGECKO_BASE_URL: '{settings.coingecko_base_url}'. "
            f"Must start with http:// or https://"
        )

    if not (1 <= settings.per_page <= 250):
        raise ValueError(f"Invalid PER_PAGE: {settings.per_page}. Must be between 1 and 250")

    for name in ("fetch_timeout", "auto_refresh_interval"):
        if getattr(settings, name) <= 0:
            raise ValueError(f"{name.upper()} must be positive")

    for name in ("retry_delay", "refresh_throttle", "max_retries", "new_listing_days"):
        if getattr(settings, name) < 0:
            raise ValueError(f"{name.upper()} cannot be negative")

    if settings.view_size < 1:
        raise ValueError(f"Invalid VIEW_SIZE: {settings.view_size}. Must be at least 1")

    # Validate port number
    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    # Validate log level
    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    # Log successful validation
    logger.info("Configuration validated successfully")
    logger.info(f"CoinGecko API: {settings.coingecko_base_url} ({settings.vs_currency}, top {settings.per_page})")
    logger.info(
        f"Refresh every {settings.auto_refresh_interval:.0f}s, "
        f"throttle {settings.refresh_throttle:.0f}s, timeout {settings.fetch_timeout:.0f}s"
    )
    logger.info(f"Meme coins: {', '.join(settings.meme_coins_list)}")
    logger.info(f"Favorites file: {settings.favorites_path}")
    logger.info(f"Server: {settings.app_host}:{settings.app_port}")
    logger.info(f"Log level: {settings.log_level.upper()}")
