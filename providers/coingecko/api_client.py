"""
CoinGecko REST API Client

This module provides an async HTTP client for the public CoinGecko API.
It handles:
- HTTP requests with a per-attempt timeout
- Retries after timeouts (fixed delay, bounded attempts)
- Rate limit classification (HTTP 429) vs. generic failures
- Data normalization to our schemas

API Documentation:
    https://docs.coingecko.com/reference/coins-markets

Rate Limits:
    - The public tier allows a few dozen calls per minute per IP
    - HTTP 429 is surfaced immediately as RateLimitError; retrying
      only makes the ban window longer

Usage:
    async with CoinGeckoAPIClient() as client:
        listings = await client.get_markets()
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from core.config import settings
from core.exceptions import FetchError, FetchTimeoutError, InvalidPayloadError, RateLimitError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import CoinListing


class CoinGeckoAPIClient:
    """
    Async HTTP client for the CoinGecko REST API

    Attributes:
        base_url: API base URL (e.g., "https://api.coingecko.com/api/v3")
        timeout: Total timeout for one attempt, in seconds
        retry_delay: Pause before retrying a timed-out attempt, in seconds
        max_retries: Retries allowed after the first attempt (timeouts only)
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with CoinGeckoAPIClient() as client:
        ...     listings = await client.get_markets()
        ...     print(f"Fetched {len(listings)} listings")

    Notes:
        - Uses context manager for automatic session cleanup
        - Only timeouts are retried; HTTP errors fail fast
    """

    PROVIDER = "coingecko"
    MARKETS_PATH = "/coins/markets"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the CoinGecko API client.

        Every argument defaults to the matching value in settings.
        """
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.timeout = settings.fetch_timeout if timeout is None else timeout
        self.retry_delay = settings.retry_delay if retry_delay is None else retry_delay
        self.max_retries = settings.max_retries if max_retries is None else max_retries
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug("CoinGeckoAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("CoinGeckoAPIClient session closed")

    # ============================================
    # HTTP Request Handler with Retry Logic
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make GET request to the CoinGecko API.

        Args:
            path: API endpoint path (e.g., "/coins/markets")
            params: Optional query parameters

        Returns:
            Decoded JSON response

        Raises:
            RateLimitError: HTTP 429
            FetchError: Any other non-2xx status, or a connection failure
            InvalidPayloadError: Body is not valid JSON
            FetchTimeoutError: The first attempt and every retry timed out

        Retry Policy:
            Timeouts are retried up to max_retries times, waiting
            retry_delay seconds before each retry.
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            log_api_request(self.PROVIDER, path, params)
            started = time.monotonic()
            try:
                async with self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    log_api_response(self.PROVIDER, path, resp.status, time.monotonic() - started)

                    if resp.status == 429:
                        self.logger.warning(f"Rate limited (HTTP 429) on {path}")
                        raise RateLimitError()

                    if not 200 <= resp.status < 300:
                        text = await resp.text()
                        self.logger.error(f"HTTP {resp.status} on {path}: {text[:200]}")
                        raise FetchError(status=resp.status)

                    try:
                        data = await resp.json(content_type=None)
                    except ValueError as e:
                        self.logger.error(f"Undecodable body on {path}: {e}")
                        raise InvalidPayloadError() from e

                    self.logger.debug(f"GET {path} - Success (attempt {attempt + 1})")
                    return data

            except asyncio.TimeoutError:
                if attempt < self.max_retries:
                    self.logger.warning(
                        f"Timeout on {path} after {self.timeout:.0f}s. "
                        f"Retrying in {self.retry_delay:.1f}s... (attempt {attempt + 1}/{attempts})"
                    )
                    await asyncio.sleep(self.retry_delay)
                    continue
                self.logger.error(f"Timeout on {path} (attempt {attempt + 1}/{attempts}); giving up")
                raise FetchTimeoutError()

            except aiohttp.ClientError as e:
                self.logger.error(f"Request failed on {path}: {e}")
                raise FetchError(f"Request failed: {e}") from e

        # Only reachable with a negative max_retries
        raise FetchTimeoutError()

    # ============================================
    # API Methods
    # ============================================

    async def get_markets(self) -> List[CoinListing]:
        """
        Fetch the first page of market listings ordered by market cap.

        Returns:
            List of CoinListing objects in provider order

        Raises:
            InvalidPayloadError: If the response is not a JSON array
            MarketDataError subclasses from _get()

        CoinGecko Endpoint:
            GET /coins/markets?vs_currency=usd&order=market_cap_desc&per_page=100&page=1&sparkline=false

        Response Format:
            [
              {
                "id": "bitcoin",
                "symbol": "btc",
                "name": "Bitcoin",
                "image": "https://...",
                "current_price": 67123,
                "market_cap": 1322000000000,
                "total_volume": 28500000000,
                "price_change_percentage_24h": 2.35,
                "circulating_supply": 19700000,
                "ath": 73738,
                "ath_date": "2024-03-14T07:10:36.635Z",
                ...
              }
            ]

        Notes:
            Records that fail validation are skipped with a warning.
        """
        params = settings.get_markets_params()

        self.logger.info(f"Fetching markets: {params['vs_currency']} top {params['per_page']}")

        data = await self._get(self.MARKETS_PATH, params)

        if not isinstance(data, list):
            self.logger.error(f"Expected a JSON array from {self.MARKETS_PATH}, got {type(data).__name__}")
            raise InvalidPayloadError()

        listings: List[CoinListing] = []
        for item in data:
            try:
                listings.append(CoinListing.model_validate(item))
            except ValidationError as e:
                coin_id = item.get("id") if isinstance(item, dict) else None
                self.logger.warning(f"Skipping malformed listing {coin_id!r}: {e.error_count()} error(s)")

        self.logger.info(f"Fetched {len(listings)} listings")
        return listings
