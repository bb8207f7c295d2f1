"""
Market Data Exceptions

Errors raised by the CoinGecko client and the market feed. Every message is
meant to be shown to the user as-is next to the refresh control.
"""

import math


class MarketDataError(Exception):
    """Base class for failures while fetching market listings."""

    message = "An unexpected error occurred. Please try again."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)

    def __str__(self) -> str:
        return self.args[0]


class FetchError(MarketDataError):
    """Non-success HTTP status or connection failure."""

    def __init__(self, message: str = None, status: int = None):
        if message is None and status is not None:
            message = f"Failed to fetch data (HTTP {status})"
        super().__init__(message)
        self.status = status


class RateLimitError(FetchError):
    """Provider answered with HTTP 429."""

    message = "Rate limit exceeded. Please wait a moment before refreshing."

    def __init__(self, message: str = None):
        super().__init__(message or self.message, status=429)


class FetchTimeoutError(MarketDataError):
    """Every attempt timed out."""

    message = "Request timed out. Please try again."


class InvalidPayloadError(MarketDataError):
    """Response body was not a JSON array of listings."""

    message = "Invalid data received from the server"


class RefreshThrottled(Exception):
    """Manual refresh requested too soon or while another fetch is running."""

    def __init__(self, retry_after: float = 0.0, in_flight: bool = False):
        self.retry_after = max(0.0, retry_after)
        self.in_flight = in_flight
        if in_flight:
            msg = "A refresh is already in progress."
        else:
            msg = f"Refresh available in {math.ceil(self.retry_after)}s."
        super().__init__(msg)
