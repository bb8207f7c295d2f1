"""
CoinGecko Provider

Read-only access to the public CoinGecko markets endpoint.

API Documentation:
    https://docs.coingecko.com/reference/coins-markets

Endpoints Used:
    REST:
        - GET /api/v3/coins/markets - Listings ordered by market cap
"""

from .api_client import CoinGeckoAPIClient

__all__ = ["CoinGeckoAPIClient"]
