"""
Market Data Providers Package

Each upstream data source has its own subfolder with:
- api_client.py: REST API logic (aiohttp session, retries, normalization)

The dashboard currently reads from a single provider, CoinGecko.
"""
