"""
Shared fixtures for unit tests

Provides a realistic CoinGecko markets payload, CoinListing objects built
from it, and a fake provider client so the market feed can run without
network access.
"""

from datetime import datetime, timezone

import pytest

from core.schemas import CoinListing


NOW = datetime(2024, 4, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(coin_id, symbol, name, price, change, volume, ath_date, market_cap=1_000_000_000.0):
    return {
        "id": coin_id,
        "symbol": symbol,
        "name": name,
        "image": f"https://assets.coingecko.com/coins/images/{coin_id}.png",
        "current_price": price,
        "market_cap": market_cap,
        "market_cap_rank": None,
        "total_volume": volume,
        "price_change_percentage_24h": change,
        "circulating_supply": 1_000_000.0,
        "ath": price * 1.5 if price else None,
        "ath_date": ath_date,
        "last_updated": "2024-04-01T11:59:00.000Z",
    }


# Provider order (market cap descending)
MARKETS_PAYLOAD = [
    _record("bitcoin", "btc", "Bitcoin", 67123.0, 2.5, 30_000_000_000, "2024-03-14T07:10:36.635Z", 1_322_000_000_000),
    _record("ethereum", "eth", "Ethereum", 3456.78, -1.2, 15_000_000_000, "2021-11-10T14:24:19.604Z"),
    _record("tether", "usdt", "Tether", 1.0, 0.01, 50_000_000_000, "2018-07-24T00:00:00.000Z"),
    _record("solana", "sol", "Solana", 180.25, 7.8, 3_000_000_000, "2021-11-06T21:54:35.825Z"),
    _record("dogecoin", "doge", "Dogecoin", 0.2, 12.4, 1_500_000_000, "2021-05-08T05:08:23.458Z"),
    _record("shiba-inu", "shib", "Shiba Inu", 0.000027, -3.3, 400_000_000, "2021-10-28T03:54:55.568Z"),
    _record("pepe", "pepe", "Pepe", 0.0000071, 25.0, 999_999_999, "2024-03-14T08:10:00.000Z"),
    _record("floki", "floki", "FLOKI", 0.0003, None, 100_000_000, None),
    _record("cardano", "ada", "Cardano", 0.6, 0.5, 500_000_000, "2021-09-02T06:00:10.474Z"),
    _record("avalanche-2", "avax", "Avalanche", 52.1, -0.8, 600_000_000, "2021-11-21T14:18:56.538Z"),
    _record("chainlink", "link", "Chainlink", 18.9, 4.1, 700_000_000, "2021-05-10T00:13:57.214Z"),
    _record("bonk", "bonk", "Bonk", 0.000025, 18.0, None, "2024-03-04T17:10:00.000Z"),
]


class FakeMarketsClient:
    """Stands in for CoinGeckoAPIClient inside ``async with``"""

    def __init__(self, result):
        self.result = result

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def get_markets(self):
        if isinstance(self.result, BaseException):
            raise self.result
        return list(self.result)


@pytest.fixture
def markets_payload():
    """Raw CoinGecko /coins/markets records"""
    return [dict(item) for item in MARKETS_PAYLOAD]


@pytest.fixture
def listings(markets_payload):
    """CoinListing objects in provider order"""
    return [CoinListing.model_validate(item) for item in markets_payload]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def client_factory():
    """
    Build a client factory that returns one queued result per fetch.

    The last result repeats once the queue is exhausted. A result that is an
    exception is raised from get_markets().
    """
    def _build(*results):
        queue = list(results)
        calls = []

        def factory():
            result = queue[min(len(calls), len(queue) - 1)]
            calls.append(result)
            return FakeMarketsClient(result)

        factory.calls = calls
        return factory

    return _build


class FakeClock:
    """Monotonic clock advanced by hand"""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()
