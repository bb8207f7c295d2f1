"""
Unit Tests for CoinGecko API Client

These tests verify that the CoinGeckoAPIClient:
- Sends the markets query CoinGecko expects
- Normalizes records to CoinListing and skips malformed ones
- Retries timeouts only, and classifies rate limits vs. generic failures
- Works with mocked HTTP responses

Run with:
    pytest tests/unit/test_coingecko_api_client.py -v
"""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest

from core.exceptions import (
    FetchError,
    FetchTimeoutError,
    InvalidPayloadError,
    MarketDataError,
    RateLimitError,
)
from core.schemas import CoinListing
from providers.coingecko.api_client import CoinGeckoAPIClient


# ============================================
# Helpers
# ============================================

class FakeResponse:
    """Minimal aiohttp response usable with ``async with``"""

    def __init__(self, status=200, payload=None, text="", json_error=None):
        self.status = status
        self._payload = payload
        self._text = text
        self._json_error = json_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def json(self, content_type="application/json"):
        if self._json_error:
            raise self._json_error
        return self._payload

    async def text(self):
        return self._text


def mock_session(*outcomes):
    """
    Session whose get() yields each outcome in turn.

    An outcome is a FakeResponse or an exception raised by get().
    """
    session = MagicMock()
    session.get = MagicMock(side_effect=list(outcomes))
    return session


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def api_client():
    """
    Create a CoinGeckoAPIClient with no retry delay.

    No real session is opened; tests either patch _get or install a mock session.
    """
    return CoinGeckoAPIClient(retry_delay=0, max_retries=3)


# ============================================
# Tests for get_markets
# ============================================

class TestGetMarkets:
    """Tests for get_markets method"""

    @pytest.mark.asyncio
    async def test_returns_listings_in_provider_order(self, api_client, monkeypatch, markets_payload):
        """Verify get_markets returns normalized CoinListing objects"""
        async def mock_get(path, params=None):
            return markets_payload

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_markets()

        assert len(result) == len(markets_payload)
        assert all(isinstance(coin, CoinListing) for coin in result)
        assert result[0].id == "bitcoin"
        assert result[0].current_price == 67123.0
        assert result[0].ath_date.year == 2024
        assert result[0].ath_date.tzinfo is not None

    @pytest.mark.asyncio
    async def test_sends_markets_query(self, api_client, monkeypatch):
        """Verify the endpoint and query parameters"""
        called = {}

        async def mock_get(path, params=None):
            called["path"] = path
            called["params"] = params
            return []

        monkeypatch.setattr(api_client, "_get", mock_get)

        await api_client.get_markets()

        assert called["path"] == "/coins/markets"
        assert called["params"] == {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": "100",
            "page": "1",
            "sparkline": "false",
        }

    @pytest.mark.asyncio
    async def test_non_array_payload_is_invalid(self, api_client, monkeypatch):
        """CoinGecko error bodies are JSON objects, not arrays"""
        async def mock_get(path, params=None):
            return {"status": {"error_code": 500, "error_message": "oops"}}

        monkeypatch.setattr(api_client, "_get", mock_get)

        with pytest.raises(InvalidPayloadError) as exc_info:
            await api_client.get_markets()
        assert str(exc_info.value) == "Invalid data received from the server"

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self, api_client, monkeypatch, markets_payload):
        """A record without an id, or not an object at all, is dropped"""
        broken = [{"symbol": "x", "name": "No Id"}, "not-a-record", markets_payload[0]]

        async def mock_get(path, params=None):
            return broken

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_markets()
        assert [coin.id for coin in result] == ["bitcoin"]

    @pytest.mark.asyncio
    async def test_unparseable_ath_date_becomes_none(self, api_client, monkeypatch, markets_payload):
        record = dict(markets_payload[0], ath_date="sometime last week")

        async def mock_get(path, params=None):
            return [record]

        monkeypatch.setattr(api_client, "_get", mock_get)

        result = await api_client.get_markets()
        assert result[0].ath_date is None


# ============================================
# Tests for _get (HTTP handling)
# ============================================

class TestHttpHandling:
    """Tests for status classification and retries in _get"""

    @pytest.mark.asyncio
    async def test_success_returns_json(self, api_client):
        api_client.session = mock_session(FakeResponse(200, payload=[{"id": "bitcoin"}]))

        data = await api_client._get("/coins/markets")

        assert data == [{"id": "bitcoin"}]
        args, kwargs = api_client.session.get.call_args
        assert args[0] == "https://api.coingecko.com/api/v3/coins/markets"
        assert kwargs["headers"] == {"Accept": "application/json"}

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self, api_client):
        api_client.session = mock_session(FakeResponse(429), FakeResponse(200, payload=[]))

        with pytest.raises(RateLimitError) as exc_info:
            await api_client._get("/coins/markets")

        assert str(exc_info.value) == "Rate limit exceeded. Please wait a moment before refreshing."
        assert api_client.session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_http_error_carries_status(self, api_client):
        api_client.session = mock_session(FakeResponse(503, text="Service Unavailable"))

        with pytest.raises(FetchError) as exc_info:
            await api_client._get("/coins/markets")

        assert exc_info.value.status == 503
        assert str(exc_info.value) == "Failed to fetch data (HTTP 503)"
        assert not isinstance(exc_info.value, RateLimitError)
        assert api_client.session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_then_success(self, api_client):
        api_client.session = mock_session(
            asyncio.TimeoutError(),
            asyncio.TimeoutError(),
            FakeResponse(200, payload=[]),
        )

        assert await api_client._get("/coins/markets") == []
        assert api_client.session.get.call_count == 3

    @pytest.mark.asyncio
    async def test_timeouts_exhaust_retries(self, api_client):
        """One initial attempt plus max_retries retries, then give up"""
        api_client.session = mock_session(*[asyncio.TimeoutError() for _ in range(4)])

        with pytest.raises(FetchTimeoutError) as exc_info:
            await api_client._get("/coins/markets")

        assert str(exc_info.value) == "Request timed out. Please try again."
        assert api_client.session.get.call_count == 4

    @pytest.mark.asyncio
    async def test_retry_waits_retry_delay(self, monkeypatch):
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        monkeypatch.setattr("providers.coingecko.api_client.asyncio.sleep", fake_sleep)

        client = CoinGeckoAPIClient(retry_delay=3, max_retries=2)
        client.session = mock_session(asyncio.TimeoutError(), asyncio.TimeoutError(), asyncio.TimeoutError())
        with pytest.raises(FetchTimeoutError):
            await client._get("/coins/markets")

        assert sleeps == [3, 3]

    @pytest.mark.asyncio
    async def test_connection_error_is_fetch_error(self, api_client):
        api_client.session = mock_session(aiohttp.ClientConnectionError("connection reset"))

        with pytest.raises(FetchError) as exc_info:
            await api_client._get("/coins/markets")

        assert "connection reset" in str(exc_info.value)
        assert api_client.session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_undecodable_body_is_invalid_payload(self, api_client):
        api_client.session = mock_session(FakeResponse(200, json_error=ValueError("Expecting value")))

        with pytest.raises(InvalidPayloadError):
            await api_client._get("/coins/markets")

    @pytest.mark.asyncio
    async def test_all_errors_share_base_class(self):
        for error in (FetchError(status=500), RateLimitError(), FetchTimeoutError(), InvalidPayloadError()):
            assert isinstance(error, MarketDataError)


# ============================================
# Tests for Session Management
# ============================================

class TestSessionManagement:
    """Tests for the async context manager"""

    @pytest.mark.asyncio
    async def test_context_manager_creates_and_closes_session(self):
        client = CoinGeckoAPIClient()
        assert client.session is None

        async with client:
            assert isinstance(client.session, aiohttp.ClientSession)

        assert client.session is None

    @pytest.mark.asyncio
    async def test_get_without_session_raises(self):
        client = CoinGeckoAPIClient()
        with pytest.raises(RuntimeError):
            await client._get("/coins/markets")

    def test_base_url_trailing_slash_trimmed(self):
        client = CoinGeckoAPIClient(base_url="https://example.test/api/v3/")
        assert client.base_url == "https://example.test/api/v3"
