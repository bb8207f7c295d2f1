"""
Market Feed Service

Owns the fetch lifecycle of the dashboard: one fetch on startup, then a
fetch every ``auto_refresh_interval`` seconds, plus a manual refresh that is
throttled against the start of the last successful fetch. Only one fetch is
in flight at a time. On failure the error message is kept for display and
the previous listings stay in place.

Every completed fetch publishes on the "listings" topic of the global event
bus: a "listings" event on success, an "error" event (stale listings kept)
on failure, so open dashboards can redraw.
"""

import asyncio
import contextlib
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from core.config import settings
from core.exceptions import MarketDataError, RefreshThrottled
from core.logging import get_logger
from core.schemas import CoinListing, FeedStatus
from core.utils.time import current_utc_datetime
from providers.coingecko import CoinGeckoAPIClient
from services.event_bus import bus


LISTINGS_TOPIC = "listings"


class MarketFeed:
    """
    Background service that keeps the latest CoinGecko listings in memory.

    Args:
        client_factory: Callable returning an async context manager with a
            ``get_markets()`` coroutine (defaults to CoinGeckoAPIClient)
        interval: Seconds between automatic fetches
        throttle: Minimum age of the last successful fetch before another
        clock: Monotonic clock used for throttling
    """

    def __init__(
        self,
        client_factory: Callable[[], Any] = CoinGeckoAPIClient,
        interval: Optional[float] = None,
        throttle: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logger = get_logger(__name__)
        self._client_factory = client_factory
        self._interval = settings.auto_refresh_interval if interval is None else interval
        self._throttle = settings.refresh_throttle if throttle is None else throttle
        self._clock = clock

        self._running = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

        self._listings: List[CoinListing] = []
        self._error: Optional[str] = None
        self._loading = False
        self._refreshing = False
        self._last_success: Optional[float] = None
        self._last_fetch_at: Optional[datetime] = None

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self) -> None:
        if self._running.is_set():
            return
        self._running.set()
        self._logger.info(f"Starting market feed (every {self._interval:.0f}s)...")
        self._task = asyncio.create_task(self._run(), name="market_feed")

    async def stop(self) -> None:
        if not self._running.is_set():
            return
        self._logger.info("Stopping market feed...")
        self._running.clear()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    @property
    def running(self) -> bool:
        return self._running.is_set()

    async def _run(self) -> None:
        while self._running.is_set():
            await self.fetch()
            await asyncio.sleep(self._interval)

    # ============================================
    # Fetching
    # ============================================

    async def fetch(self, manual: bool = False) -> bool:
        """
        Fetch listings from the provider and update the feed state.

        Automatic fetches are skipped while the last successful fetch is
        younger than the throttle window (and data is present), or while
        another fetch is running.

        Returns:
            True if new listings were stored
        """
        if not manual:
            if self._listings and self._seconds_until_refresh() > 0:
                self._logger.debug("Skipping automatic fetch: last fetch is still fresh")
                return False
            if self._lock.locked():
                self._logger.debug("Skipping automatic fetch: another fetch is in flight")
                return False

        async with self._lock:
            if manual:
                self._refreshing = True
            else:
                self._loading = True
            self._error = None
            started = self._clock()

            try:
                async with self._client_factory() as client:
                    listings = await client.get_markets()
            except MarketDataError as e:
                self._error = str(e)
                self._logger.warning(f"Market fetch failed: {e} (keeping {len(self._listings)} listings)")
            except Exception as e:
                self._error = MarketDataError.message
                self._logger.error(f"Unexpected market fetch error: {e!r}")
            else:
                self._listings = listings
                self._last_success = started
                self._last_fetch_at = current_utc_datetime()
                self._logger.info(f"Market feed updated: {len(listings)} listings")
            finally:
                if manual:
                    self._refreshing = False
                else:
                    self._loading = False

        await self._publish()
        return self._error is None

    async def refresh(self) -> bool:
        """
        Manual refresh.

        Raises:
            RefreshThrottled: A fetch is already in flight, or the last
                successful fetch is younger than the throttle window
        """
        if self._lock.locked():
            raise RefreshThrottled(in_flight=True)
        wait = self._seconds_until_refresh()
        if wait > 0:
            raise RefreshThrottled(retry_after=wait)
        self._logger.info("Manual refresh requested")
        return await self.fetch(manual=True)

    def can_refresh(self) -> bool:
        return not self._lock.locked() and self._seconds_until_refresh() <= 0

    def _seconds_until_refresh(self) -> float:
        if self._last_success is None:
            return 0.0
        return max(0.0, self._throttle - (self._clock() - self._last_success))

    # ============================================
    # State
    # ============================================

    @property
    def listings(self) -> List[CoinListing]:
        return list(self._listings)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def last_fetch_at(self) -> Optional[datetime]:
        return self._last_fetch_at

    def status(self) -> FeedStatus:
        return FeedStatus(
            loading=self._loading,
            refreshing=self._refreshing,
            error=self._error,
            last_fetch_at=self._last_fetch_at,
            can_refresh=self.can_refresh(),
            refresh_available_in=round(self._seconds_until_refresh(), 1),
            listings_count=len(self._listings),
        )

    def is_healthy(self) -> bool:
        return bool(self._listings) and self._error is None

    async def _publish(self) -> None:
        event: Dict[str, Any] = {
            "type": LISTINGS_TOPIC if self._error is None else "error",
            "status": self.status().model_dump(mode="json"),
        }
        await bus.publish(LISTINGS_TOPIC, event)


# Singleton service instance (created on demand)
_market_feed: Optional[MarketFeed] = None


def get_market_feed() -> MarketFeed:
    global _market_feed
    if _market_feed is None:
        _market_feed = MarketFeed()
    return _market_feed
