"""
FastAPI Application - CryptoDash

Local dashboard over the CoinGecko markets endpoint: filterable views of the
top listings, a persisted favorites list, and a throttled manual refresh.

Features:
    - Background polling with retry on timeout (every 60s by default)
    - Views: all, favorites, hot, new, gainers, meme
    - Favorites mirrored to a local JSON file
    - Live push of every refresh over WebSocket

Usage:
    uvicorn app.main:app --reload --host 127.0.0.1 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

import asyncio
import json
import math
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Path, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings, validate_configuration
from core.exceptions import RefreshThrottled
from core.logging import logger
from core.schemas import (
    FavoriteToggleResponse,
    FavoritesResponse,
    FeedStatus,
    ViewInfo,
    ViewName,
    ViewResult,
)
from core.views import VIEW_LABELS, build_view, list_views
from services.event_bus import bus
from services.market_feed import LISTINGS_TOPIC, MarketFeed, get_market_feed
from storage.favorites import FavoritesStore, get_favorites_store


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        get_favorites_store()
        await get_market_feed().start()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("=== Shutting Down ===")
    try:
        await get_market_feed().stop()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="CryptoDash",
    description=(
        "Cryptocurrency prices from CoinGecko with filterable views and favorites.\n\n"
        "## REST Endpoints\n"
        "- `GET /listings?view=all|favorites|hot|new|gainers|meme` - Cards for one view\n"
        "- `GET /views` - Available views with counts\n"
        "- `GET /status` - Fetch state, last error, refresh availability\n"
        "- `POST /refresh` - Manual refresh (throttled)\n"
        "- `GET /favorites` - Favorite coin ids\n"
        "- `POST /favorites/{coin_id}/toggle` - Star / unstar a coin\n"
        "- `PUT /favorites/{coin_id}` / `DELETE /favorites/{coin_id}`\n"
        "- `GET /health` - Health check\n\n"
        "## WebSocket\n"
        "- `ws://{host}/ws/listings?view=all` - Snapshot on connect, then one message per refresh"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information."""
    return {
        "name": "CryptoDash",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "provider": settings.coingecko_base_url,
        "views": list(VIEW_LABELS),
    }


@app.get("/health", tags=["System"])
async def health_check(feed: MarketFeed = Depends(get_market_feed)):
    """Healthy when listings are loaded and the last fetch succeeded."""
    status = feed.status()
    return {
        "status": "healthy" if feed.is_healthy() else "degraded",
        "feed_running": feed.running,
        "listings": status.listings_count,
        "error": status.error,
        "last_fetch_at": status.last_fetch_at,
    }


@app.get("/status", response_model=FeedStatus, tags=["System"])
async def get_status(feed: MarketFeed = Depends(get_market_feed)):
    """Loading/refreshing flags, last error, and whether a manual refresh is allowed."""
    return feed.status()


# ============================================
# Market Data Endpoints
# ============================================

@app.get("/views", response_model=List[ViewInfo], tags=["Market Data"])
async def get_views(
    feed: MarketFeed = Depends(get_market_feed),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """List the dashboard views with the number of coins each holds right now."""
    return list_views(feed.listings, favorites.ids())


@app.get("/listings", response_model=ViewResult, tags=["Market Data"])
async def get_listings(
    view: ViewName = Query(default="all", description="all, favorites, hot, new, gainers, meme"),
    feed: MarketFeed = Depends(get_market_feed),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """
    Cards for one view of the last fetched listings.

    Examples:
        GET /listings
        GET /listings?view=gainers
    """
    return build_view(view, feed.listings, favorites.ids())


@app.post("/refresh", response_model=FeedStatus, tags=["Market Data"])
async def refresh(feed: MarketFeed = Depends(get_market_feed)):
    """
    Fetch listings now.

    Rejected with 429 while another fetch is running or within the throttle
    window after the last successful fetch. A failed fetch still answers 200;
    the message is in `error` and the previous listings are kept.
    """
    try:
        await feed.refresh()
    except RefreshThrottled as e:
        logger.info(f"Manual refresh rejected: {e}")
        raise HTTPException(
            status_code=429,
            detail=str(e),
            headers={"Retry-After": str(max(1, math.ceil(e.retry_after)))},
        )
    return feed.status()


# ============================================
# Favorites Endpoints
# ============================================
# Sync handlers: FastAPI runs them in its threadpool, off the event loop.

@app.get("/favorites", response_model=FavoritesResponse, tags=["Favorites"])
def get_favorites(favorites: FavoritesStore = Depends(get_favorites_store)):
    ids = favorites.ids()
    return FavoritesResponse(favorites=ids, count=len(ids))


@app.post("/favorites/{coin_id}/toggle", response_model=FavoriteToggleResponse, tags=["Favorites"])
def toggle_favorite(
    coin_id: str = Path(..., min_length=1, max_length=100, description="CoinGecko coin id (e.g., bitcoin)"),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """Star or unstar a coin."""
    try:
        is_favorite = favorites.toggle(coin_id)
    except OSError as e:
        logger.error(f"Favorites write failed for {coin_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save favorites")
    return FavoriteToggleResponse(coin_id=coin_id, is_favorite=is_favorite, favorites=favorites.ids())


@app.put("/favorites/{coin_id}", response_model=FavoriteToggleResponse, tags=["Favorites"])
def add_favorite(
    coin_id: str = Path(..., min_length=1, max_length=100, description="CoinGecko coin id (e.g., bitcoin)"),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    try:
        favorites.add(coin_id)
    except OSError as e:
        logger.error(f"Favorites write failed for {coin_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save favorites")
    return FavoriteToggleResponse(coin_id=coin_id, is_favorite=True, favorites=favorites.ids())


@app.delete("/favorites/{coin_id}", response_model=FavoriteToggleResponse, tags=["Favorites"])
def remove_favorite(
    coin_id: str = Path(..., min_length=1, max_length=100, description="CoinGecko coin id (e.g., bitcoin)"),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    if coin_id not in favorites:
        raise HTTPException(status_code=404, detail=f"{coin_id} is not a favorite")
    try:
        favorites.remove(coin_id)
    except OSError as e:
        logger.error(f"Favorites write failed for {coin_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save favorites")
    return FavoriteToggleResponse(coin_id=coin_id, is_favorite=False, favorites=favorites.ids())


# ============================================
# WebSocket Stream
# ============================================

def _view_message(kind: str, view: str, feed: MarketFeed, favorites: FavoritesStore) -> dict:
    return {
        "type": kind,
        "status": feed.status().model_dump(mode="json"),
        "view": build_view(view, feed.listings, favorites.ids()).model_dump(mode="json"),
    }


@app.websocket("/ws/listings")
async def websocket_listings(
    websocket: WebSocket,
    view: ViewName = Query(default="all"),
    feed: MarketFeed = Depends(get_market_feed),
    favorites: FavoritesStore = Depends(get_favorites_store),
):
    """
    Push the selected view after every fetch.

    The first message is a snapshot of the current state; each later message
    is either "listings" (fresh data) or "error" (fetch failed, stale data).
    Clients switch views by sending `{"view": "gainers"}`, which is answered
    with a new snapshot.

    Example:
        ws://localhost:8000/ws/listings?view=gainers
    """
    await websocket.accept()
    logger.info(f"WS connected: listings/{view}")
    receiver = None
    getter = None
    try:
        async with bus.subscription(LISTINGS_TOPIC) as queue:
            await websocket.send_json(_view_message("snapshot", view, feed, favorites))
            receiver = asyncio.create_task(websocket.receive_text())
            while True:
                getter = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)

                if getter in done:
                    event = getter.result()
                    await websocket.send_json(_view_message(event.get("type", LISTINGS_TOPIC), view, feed, favorites))
                else:
                    getter.cancel()

                if receiver in done:
                    text = receiver.result()  # raises WebSocketDisconnect on close
                    try:
                        request = json.loads(text)
                    except ValueError:
                        await websocket.send_json({"type": "error", "detail": 'Expected JSON like {"view": "hot"}'})
                        receiver = asyncio.create_task(websocket.receive_text())
                        continue
                    requested = request.get("view") if isinstance(request, dict) else None
                    if requested in VIEW_LABELS:
                        view = requested
                        await websocket.send_json(_view_message("snapshot", view, feed, favorites))
                    else:
                        await websocket.send_json({"type": "error", "detail": f"Unknown view: {requested!r}"})
                    receiver = asyncio.create_task(websocket.receive_text())
    except WebSocketDisconnect:
        logger.info(f"WS disconnected: listings/{view}")
    except Exception as e:
        logger.error(f"WS error listings/{view}: {e}")
        try:
            await websocket.close(code=1011, reason="Internal error")
        except RuntimeError:
            pass
    finally:
        for task in (receiver, getter):
            if task is not None and not task.done():
                task.cancel()
        logger.info(f"WS ended: listings/{view}")
