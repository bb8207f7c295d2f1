"""
Dashboard Views

Pure filter/sort functions over the last fetched listing. Nothing here does
I/O; the feed service supplies the listings and the favorites store supplies
the favorite ids.

Views:
    all       - first N listings in provider (market cap) order
    favorites - listings whose id is a favorite
    hot       - 24h volume at or above the hot threshold
    new       - all-time high set within the last N days
    gainers   - top N by 24h percentage change
    meme      - listings in the static meme coin list

Usage:
    from core.views import select_view

    coins = select_view("hot", listings, favorites=store.ids())
"""

from datetime import datetime
from typing import Collection, Dict, Iterable, List, Optional, Sequence

from core.config import settings
from core.schemas import CoinCard, CoinListing, ViewInfo, ViewResult
from core.utils.time import days_ago, ensure_utc


VIEW_LABELS: Dict[str, str] = {
    "all": "All",
    "favorites": "Favorites",
    "hot": "Hot",
    "new": "New",
    "gainers": "Gainers",
    "meme": "Meme",
}

FAVORITES_EMPTY_MESSAGE = (
    "No favorites yet. Click the star icon to add cryptocurrencies to your favorites."
)


# ============================================
# Filters
# ============================================

def filter_favorites(listings: Sequence[CoinListing], favorites: Collection[str]) -> List[CoinListing]:
    """Listings whose id is in ``favorites``, in provider order"""
    wanted = set(favorites)
    return [coin for coin in listings if coin.id in wanted]


def filter_hot(listings: Sequence[CoinListing], threshold: Optional[float] = None) -> List[CoinListing]:
    """Listings with ``total_volume >= threshold``; missing volume never qualifies"""
    if threshold is None:
        threshold = settings.hot_volume_threshold
    return [
        coin for coin in listings
        if coin.total_volume is not None and coin.total_volume >= threshold
    ]


def filter_new(
    listings: Sequence[CoinListing],
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[CoinListing]:
    """
    Listings whose all-time high falls within the last ``days`` days.

    CoinGecko has no listing date on this endpoint; ``ath_date`` stands in
    for recency. Coins without an ``ath_date`` are never new.
    """
    if days is None:
        days = settings.new_listing_days
    cutoff = days_ago(days, now)
    return [
        coin for coin in listings
        if coin.ath_date is not None and ensure_utc(coin.ath_date) >= cutoff
    ]


def top_gainers(listings: Sequence[CoinListing], limit: Optional[int] = None) -> List[CoinListing]:
    """
    Listings sorted by 24h percentage change, highest first, truncated to ``limit``.

    The sort is stable; coins without a 24h change go last.
    """
    if limit is None:
        limit = settings.view_size
    ranked = sorted(
        listings,
        key=lambda coin: (
            coin.price_change_percentage_24h is None,
            -(coin.price_change_percentage_24h or 0.0),
        ),
    )
    return ranked[:limit]


def filter_meme(listings: Sequence[CoinListing], meme_ids: Optional[Iterable[str]] = None) -> List[CoinListing]:
    """Listings whose id is in the static meme coin list"""
    if meme_ids is None:
        meme_ids = settings.meme_coins_list
    wanted = set(meme_ids)
    return [coin for coin in listings if coin.id in wanted]


def select_view(
    view: str,
    listings: Sequence[CoinListing],
    favorites: Collection[str] = (),
    now: Optional[datetime] = None,
) -> List[CoinListing]:
    """
    Apply the named view to ``listings``.

    Unknown names fall back to the "all" view.
    """
    if view == "favorites":
        return filter_favorites(listings, favorites)
    if view == "hot":
        return filter_hot(listings)
    if view == "new":
        return filter_new(listings, now=now)
    if view == "gainers":
        return top_gainers(listings)
    if view == "meme":
        return filter_meme(listings)
    return list(listings[: settings.view_size])


# ============================================
# Presentation
# ============================================

def format_amount(value: Optional[float], prefix: str = "$") -> str:
    """
    Format a number with thousands separators.

    Values of 1 or more keep up to 3 decimals; smaller values keep up to 8
    so sub-cent prices stay readable.

    Examples:
        >>> format_amount(67123.0)
        '$67,123'
        >>> format_amount(0.00001234)
        '$0.00001234'
        >>> format_amount(None)
        'N/A'
    """
    if value is None:
        return "N/A"
    decimals = 3 if abs(value) >= 1 or value == 0 else 8
    text = f"{value:,.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{prefix}{text}"


def format_card(coin: CoinListing, favorites: Collection[str] = ()) -> CoinCard:
    """Build the display card for one listing"""
    change = coin.price_change_percentage_24h or 0.0
    return CoinCard(
        id=coin.id,
        symbol=coin.symbol.upper(),
        name=coin.name,
        image=coin.image,
        price=format_amount(coin.current_price),
        change_24h=f"{abs(change):.2f}%",
        direction="down" if change < 0 else "up",
        market_cap=format_amount(coin.market_cap),
        volume=format_amount(coin.total_volume),
        is_favorite=coin.id in favorites,
    )


def build_view(
    view: str,
    listings: Sequence[CoinListing],
    favorites: Collection[str] = (),
    now: Optional[datetime] = None,
) -> ViewResult:
    """Select a view and render its cards"""
    name = view if view in VIEW_LABELS else "all"
    favorite_set = set(favorites)
    coins = select_view(name, listings, favorite_set, now=now)
    cards = [format_card(coin, favorite_set) for coin in coins]
    empty_message = FAVORITES_EMPTY_MESSAGE if name == "favorites" and not cards else None
    return ViewResult(view=name, count=len(cards), cards=cards, empty_message=empty_message)


def list_views(
    listings: Sequence[CoinListing],
    favorites: Collection[str] = (),
    now: Optional[datetime] = None,
) -> List[ViewInfo]:
    """Every view with the number of cards it currently holds"""
    favorite_set = set(favorites)
    return [
        ViewInfo(name=name, label=label, count=len(select_view(name, listings, favorite_set, now=now)))
        for name, label in VIEW_LABELS.items()
    ]
