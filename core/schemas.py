"""
Normalized Data Schemas

This module defines Pydantic models for the market listings and for
everything the dashboard API returns.

Models:
    - CoinListing: One record from the CoinGecko markets endpoint
    - CoinCard: A listing prepared for display (formatted values, favorite flag)
    - ViewResult: The cards of one dashboard view
    - ViewInfo: A view name with its current card count
    - FeedStatus: Fetch lifecycle state (loading, refreshing, error, last fetch)
    - FavoritesResponse: The persisted favorites list
"""

from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from core.utils.time import parse_iso_datetime


ViewName = Literal["all", "favorites", "hot", "new", "gainers", "meme"]


# ============================================
# Market Listing Schema
# ============================================

class CoinListing(BaseModel):
    """
    Market Listing Data Model

    Mirrors the fields of a CoinGecko ``/coins/markets`` record that the
    dashboard uses. Unknown fields in the payload are ignored.

    Attributes:
        id: CoinGecko coin id (e.g., "bitcoin"); used as the favorites key
        symbol: Ticker symbol, lowercase as returned by CoinGecko
        name: Display name
        image: Icon URL
        current_price: Price in the quote currency
        price_change_percentage_24h: 24h change in percent (may be missing)
        market_cap: Market capitalization
        total_volume: 24h trading volume
        circulating_supply: Circulating supply
        ath: All-time-high price
        ath_date: When the all-time high was set (UTC)

    Notes:
        - Numeric fields are optional; CoinGecko returns null for thinly traded coins
        - An unparseable ath_date is stored as None
    """

    id: str = Field(..., min_length=1, description="CoinGecko coin id", examples=["bitcoin"])
    symbol: str = Field(..., description="Ticker symbol", examples=["btc"])
    name: str = Field(..., description="Display name", examples=["Bitcoin"])
    image: str = Field(default="", description="Icon URL")

    current_price: Optional[float] = Field(default=None, description="Current price")
    price_change_percentage_24h: Optional[float] = Field(
        default=None,
        description="Price change over 24h in percent"
    )
    market_cap: Optional[float] = Field(default=None, description="Market capitalization")
    total_volume: Optional[float] = Field(default=None, description="24h trading volume")
    circulating_supply: Optional[float] = Field(default=None, description="Circulating supply")
    ath: Optional[float] = Field(default=None, description="All-time-high price")
    ath_date: Optional[datetime] = Field(default=None, description="All-time-high date (UTC)")

    @field_validator("ath_date", mode="before")
    @classmethod
    def parse_ath_date(cls, v):
        """Accept ISO-8601 strings; anything unparseable becomes None"""
        if v is None or isinstance(v, datetime):
            return v
        return parse_iso_datetime(v)

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "id": "bitcoin",
                "symbol": "btc",
                "name": "Bitcoin",
                "image": "https://assets.coingecko.com/coins/images/1/large/bitcoin.png",
                "current_price": 67123.0,
                "price_change_percentage_24h": 2.35,
                "market_cap": 1322000000000.0,
                "total_volume": 28500000000.0,
                "circulating_supply": 19700000.0,
                "ath": 73738.0,
                "ath_date": "2024-03-14T07:10:36.635Z"
            }
        }
    )


# ============================================
# Presentation Schemas
# ============================================

class CoinCard(BaseModel):
    """
    A listing as rendered on a dashboard card.

    Attributes:
        price: Current price formatted with thousands separators (e.g., "$67,123")
        change_24h: Absolute 24h change with two decimals (e.g., "2.35%")
        direction: "up" when the change is zero or positive, otherwise "down"
        is_favorite: Whether the coin is in the favorites list
    """

    id: str
    symbol: str = Field(..., description="Ticker symbol in uppercase")
    name: str
    image: str = ""
    price: str
    change_24h: str
    direction: Literal["up", "down"]
    market_cap: str
    volume: str
    is_favorite: bool = False


class ViewResult(BaseModel):
    """Cards for one view, plus an empty-state message where the view has one"""

    view: ViewName
    count: int = Field(..., ge=0)
    cards: List[CoinCard] = Field(default_factory=list)
    empty_message: Optional[str] = None


class ViewInfo(BaseModel):
    name: ViewName
    label: str
    count: int = Field(..., ge=0)


class FeedStatus(BaseModel):
    """
    Fetch lifecycle state as shown next to the refresh control.

    Attributes:
        loading: An automatic fetch is running
        refreshing: A manual refresh is running
        error: Last error message, None after a successful fetch
        last_fetch_at: Wall-clock time of the last successful fetch (UTC)
        can_refresh: Whether a manual refresh would be accepted now
        refresh_available_in: Seconds until the throttle window closes
        listings_count: Number of listings currently held
    """

    loading: bool
    refreshing: bool
    error: Optional[str] = None
    last_fetch_at: Optional[datetime] = None
    can_refresh: bool
    refresh_available_in: float = Field(default=0.0, ge=0)
    listings_count: int = Field(..., ge=0)


class FavoritesResponse(BaseModel):
    favorites: List[str] = Field(default_factory=list)
    count: int = Field(..., ge=0)


class FavoriteToggleResponse(BaseModel):
    coin_id: str
    is_favorite: bool
    favorites: List[str] = Field(default_factory=list)
