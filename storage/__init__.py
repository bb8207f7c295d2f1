"""
Storage Package

Handles local persistence.

Current implementation:
- FavoritesStore: favorite coin ids mirrored to a JSON file

Listings themselves are never persisted; they live in memory in the market feed.
"""

from storage.favorites import FavoritesStore, get_favorites_store

__all__ = ["FavoritesStore", "get_favorites_store"]
