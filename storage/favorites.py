"""
Favorites Store

An ordered set of CoinGecko coin ids mirrored to a JSON file. The file holds
a flat JSON array of strings, e.g. ``["bitcoin", "pepe"]``, and is rewritten
after every change.

Usage:
    store = FavoritesStore("favorites.json")
    store.toggle("bitcoin")   # True: now a favorite
    store.ids()               # ['bitcoin']
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Union

from core.config import settings
from core.logging import get_logger


class FavoritesStore:
    """
    Favorite coin ids with write-through persistence.

    Insertion order is kept so the favorites list reads the way the user
    built it. A missing or unreadable file starts an empty list. Safe to use
    from threadpool workers: every read and write holds one lock.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self._path = Path(path or settings.favorites_path)
        self._logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._ids: List[str] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ============================================
    # Queries
    # ============================================

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._ids)

    def contains(self, coin_id: str) -> bool:
        with self._lock:
            return coin_id in self._ids

    def __contains__(self, coin_id: str) -> bool:
        return self.contains(coin_id)

    def __len__(self) -> int:
        return len(self._ids)

    # ============================================
    # Mutations
    # ============================================

    def toggle(self, coin_id: str) -> bool:
        """
        Flip membership of ``coin_id``.

        Returns:
            True if the coin is a favorite after the call
        """
        with self._lock:
            if coin_id in self._ids:
                self._ids.remove(coin_id)
                is_favorite = False
            else:
                self._ids.append(coin_id)
                is_favorite = True
            self._save()
        self._logger.info(f"Favorite {'added' if is_favorite else 'removed'}: {coin_id}")
        return is_favorite

    def add(self, coin_id: str) -> bool:
        """Add ``coin_id``; returns False if it was already present"""
        with self._lock:
            if coin_id in self._ids:
                return False
            self._ids.append(coin_id)
            self._save()
        self._logger.info(f"Favorite added: {coin_id}")
        return True

    def remove(self, coin_id: str) -> bool:
        """Remove ``coin_id``; returns False if it was not present"""
        with self._lock:
            if coin_id not in self._ids:
                return False
            self._ids.remove(coin_id)
            self._save()
        self._logger.info(f"Favorite removed: {coin_id}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._ids = []
            self._save()

    # ============================================
    # Persistence
    # ============================================

    def _load(self) -> List[str]:
        if not self._path.exists():
            self._logger.debug(f"No favorites file at {self._path}; starting empty")
            return []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self._logger.warning(f"Could not read favorites from {self._path}: {e}")
            return []

        if not isinstance(data, list):
            self._logger.warning(f"Ignoring favorites file {self._path}: expected a JSON array")
            return []

        ids: List[str] = []
        for item in data:
            if isinstance(item, str) and item and item not in ids:
                ids.append(item)
        self._logger.info(f"Loaded {len(ids)} favorites from {self._path}")
        return ids

    def _save(self) -> None:
        """
        Write the list atomically: temp file in the same directory, then replace.

        Called with the lock held.
        """
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".favorites-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._ids, f)
            os.replace(tmp_name, self._path)
        except OSError:
            self._logger.error(f"Failed to write favorites to {self._path}")
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


# Singleton store backed by settings.favorites_path (created on demand)
_favorites_store: Optional[FavoritesStore] = None


def get_favorites_store() -> FavoritesStore:
    global _favorites_store
    if _favorites_store is None:
        _favorites_store = FavoritesStore()
    return _favorites_store
