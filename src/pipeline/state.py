from __future__ import annotations

import threading
from typing import Dict, Iterable, List

from src.schemas import ShopContact


class VisitedSet:
    """URLs already queued or scraped. Shared by worker threads."""

    def __init__(self, urls: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._seen: set[str] = set(urls)

    def add_if_new(self, url: str) -> bool:
        """Mark url as visited; False when some worker already had it."""
        with self._lock:
            if url in self._seen:
                return False
            self._seen.add(url)
            return True


def dedupe_preserving_order(urls: Iterable[str]) -> List[str]:
    visited = VisitedSet()
    return [u for u in urls if u and visited.add_if_new(u)]


class ResultStore:
    """Ordered {shop key: ShopContact} filled concurrently by workers.

    A later record under an existing key replaces the earlier one, so two
    storefronts that share a display name keep the last one scraped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, ShopContact] = {}
        self.replaced = 0

    def put(self, key: str, record: ShopContact) -> None:
        with self._lock:
            if key in self._records:
                self.replaced += 1
            self._records[key] = record

    def snapshot(self) -> Dict[str, ShopContact]:
        with self._lock:
            return dict(self._records)
