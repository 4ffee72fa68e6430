# site_crawl/crawler/dedup.py
"""
Grow-only URL sets used for work dedup (visited) and output dedup (seen).
"""
from __future__ import annotations

import threading
from typing import Iterator, Set


class UrlSet:
    """Thread-safe set of canonical URLs; keys are never removed."""

    def __init__(self, name: str = "urls") -> None:
        self.name = name
        self._items: Set[str] = set()
        self._lock = threading.Lock()

    def add_if_absent(self, key: str) -> bool:
        """Atomically insert *key*; True only for the caller that inserted it."""
        with self._lock:
            if key in self._items:
                return False
            self._items.add(key)
            return True

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    __contains__ = contains

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            snapshot = list(self._items)
        return iter(snapshot)

    def __repr__(self) -> str:
        return f"<UrlSet {self.name} size={len(self)}>"
