"""Bounded in-memory cache for translations to avoid redundant API calls."""

from __future__ import annotations

import asyncio
from typing import Union

from cachetools import LRUCache, TTLCache

from dyntranslate.config import (
    CACHE_TYPES,
    DEFAULT_CACHE_MAXSIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    CoalescerConfig,
)

CacheKey = tuple[str, str, str]  # (source_lang, target_lang, source_text)


class TranslationCache:
    """Bounded cache mapping (source_lang, target_lang, text) → translated text.

    Backed by an LRU or TTL cache so a long-running session cannot grow it
    without limit. Values are only ever confirmed translations.

    ``pending`` maps keys with a request in flight to the future that will
    carry the result. Every coalescer holding this cache joins those futures
    instead of sending the same text again.
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_CACHE_MAXSIZE,
        cache_type: str = "lru",
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        if cache_type not in CACHE_TYPES:
            raise ValueError(f"Unknown cache type: {cache_type!r}")
        self.maxsize = maxsize
        self.cache_type = cache_type
        self.ttl_seconds = ttl_seconds
        self._store: Union[LRUCache[CacheKey, str], TTLCache[CacheKey, str]]
        self._store = self._new_store()
        self.pending: dict[CacheKey, asyncio.Future[str]] = {}
        self._closed = False
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_config(cls, config: CoalescerConfig) -> TranslationCache:
        return cls(
            maxsize=config.cache_maxsize,
            cache_type=config.cache_type,
            ttl_seconds=config.cache_ttl_seconds,
        )

    def _new_store(self) -> Union[LRUCache[CacheKey, str], TTLCache[CacheKey, str]]:
        if self.cache_type == "ttl":
            return TTLCache(maxsize=self.maxsize, ttl=self.ttl_seconds)
        return LRUCache(maxsize=self.maxsize)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, text: str, target_lang: str, source_lang: str) -> str | None:
        """Look up a cached translation. Returns None if not found."""
        value = self._store.get((source_lang, target_lang, text))
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def get_batch(
        self, texts: list[str], target_lang: str, source_lang: str,
    ) -> dict[str, str]:
        """Look up multiple texts at once. Returns dict of found {text: translated}."""
        result: dict[str, str] = {}
        for text in texts:
            if text in result:
                continue
            value = self.get(text, target_lang, source_lang)
            if value is not None:
                result[text] = value
        return result

    def put(
        self, text: str, target_lang: str, source_lang: str, translated: str,
    ) -> None:
        """Store a translation in the cache."""
        if self._closed:
            return
        self._store[(source_lang, target_lang, text)] = translated

    def put_batch(self, entries: list[tuple[str, str, str, str]]) -> None:
        """Store multiple translations. Each entry: (text, target_lang, source_lang, translated)."""
        for text, target_lang, source_lang, translated in entries:
            self.put(text, target_lang, source_lang, translated)

    def count(self) -> int:
        """Return total number of cached translations."""
        return len(self._store)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def clear(self) -> int:
        """Clear all cached translations. Returns number of entries deleted."""
        deleted = len(self._store)
        self._store = self._new_store()
        return deleted

    def close(self) -> None:
        self.clear()
        self.pending.clear()
        self._closed = True
