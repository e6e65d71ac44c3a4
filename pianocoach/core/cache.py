"""
Cache manager for PianoCoach.

In-memory LRU cache of analysis results keyed by SampleBuffer
fingerprint, so a reference performance is analysed once and compared
against many recordings.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from pianocoach.core.models import AnalysisResult


class CacheManager:
    """
    Thread-safe in-memory LRU cache for analysis results.

    Features:
    - LRU (Least Recently Used) eviction
    - Time-to-live (TTL) expiration
    - Thread-safe operations
    """

    def __init__(self, max_size: int = 64, ttl: int = 3600):
        """
        Args:
            max_size: Maximum number of cached results
            ttl: Time to live in seconds
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")

        self.max_size = max_size
        self.ttl = ttl
        self._cache: "OrderedDict[str, Tuple[AnalysisResult, float]]" = OrderedDict()
        self._lock = threading.RLock()
        self.logger = logging.getLogger("cache")

        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[AnalysisResult]:
        """Cached result for a buffer fingerprint, or None if absent or expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            value, timestamp = entry
            if time.time() - timestamp > self.ttl:
                del self._cache[key]
                self._misses += 1
                self.logger.debug(f"Cache expired: {key[:8]}...")
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            self.logger.debug(f"Cache hit: {key[:8]}...")
            return value

    def set(self, key: str, value: AnalysisResult) -> None:
        """Store a result, evicting the least recently used entries at capacity."""
        with self._lock:
            self._cache.pop(key, None)

            while len(self._cache) >= self.max_size:
                oldest_key, _ = self._cache.popitem(last=False)
                self.logger.debug(f"Evicted: {oldest_key[:8]}...")

            self._cache[key] = (value, time.time())
            self.logger.debug(f"Cached: {key[:8]}...")

    def clear(self) -> None:
        """Clear all cached items."""
        with self._lock:
            self._cache.clear()
            self.logger.info("Cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """Hits, misses, size and hit ratio."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'hits': self._hits,
                'misses': self._misses,
                'size': len(self._cache),
                'max_size': self.max_size,
                'hit_ratio': self._hits / total if total > 0 else 0.0,
                'ttl': self.ttl,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: str) -> bool:
        """Check if key is cached and fresh (doesn't update LRU order)."""
        with self._lock:
            entry = self._cache.get(key)
            return entry is not None and time.time() - entry[1] <= self.ttl


def create_cache_manager(config: Optional[Dict[str, Any]] = None) -> Optional[CacheManager]:
    """
    Factory function to create CacheManager from the cache config section.

    Returns:
        CacheManager, or None when caching is disabled
    """
    if config is None:
        config = {}

    if not config.get('enabled', True):
        return None

    return CacheManager(
        max_size=config.get('max_size', 64),
        ttl=config.get('ttl', 3600),
    )
