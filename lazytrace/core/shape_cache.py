"""
Bounded, thread-safe cache of inferred shapes keyed by node hash.

Design decisions:
- Key: the node's dag hash, so structurally identical subgraphs share one
  shape inference
- Thread-safe: a single RLock around every operation
- LRU eviction: the least recently read or written entry goes first
- First writer wins: ``add`` on an existing key keeps the stored value,
  since every producer of one hash computes the same shape
"""

import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional

from .exceptions import InvalidArgumentError
from .shape import Shape

logger = logging.getLogger(__name__)


class ShapeCache:
    """
    LRU cache from 64-bit node hash to Shape.

    Eviction only ever forces a recomputation; a key never maps to a shape
    other than the one first computed for it.

    Usage:
        cache = ShapeCache(capacity=4096)
        shape = cache.get(node.hash())
        if shape is None:
            shape = cache.add(node.hash(), compute())
    """

    def __init__(self, capacity: int = 4096):
        if capacity <= 0:
            raise InvalidArgumentError(
                "ShapeCache capacity must be positive", context={'capacity': capacity}
            )
        self._capacity = capacity
        self._entries: 'OrderedDict[int, Shape]' = OrderedDict()
        self._lock = threading.RLock()

        self.stats = {
            'hits': 0,
            'misses': 0,
            'inserts': 0,
            'evictions': 0,
            'duplicate_adds': 0,
        }

        logger.debug(f"ShapeCache initialized (capacity={capacity})")

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: int) -> Optional[Shape]:
        """Return the cached shape for ``key`` or None on a miss."""
        with self._lock:
            shape = self._entries.get(key)
            if shape is None:
                self.stats['misses'] += 1
                return None
            self._entries.move_to_end(key)
            self.stats['hits'] += 1
            return shape

    def add(self, key: int, shape: Shape) -> Shape:
        """
        Insert ``shape`` under ``key`` and return the stored value.

        If another thread stored ``key`` first, its value is kept and
        returned; callers must adopt the returned shape.
        """
        if not isinstance(shape, Shape):
            raise InvalidArgumentError(
                "ShapeCache only stores Shape values", context={'value': repr(shape)}
            )
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                self.stats['duplicate_adds'] += 1
                if existing != shape:
                    logger.warning(
                        f"Shape mismatch for hash {key:#018x}: cached {existing}, "
                        f"computed {shape}; keeping cached value"
                    )
                return existing

            while len(self._entries) >= self._capacity:
                evicted_key, _ = self._entries.popitem(last=False)
                self.stats['evictions'] += 1
                logger.debug(f"ShapeCache evicted {evicted_key:#018x}")

            self._entries[key] = shape
            self.stats['inserts'] += 1
            return shape

    def contains(self, key: int) -> bool:
        """Membership test that does not touch LRU order or stats."""
        with self._lock:
            return key in self._entries

    def __contains__(self, key: int) -> bool:
        return self.contains(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop all entries and reset statistics."""
        with self._lock:
            self._entries.clear()
            for k in self.stats:
                self.stats[k] = 0

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total = self.stats['hits'] + self.stats['misses']
            return {
                'entries': len(self._entries),
                'capacity': self._capacity,
                'hits': self.stats['hits'],
                'misses': self.stats['misses'],
                'hit_rate': self.stats['hits'] / total if total > 0 else 0.0,
                'inserts': self.stats['inserts'],
                'evictions': self.stats['evictions'],
                'duplicate_adds': self.stats['duplicate_adds'],
            }

    def __repr__(self):
        return f"ShapeCache(entries={len(self)}, capacity={self._capacity})"


# Process-wide default cache, used outside any TraceSession
_global_cache: Optional[ShapeCache] = None
_cache_lock = threading.Lock()


def get_shape_cache() -> ShapeCache:
    """Get or lazily create the process-wide shape cache."""
    global _global_cache

    if _global_cache is None:
        with _cache_lock:
            if _global_cache is None:
                from ..config import get_config
                capacity = get_config().ir.shape_cache_size
                _global_cache = ShapeCache(capacity)
                logger.info(f"Created process shape cache (capacity={capacity})")

    return _global_cache


def reset_shape_cache() -> None:
    """Forget the process-wide cache; the next access recreates it from config."""
    global _global_cache
    with _cache_lock:
        _global_cache = None


__all__ = ['ShapeCache', 'get_shape_cache', 'reset_shape_cache']
