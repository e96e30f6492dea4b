"""
Trace sessions: explicit owners of a shape cache.

A TraceSession scopes shape memoization to one trace or compilation. Nodes
built while a session is active on the current thread resolve deferred
shapes through the session's cache; outside any session the process-wide
cache from ``get_shape_cache()`` is used.
"""

import logging
import threading
from typing import List, Optional

from .shape_cache import ShapeCache, get_shape_cache

logger = logging.getLogger(__name__)


class TraceSession:
    """Owns a ShapeCache for the duration of a trace."""

    _thread_local = threading.local()

    def __init__(self, shape_cache: Optional[ShapeCache] = None, config=None):
        if shape_cache is None:
            if config is None:
                from ..config import get_config
                config = get_config()
            shape_cache = ShapeCache(config.ir.shape_cache_size)
        self.shape_cache = shape_cache

    @classmethod
    def _stack(cls) -> List['TraceSession']:
        if not hasattr(cls._thread_local, "stack"):
            cls._thread_local.stack = []
        return cls._thread_local.stack

    @classmethod
    def current(cls) -> Optional['TraceSession']:
        """Innermost active session on this thread, if any."""
        stack = cls._stack()
        return stack[-1] if stack else None

    def __enter__(self) -> 'TraceSession':
        self._stack().append(self)
        logger.debug(f"Entered trace session ({self.shape_cache!r})")
        return self

    def __exit__(self, exc_type, exc, tb):
        stack = self._stack()
        if stack and stack[-1] is self:
            stack.pop()
        else:
            # Exited out of order; drop this session wherever it sits
            self._thread_local.stack = [s for s in stack if s is not self]
        logger.debug(f"Exited trace session ({self.shape_cache.get_stats()})")
        return False


def current_shape_cache() -> ShapeCache:
    """Cache of the active session, or the process-wide cache."""
    session = TraceSession.current()
    if session is not None:
        return session.shape_cache
    return get_shape_cache()


__all__ = ['TraceSession', 'current_shape_cache']
