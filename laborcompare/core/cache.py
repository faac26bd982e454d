"""
Run-scoped cache.

Build stages read the same raw artifacts and published files several
times (the search index, metro data and OEWS publisher all read OEWS
outputs). A RunCache is created once per pipeline run and handed to
whatever needs it; nothing is cached at module level, so a fresh run
or a test always starts empty.
"""
import logging
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

_MISSING = object()


class RunCache:
    """
    In-memory cache whose lifetime is one pipeline run.

    Entries never expire on their own; call ``invalidate`` after writing
    a file that was previously cached.
    """

    def __init__(self, name: str = "run"):
        self.name = name
        self._cache: Dict[str, Any] = {}

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss."""
        value = self._cache.get(key, _MISSING)
        if value is _MISSING:
            logger.debug(f"{self.name} cache miss: {key}")
            value = loader()
            self._cache[key] = value
        return value

    def invalidate(self, key: str) -> bool:
        return self._cache.pop(key, _MISSING) is not _MISSING
