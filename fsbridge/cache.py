import logging
import threading
import time
from collections.abc import Callable

from cachetools import LRUCache, TTLCache

from .metadata import Listing, Metadata
from .paths import is_within

logger = logging.getLogger(__name__)


class MetadataCache:
    """
    Cache for path metadata and directory listings.

    Thread-safe: every operation runs under one lock per instance, and the
    cached records are immutable, so a reader racing an invalidation sees
    either the old record or a miss. Entries expire after ``ttl_seconds``
    (never, when None) and the least recently used entries are evicted
    once ``max_entries`` is reached.

    A miss only means "unknown". Negative results are never stored.

    ``generation`` increases on every invalidation. A caller that read
    from the backend can pass the generation it saw before the read as
    ``since``; the write is then skipped if anything was invalidated in
    the meantime, so a slow read never re-caches data a mutation replaced.
    """

    def __init__(
        self,
        ttl_seconds: float | None = 60,
        max_entries: int = 10000,
        enabled: bool = True,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.enabled = enabled
        self._lock = threading.RLock()
        self._generation = 0
        self._metadata = self._new_store(timer)
        # Keyed by (directory, recursive)
        self._listings = self._new_store(timer)

    def _new_store(self, timer: Callable[[], float]):
        if self.ttl_seconds is None:
            return LRUCache(maxsize=self.max_entries)
        return TTLCache(maxsize=self.max_entries, ttl=self.ttl_seconds, timer=timer)

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _stale(self, since: int | None) -> bool:
        """Caller must hold lock."""
        return since is not None and since != self._generation

    def get(self, path: str) -> Metadata | None:
        """
        Retrieve metadata for a path if cached and not expired.

        Returns:
            The cached record, or None on a miss.
        """
        with self._lock:
            return self._metadata.get(path)

    def put(self, path: str, metadata: Metadata, since: int | None = None) -> bool:
        """
        Store metadata for a path, replacing any previous record.

        Returns:
            True if the record was stored.
        """
        if not self.enabled:
            return False
        with self._lock:
            if self._stale(since):
                return False
            self._metadata[path] = metadata
            return True

    def add(self, path: str, metadata: Metadata, since: int | None = None) -> bool:
        """Store metadata only if nothing is cached for the path yet."""
        if not self.enabled:
            return False
        with self._lock:
            if self._stale(since) or path in self._metadata:
                return False
            self._metadata[path] = metadata
            return True

    def get_listing(self, directory: str, recursive: bool) -> Listing | None:
        with self._lock:
            return self._listings.get((directory, recursive))

    def put_listing(
        self, directory: str, recursive: bool, listing: Listing, since: int | None = None
    ) -> bool:
        """
        Store a directory listing.

        Does not populate per-entry metadata; the caller decides whether to
        also put() each record.
        """
        if not self.enabled:
            return False
        with self._lock:
            if self._stale(since):
                return False
            self._listings[(directory, recursive)] = listing
            return True

    def invalidate(self, path: str) -> None:
        """
        Remove the record for ``path`` and every listing that could contain it.

        A listing could contain ``path`` when its directory is ``path`` itself
        or any ancestor of it (recursive listings reach arbitrarily deep, and a
        non-recursive listing of the parent names it directly).
        """
        with self._lock:
            self._generation += 1
            self._metadata.pop(path, None)
            for key in list(self._listings.keys()):
                if is_within(key[0], path):
                    self._listings.pop(key, None)
        logger.debug("Cache invalidated: %r", path)

    def replace(self, path: str, metadata: Metadata, since: int | None = None) -> bool:
        """
        Invalidate ``path`` and store its new record in one step.

        The invalidation always happens. The record is only stored if
        nothing was invalidated since ``since``.

        Returns:
            True if the record was stored.
        """
        with self._lock:
            stale = self._stale(since)
            self.invalidate(path)
            if stale or not self.enabled:
                return False
            self._metadata[path] = metadata
            return True

    def invalidate_tree(self, path: str) -> None:
        """Like invalidate(), and also drop everything cached below ``path``."""
        with self._lock:
            self._generation += 1
            for key in list(self._metadata.keys()):
                if is_within(path, key):
                    self._metadata.pop(key, None)
            for key in list(self._listings.keys()):
                directory = key[0]
                if is_within(directory, path) or is_within(path, directory):
                    self._listings.pop(key, None)
        logger.debug("Cache invalidated (tree): %r", path)

    def invalidate_all(self) -> None:
        """Clear the whole cache."""
        with self._lock:
            self._generation += 1
            self._metadata.clear()
            self._listings.clear()
        logger.debug("Cache flushed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._metadata) + len(self._listings)
