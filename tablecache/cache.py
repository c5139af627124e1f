"""Table existence cache - in-memory, thread-safe, persistable."""

import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

from tablecache.storage import read_cache_file, write_cache_file


class ExistenceCache:
    """Caches table existence checks, keyed by canonical table name.

    Wraps an underlying ``check(table, **options) -> bool``. Lookups without
    options are answered from the cache when possible; lookups with any option
    always run the live check and leave the cache alone.

    The mapping is guarded by a single lock. The live check runs outside it, so
    a slow check never blocks lookups of other tables. Concurrent misses for
    the same table are not coalesced: each runs its own check and writes the
    same result.
    """

    def __init__(
        self,
        check: Callable[..., bool],
        canonicalize: Callable[[Any], str] = str,
        on_invalidate: Callable[[Any], None] | None = None,
    ):
        self._check = check
        self._canonicalize = canonicalize
        self._on_invalidate = on_invalidate
        self._tables: dict[str, bool] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tables)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._tables

    def exists(self, table: Any, **options: Any) -> bool:
        """Return whether the table exists, using the cache unless options are given."""
        if options:
            logger.debug("Table exists bypass: {} {}", table, options)
            return self._check(table, **options)

        key = self._canonicalize(table)
        with self._lock:
            cached = self._tables.get(key)
        if cached is not None:
            logger.debug("Table exists cache hit: {}", key)
            return cached

        result = bool(self._check(table))
        with self._lock:
            self._tables[key] = result
        logger.debug("Table exists cache miss: {} -> {}", key, result)
        return result

    def invalidate(self, table: Any) -> None:
        """Drop the cached entry for a table, then run the underlying invalidation."""
        key = self._canonicalize(table)
        with self._lock:
            removed = self._tables.pop(key, None)
        if removed is not None:
            logger.debug("Table exists cache invalidated: {}", key)
        if self._on_invalidate is not None:
            self._on_invalidate(table)

    def snapshot(self) -> dict[str, bool]:
        """Copy of the current mapping."""
        with self._lock:
            return dict(self._tables)

    def clear(self) -> None:
        with self._lock:
            self._tables = {}
        logger.debug("Table exists cache cleared")

    def dump(self, path: str | os.PathLike) -> None:
        """Write the whole cache to path, replacing any existing file."""
        tables = self.snapshot()
        write_cache_file(path, tables)
        logger.info("Table exists cache dumped: {} entries -> {}", len(tables), path)

    def dump_if_absent(self, path: str | os.PathLike) -> bool:
        """Dump the cache unless a file already exists at path."""
        if Path(path).exists():
            logger.info("Table exists cache file already present, not dumping: {}", path)
            return False
        tables = self.snapshot()
        if not write_cache_file(path, tables, overwrite=False):
            logger.info("Table exists cache file created concurrently, not dumping: {}", path)
            return False
        logger.info("Table exists cache dumped: {} entries -> {}", len(tables), path)
        return True

    def load(self, path: str | os.PathLike) -> None:
        """Replace the cache with the contents of the file at path."""
        tables = read_cache_file(path)
        with self._lock:
            self._tables = tables
        logger.info("Table exists cache loaded: {} entries <- {}", len(tables), path)

    def load_if_present(self, path: str | os.PathLike) -> bool:
        """Load the cache if a file exists at path."""
        if not Path(path).exists():
            logger.info("Table exists cache file not found, not loading: {}", path)
            return False
        self.load(path)
        return True
