"""On-disk record cache.

One JSON file per URL under a single directory, named by ``derive_key``.

Several processes may share the directory.  Writes go to a temporary file in
the same directory and are moved into place with ``os.replace``, so a reader
sees either the previous record or the new one, never a partial file.  Files
that vanish while being read or swept (another writer, another sweep, expiry
on read) are treated as already gone.

Expiry is computed from the record's fetch ``timestamp`` and the TTL passed
in at read/sweep time; nothing about the TTL is stored in the file.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from ogpinfo.core.config import Settings
from ogpinfo.models.ogp.record import Record
from ogpinfo.repositories.cache.keys import derive_key

logger = logging.getLogger(__name__)

Clock = Callable[[], int]

_TEMP_SUFFIX = ".tmp"
# minimum age before a temp file counts as abandoned by its writer
_TEMP_GRACE_SECONDS = 60


def _system_clock() -> int:
    return int(time.time())


class CacheCorruptionError(ValueError):
    """Raised when a cache file exists but does not hold a valid record."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Corrupt cache entry {path.name}: {reason}")
        self.path = path


class CacheWriteError(OSError):
    """Raised when a record cannot be persisted.

    ``record`` carries the in-memory record that failed to persist so callers
    can still use it.
    """

    def __init__(self, message: str, record: Record) -> None:
        super().__init__(message)
        self.record = record


class CacheStore:
    """File-system store for :class:`Record` objects."""

    SUFFIX = ".json"

    def __init__(self, directory: Path, clock: Clock = _system_clock) -> None:
        self._dir = Path(directory)
        self._clock = clock

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(cls, config: Settings, clock: Clock = _system_clock) -> CacheStore:
        """Instantiate the store on ``config.cache_dir``.

        Usage::

            store = CacheStore.from_settings(settings)
        """
        return cls(config.cache_dir, clock=clock)

    @property
    def directory(self) -> Path:
        return self._dir

    def now(self) -> int:
        return self._clock()

    def ensure_directory(self) -> None:
        """Create the cache directory and its parents.  Idempotent."""
        self._dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self._dir / key

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def read(self, key: str) -> Record | None:
        """Return the record stored under *key*, or ``None`` if there is none.

        Raises:
            CacheCorruptionError: the file is not a serialised record, or
                lacks the fetch timestamp every persisted record carries.
        """
        path = self.path_for(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            record = Record.from_json(data)
        except ValidationError as exc:
            raise CacheCorruptionError(path, f"{exc.error_count()} validation error(s)") from exc
        if record.timestamp is None:
            raise CacheCorruptionError(path, "missing timestamp")
        return record

    def is_expired(self, record: Record, ttl_seconds: int) -> bool:
        return record.is_expired(ttl_seconds, now=self._clock())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write(self, record: Record) -> Path:
        """Persist *record* atomically under ``derive_key(record.url)``.

        Raises:
            CacheWriteError: the directory could not be created or the file
                could not be written.  The temporary file is cleaned up.
        """
        path = self.path_for(derive_key(record.url))
        tmp_name: str | None = None
        try:
            self.ensure_directory()
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._dir,
                prefix=f".{path.stem}.",
                suffix=_TEMP_SUFFIX,
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(record.to_json())
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.exception("Cache write failed for url=%s", record.url)
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheWriteError(f"Cache write failed for {record.url}: {exc}", record) from exc
        return path

    def invalidate(self, key: str) -> bool:
        """Delete the entry for *key*.  Returns ``False`` if it was already gone."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        logger.debug("Invalidated cache entry %s", key)
        return True

    def sweep(self, ttl_seconds: int) -> int:
        """Delete every expired or corrupt entry.  Returns the number removed.

        Entries that cannot be read at all are logged and skipped.  Also
        removes temporary files older than *ttl_seconds* (at least
        ``_TEMP_GRACE_SECONDS``), which only a writer that died mid-write
        leaves behind.
        """
        if not self._dir.is_dir():
            return 0

        now = self._clock()
        removed = 0
        for path in list(self._dir.glob(f"*{self.SUFFIX}")):
            key = path.name
            try:
                record = self.read(key)
            except CacheCorruptionError as exc:
                logger.warning("%s; removing.", exc)
                removed += self.invalidate(key)
                continue
            except OSError as exc:
                logger.warning("Skipping unreadable cache entry %s: %s", key, exc)
                continue
            if record is None:
                continue
            if record.is_expired(ttl_seconds, now=now):
                removed += self.invalidate(key)

        temp_max_age = max(ttl_seconds, _TEMP_GRACE_SECONDS)
        for path in list(self._dir.glob(f".*{_TEMP_SUFFIX}")):
            try:
                stale = now > path.stat().st_mtime + temp_max_age
            except FileNotFoundError:
                continue
            if stale:
                path.unlink(missing_ok=True)

        logger.info("Cache sweep removed %d entries from %s", removed, self._dir)
        return removed
