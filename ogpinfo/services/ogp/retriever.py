from __future__ import annotations

import logging

import httpx

from ogpinfo.core.config import Settings, settings
from ogpinfo.models.ogp.record import Record
from ogpinfo.repositories.cache.keys import derive_key
from ogpinfo.repositories.cache.store import CacheCorruptionError, CacheStore
from ogpinfo.services.ogp.extractor import MetadataExtractor
from ogpinfo.workers.fetcher import FetchError, build_http_client, fetch_page

logger = logging.getLogger(__name__)

#: ``http_status`` recorded when no HTTP response was received at all.
NETWORK_FAILURE_STATUS = 0


class Retriever:
    """Cache-aware metadata retrieval.

    ``retrieve`` serves a record from the cache while it is younger than
    ``config.cache_ttl``; otherwise it fetches the page, extracts metadata and
    persists the new record.  Failed fetches are cached too, so an unreachable
    URL is not hit again until the TTL elapses.

    Concurrent calls for the same URL may both fetch and both write; the
    last write wins.
    """

    def __init__(
        self,
        store: CacheStore,
        config: Settings = settings,
        client: httpx.AsyncClient | None = None,
        extractor: MetadataExtractor | None = None,
    ) -> None:
        self._store = store
        self._config = config
        self._owns_client = client is None
        self._client = client if client is not None else build_http_client(config)
        self._extractor = extractor or MetadataExtractor()

    async def __aenter__(self) -> Retriever:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this retriever created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def retrieve(self, url: str) -> Record:
        """Return the metadata record for *url*, from cache or freshly fetched.

        Raises:
            CacheWriteError: the fetched record could not be persisted.  The
                record itself is available as ``exc.record``.
        """
        cached = self._cached(url)
        if cached is not None:
            return cached

        record = await self._fetch(url)
        self._store.write(record)
        return record

    def invalidate(self, url: str) -> bool:
        """Drop the cached record for *url*.  Returns ``False`` if none existed."""
        return self._store.invalidate(derive_key(url))

    def clear_cache(self) -> int:
        """Sweep expired entries from the cache.  Returns the number removed."""
        return self._store.sweep(self._config.cache_ttl)

    def _cached(self, url: str) -> Record | None:
        key = derive_key(url)
        if not self._store.exists(key):
            logger.debug("Cache miss for %s", url)
            return None

        try:
            record = self._store.read(key)
        except CacheCorruptionError as exc:
            logger.warning("%s; refetching %s", exc, url)
            self._store.invalidate(key)
            return None

        if record is None:
            # removed between exists() and read()
            return None
        if self._store.is_expired(record, self._config.cache_ttl):
            logger.debug("Cache entry for %s expired", url)
            self._store.invalidate(key)
            return None

        logger.debug("Cache hit for %s", url)
        return record

    async def _fetch(self, url: str) -> Record:
        record = Record(url=url)
        try:
            response = await fetch_page(
                self._client, url, max_retries=self._config.http_max_retries
            )
        except FetchError as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            record.http_status = NETWORK_FAILURE_STATUS
            record.timestamp = self._store.now()
            return record

        record.http_status = response.status
        record.timestamp = self._store.now()
        if response.status != 200:
            logger.info("Fetch of %s returned HTTP %d", url, response.status)
            return record

        record.values = self._extractor.extract_from_bytes(
            response.body, response.encoding, url
        )
        return record
