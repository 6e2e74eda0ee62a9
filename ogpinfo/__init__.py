"""Open Graph / Twitter Card metadata retrieval with an on-disk cache.

Usage::

    from ogpinfo import CacheStore, Retriever, settings

    async with Retriever(CacheStore.from_settings(settings), settings) as retriever:
        record = await retriever.retrieve("https://example.com/")
        record.get("og:title")
"""

from ogpinfo.core.config import Settings, settings
from ogpinfo.models.ogp.record import Record
from ogpinfo.repositories.cache.store import CacheStore
from ogpinfo.services.ogp.retriever import Retriever

__all__ = ["CacheStore", "Record", "Retriever", "Settings", "settings"]
