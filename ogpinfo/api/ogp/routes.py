from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import HttpUrl, ValidationError

from ogpinfo.core.config import settings
from ogpinfo.models.common import MessageResponse
from ogpinfo.models.ogp.schemas import RecordResponse, SweepResponse
from ogpinfo.repositories.cache.store import CacheStore, CacheWriteError
from ogpinfo.services.ogp.retriever import Retriever
from ogpinfo.workers.fetcher import get_http_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ogp", tags=["ogp"])


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


def _get_retriever() -> Retriever:
    """FastAPI dependency that builds a ``Retriever`` for each request.

    The HTTP client is the shared module-level one; it is closed at app
    shutdown, not per request.
    """
    return Retriever(
        CacheStore.from_settings(settings), settings, client=get_http_client()
    )


def _validate_url(url: str) -> str:
    try:
        HttpUrl(url)
    except ValidationError:
        raise HTTPException(status_code=422, detail=f"Invalid URL: {url}")
    # Cache keys are derived from the URL exactly as given.
    return url


# ---------------------------------------------------------------------------
# GET /ogp
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=RecordResponse,
    summary="Retrieve page metadata for a URL",
)
async def get_ogp(
    url: str,
    retriever: Retriever = Depends(_get_retriever),
) -> RecordResponse:
    """Return the metadata record for *url*, fetching it on a cache miss.

    A page that could not be fetched still yields a record: ``http_status``
    carries the HTTP status (``0`` when no response arrived) and ``values``
    is empty.

    - **200**: record returned (cached or freshly fetched)
    - **422**: ``url`` query parameter missing or not a valid HTTP URL
    - **500**: unexpected failure
    """
    url = _validate_url(url)
    try:
        record = await retriever.retrieve(url)
    except CacheWriteError as exc:
        logger.warning("GET /ogp serving unpersisted record for %s", url)
        record = exc.record
    except Exception as exc:
        logger.error("GET /ogp error for %s: %s", url, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return RecordResponse(**record.model_dump())


# ---------------------------------------------------------------------------
# DELETE /ogp
# ---------------------------------------------------------------------------


@router.delete(
    "",
    response_model=MessageResponse,
    summary="Drop the cached record for a URL",
)
def delete_ogp(
    url: str,
    retriever: Retriever = Depends(_get_retriever),
) -> MessageResponse:
    """Invalidate the cached record for *url*.  Succeeds whether or not one existed."""
    url = _validate_url(url)
    if retriever.invalidate(url):
        return MessageResponse(message=f"Cache entry removed for {url}")
    return MessageResponse(message=f"No cache entry for {url}")


# ---------------------------------------------------------------------------
# POST /ogp/sweep
# ---------------------------------------------------------------------------


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Delete expired cache entries",
)
def sweep_cache(
    retriever: Retriever = Depends(_get_retriever),
) -> SweepResponse:
    """Remove every cached record older than the configured TTL.

    - **200**: sweep finished; ``removed`` is the number of entries deleted
    - **500**: the cache directory could not be scanned
    """
    try:
        removed = retriever.clear_cache()
    except OSError as exc:
        logger.error("POST /ogp/sweep error: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return SweepResponse(removed=removed)
