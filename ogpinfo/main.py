from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from ogpinfo.api.router import router
from ogpinfo.core.config import settings
from ogpinfo.repositories.cache.store import CacheStore
from ogpinfo.workers.fetcher import close_http_client


def _configure_logging() -> None:
    """Send ``ogpinfo`` logs to stderr at the configured level."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    app_log = logging.getLogger("ogpinfo")
    app_log.setLevel(level)
    if not app_log.handlers:
        app_log.addHandler(handler)
    app_log.propagate = False


_configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # ── Startup ──────────────────────────────────────────────────────
    CacheStore.from_settings(settings).ensure_directory()
    yield
    # ── Shutdown ─────────────────────────────────────────────────────
    await close_http_client()


app = FastAPI(
    title="OGP Info",
    description="Fetches Open Graph, Twitter Card and page metadata with an on-disk cache.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok"}
