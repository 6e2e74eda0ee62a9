from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import ogpinfo.workers.fetcher as fetcher_module
from ogpinfo.core.config import Settings, settings
from ogpinfo.main import app
from ogpinfo.repositories.cache.store import CacheStore
from ogpinfo.services.ogp.retriever import Retriever

_EPOCH = 1_700_000_000


class FakeClock:
    """Settable stand-in for the store's epoch-seconds clock."""

    def __init__(self, now: int = _EPOCH) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path) -> Settings:
    return Settings(
        cache_dir=tmp_path / "cache",
        cache_ttl=3600,
        http_max_retries=0,
        user_agent="OgpInfoTest/1.0",
    )


@pytest.fixture
def store(config, clock) -> CacheStore:
    return CacheStore.from_settings(config, clock=clock)


@pytest.fixture
async def retriever(store, config):
    async with Retriever(store, config) as r:
        yield r


@pytest.fixture
def client(tmp_path, monkeypatch):
    """TestClient on a temporary cache directory with no shared HTTP client leaking
    between tests.
    """
    monkeypatch.setattr(settings, "cache_dir", tmp_path / "api-cache")
    monkeypatch.setattr(settings, "http_max_retries", 0)
    fetcher_module._http_client = None

    with TestClient(app) as c:
        yield c

    fetcher_module._http_client = None
