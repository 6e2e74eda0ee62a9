from __future__ import annotations

from pydantic import BaseModel


class RecordResponse(BaseModel):
    """API response shape for a metadata record."""

    url: str
    http_status: int | None
    timestamp: int | None
    values: dict[str, str]


class SweepResponse(BaseModel):
    """Result of a cache sweep."""

    removed: int
