from __future__ import annotations

from pydantic import BaseModel


class FetchResponse(BaseModel):
    """Outcome of one page fetch, after redirects.

    Internal to the fetch → extract boundary; never persisted.
    """

    url: str
    final_url: str
    status: int
    body: bytes
    encoding: str | None = None
