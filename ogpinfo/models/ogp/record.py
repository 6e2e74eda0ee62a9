from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Metadata retrieved for one URL, as cached on disk.

    The persisted JSON uses the field names ``url``, ``httpStatus``,
    ``timestamp`` and ``values``; ``http_status`` is the Python-side name.

    ``http_status`` is ``None`` until a fetch has happened and ``0`` when the
    fetch failed before any HTTP response arrived.  ``values`` is always empty
    unless ``http_status`` is 200.
    """

    model_config = ConfigDict(populate_by_name=True)

    url: str
    http_status: int | None = Field(default=None, alias="httpStatus")
    timestamp: int | None = None
    values: dict[str, str] = Field(default_factory=dict)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get(self, key: str) -> str:
        """Return the value for *key*, or ``""`` if the page did not carry it."""
        return self.values.get(key, "")

    def is_expired(self, ttl_seconds: int, now: int | None = None) -> bool:
        """True once *ttl_seconds* have passed since the last fetch.

        A record that was never fetched has no timestamp and never expires.
        """
        if self.timestamp is None:
            return False
        if now is None:
            now = int(time.time())
        return now > self.timestamp + ttl_seconds

    @property
    def title(self) -> str:
        return self.get("title")

    @property
    def description(self) -> str:
        return self.get("description")

    @property
    def image(self) -> str:
        return self.get("og:image") or self.get("twitter:image")

    @property
    def icon(self) -> str:
        return self.get("icon") or self.get("apple-touch-icon")

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    @classmethod
    def from_json(cls, data: bytes | str) -> Record:
        """Parse a persisted record.  Raises ``pydantic.ValidationError``."""
        return cls.model_validate_json(data)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
