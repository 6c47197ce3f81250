"""Long-lived reference data for the trends API (categories, geographic options).

Exactly two documents, ``_id="categories"`` and ``_id="geographic"``. Each is
replaced wholesale on save and expires 30 days after it was written.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable

from services.store import DocumentStore, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "trend_options"
OPTIONS_TTL = timedelta(days=30)

CATEGORIES = "categories"
GEOGRAPHIC = "geographic"


class OptionsCache:
    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock

    async def setup(self) -> None:
        await self.store.ensure_ttl_index(COLLECTION, "expiresAt", 0)

    async def _load(self, name: str) -> dict | None:
        doc = await self.store.find_one(COLLECTION, {"_id": name})
        if doc is None:
            return None
        expires_at = doc.get("expiresAt")
        if expires_at is not None and expires_at <= self._clock():
            return None
        return doc

    async def _replace(self, name: str, fields: dict) -> dict:
        now = self._clock()
        return await self.store.update_one(
            COLLECTION,
            {"_id": name},
            set_fields={**fields, "lastUpdated": now, "expiresAt": now + OPTIONS_TTL},
            upsert=True,
        )

    async def get_categories(self) -> list[str] | None:
        doc = await self._load(CATEGORIES)
        if not doc or not doc.get("categories"):
            return None
        return doc["categories"]

    async def save_categories(self, categories: list[str]) -> dict:
        return await self._replace(CATEGORIES, {"categories": list(categories)})

    async def get_geographic(self) -> dict | None:
        doc = await self._load(GEOGRAPHIC)
        if not doc or not (doc.get("geo") or {}).get("countries"):
            return None
        return doc["geo"]

    async def save_geographic(self, geo: dict) -> dict:
        return await self._replace(GEOGRAPHIC, {"geo": geo})
