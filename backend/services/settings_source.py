"""Runtime config for the RapidAPI-backed services.

Admins can override the RapidAPI key and toggle the trends feature through the
``app_settings`` document in the ``settings`` collection. Anything not set
there falls back to environment variables. Lookups are memoised for 5 minutes.
"""

import logging
import time
from dataclasses import dataclass

from config import Settings
from errors import PersistenceFailure
from services.store import DocumentStore

logger = logging.getLogger(__name__)

COLLECTION = "settings"
SETTINGS_ID = "app_settings"
CACHE_SECONDS = 5 * 60


@dataclass
class RapidApiConfig:
    key: str | None
    enabled: bool
    source: str  # "database" or "environment"


class SettingsSource:
    def __init__(self, store: DocumentStore, env: Settings):
        self.store = store
        self.env = env
        self._cached: dict | None = None
        self._fetched_at: float = 0.0

    def invalidate(self) -> None:
        self._cached = None

    async def _app_settings(self) -> dict:
        if self._cached is not None and time.monotonic() - self._fetched_at < CACHE_SECONDS:
            return self._cached
        try:
            doc = await self.store.find_one(COLLECTION, {"_id": SETTINGS_ID}) or {}
        except PersistenceFailure as e:
            logger.warning("Falling back to environment settings: %s", e)
            doc = {}
        self._cached = doc
        self._fetched_at = time.monotonic()
        return doc

    async def get_rapidapi_config(self) -> RapidApiConfig:
        doc = await self._app_settings()
        db_key = (doc.get("apiKeys") or {}).get("rapidApiKey")
        features = doc.get("features") or {}
        enabled = features.get("googleTrends", self.env.trends_enabled)
        if db_key:
            return RapidApiConfig(key=db_key, enabled=enabled is not False, source="database")
        return RapidApiConfig(key=self.env.rapidapi_key, enabled=enabled is not False, source="environment")
