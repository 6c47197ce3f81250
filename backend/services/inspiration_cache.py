"""Short-TTL query cache for inspiration and trends results.

Entries are keyed by ``(queryKey, scope, region, owner)``. ``createdAt`` is the
TTL anchor: the store reaps entries older than the configured TTL, and lookups
ignore anything past it even if the reaper has not run yet.

Saves upsert on the key tuple, so concurrent misses for the same query collapse
onto one document instead of leaving duplicates behind. Lookups still take the
most recent entry in case an older duplicate is around.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable

from services.payloads import Payload, dump_payload, load_payload
from services.store import DocumentStore, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "inspiration_cache"
DEFAULT_TTL_SECONDS = 86400
DEFAULT_REGION = "US"
WORLDWIDE = "WORLDWIDE"


class CacheScope(str, Enum):
    CONTENT_SEARCH = "reddit"
    TIME_SERIES = "trends"
    COUNTRY_TRENDS = "country_trends"
    GLOBAL_TRENDS = "global_trends"


TRENDING_SCOPES = (CacheScope.GLOBAL_TRENDS, CacheScope.COUNTRY_TRENDS)


def normalize_key(value: str) -> str:
    return value.strip().lower()


def normalize_region(region: str | None, default: str = DEFAULT_REGION) -> str:
    region = (region or "").strip()
    return region.upper() if region else default


@dataclass
class CacheEntry:
    query_key: str
    scope: CacheScope
    region: str
    owner: str | None
    payload: Payload
    hit_count: int
    created_at: datetime
    id: Any = None


def _entry_from_doc(doc: dict) -> CacheEntry:
    return CacheEntry(
        id=doc.get("_id"),
        query_key=doc["queryKey"],
        scope=CacheScope(doc["scope"]),
        region=doc["region"],
        owner=doc.get("owner"),
        payload=load_payload(doc["payload"]),
        hit_count=doc.get("hitCount", 0),
        created_at=doc["createdAt"],
    )


class InspirationCache:
    def __init__(
        self,
        store: DocumentStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def setup(self) -> None:
        await self.store.ensure_ttl_index(COLLECTION, "createdAt", self.ttl_seconds)

    @staticmethod
    def key_query(query_key: str, scope: CacheScope, region: str | None, owner: str | None) -> dict:
        return {
            "queryKey": normalize_key(query_key),
            "scope": CacheScope(scope).value,
            "region": normalize_region(region),
            "owner": owner,
        }

    async def get_cached(
        self,
        query_key: str,
        scope: CacheScope,
        region: str | None = None,
        owner: str | None = None,
    ) -> CacheEntry | None:
        """Return the freshest live entry for the key and count the hit.

        ``owner`` narrows the match only when given; an anonymous lookup can
        hit an entry saved for any user.
        """
        query = self.key_query(query_key, scope, region, owner)
        if owner is None:
            del query["owner"]
        query["createdAt"] = {"$gt": self._clock() - timedelta(seconds=self.ttl_seconds)}

        doc = await self.store.find_one(COLLECTION, query, sort=[("createdAt", -1)])
        if doc is None:
            return None

        updated = await self.store.update_one(COLLECTION, {"_id": doc["_id"]}, inc={"hitCount": 1})
        # Reaped between find and update: the copy we read is still good to serve.
        return _entry_from_doc(updated or {**doc, "hitCount": doc.get("hitCount", 0) + 1})

    async def save(
        self,
        query_key: str,
        scope: CacheScope,
        payload: Payload,
        region: str | None = None,
        owner: str | None = None,
    ) -> CacheEntry:
        query = self.key_query(query_key, scope, region, owner)
        doc = await self.store.update_one(
            COLLECTION,
            query,
            set_fields={"payload": dump_payload(payload), "hitCount": 0, "createdAt": self._clock()},
            upsert=True,
        )
        logger.debug("Cached %s entry for %r", query["scope"], query["queryKey"])
        return _entry_from_doc(doc)

    async def purge(self, scopes: Iterable[CacheScope] = TRENDING_SCOPES) -> int:
        values = [CacheScope(s).value for s in scopes]
        deleted = await self.store.delete_many(COLLECTION, {"scope": {"$in": values}})
        logger.info("Purged %d cache entries (scopes=%s)", deleted, ", ".join(values))
        return deleted
