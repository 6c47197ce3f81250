"""Cache-aside orchestration: look up, fetch on miss, persist best-effort.

Per request::

    LOOKUP -> HIT  : count the hit, serve the cached payload
           -> MISS : FETCH -> NORMALIZE -> PERSIST (failures only logged) -> serve

A lookup that fails surfaces as an error (nothing was fetched yet). A save
that fails after a successful fetch never does: the fresh data is returned
and the failure is logged.

Two concurrent misses for the same key may both fetch; the upserting save
keeps that from leaving duplicate entries.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from errors import ValidationFailure
from services.inspiration_cache import WORLDWIDE, CacheScope, InspirationCache, normalize_key, normalize_region
from services.payloads import (
    ContentSearchResult,
    Payload,
    RegionMapResult,
    RelatedListResult,
    TimeSeriesResult,
    TrendingKeywordsResult,
)
from services.reddit import RedditClient
from services.store import utcnow
from services.trending_keywords import TrendingKeywordsClient
from services.trends import TrendsClient, require_keywords, require_start

logger = logging.getLogger(__name__)

ANALYTICS_KINDS = ("interest-over-time", "interest-by-region", "related-queries", "related-topics")
GLOBAL_KEY = "global"


@dataclass
class CacheResult:
    payload: Payload
    from_cache: bool
    created_at: datetime
    hit_count: int = 0


class InspirationService:
    def __init__(
        self,
        cache: InspirationCache,
        reddit: RedditClient,
        trends: TrendsClient,
        trending: TrendingKeywordsClient,
    ):
        self.cache = cache
        self.reddit = reddit
        self.trends = trends
        self.trending = trending

    async def read_through(
        self,
        query_key: str,
        scope: CacheScope,
        fetch: Callable[[], Awaitable[Payload]],
        region: str | None = None,
        owner: str | None = None,
    ) -> CacheResult:
        entry = await self.cache.get_cached(query_key, scope, region, owner)
        if entry is not None:
            logger.info("Cache hit for %s %r (hits=%d)", scope.value, entry.query_key, entry.hit_count)
            return CacheResult(entry.payload, True, entry.created_at, entry.hit_count)

        logger.info("Cache miss for %s %r, fetching fresh data", scope.value, normalize_key(query_key))
        payload = await fetch()

        try:
            await self.cache.save(query_key, scope, payload, region, owner)
        except Exception as e:
            logger.error("Failed to cache %s data for %r: %s", scope.value, query_key, e)
        return CacheResult(payload, False, utcnow())

    # -- content search ---------------------------------------------------

    async def search_inspiration(self, topic: str | None, limit: int = 10, owner: str | None = None) -> dict:
        if not topic or not topic.strip():
            raise ValidationFailure("Topic parameter is required")

        async def fetch() -> ContentSearchResult:
            posts = await self.reddit.search_posts(topic, limit=limit, sort="hot", time="week")
            return ContentSearchResult(topic=topic, timestamp=utcnow().isoformat(), posts=posts)

        result = await self.read_through(topic, CacheScope.CONTENT_SEARCH, fetch, owner=owner)
        data = result.payload.to_response()
        data["topic"] = topic
        data["fromCache"] = result.from_cache
        if result.from_cache:
            data["timestamp"] = result.created_at.isoformat()
        return data

    # -- keyword analytics ------------------------------------------------

    async def trends_analytics(self, kind: str, params: dict) -> CacheResult:
        """Read-through for the four keyword analytics endpoints, cached in the ``trends`` scope."""
        if kind not in ANALYTICS_KINDS:
            raise ValidationFailure(f"Unknown analytics type: {kind}")

        keywords = require_keywords(params.get("keywords"))
        start = require_start(params.get("start"))
        country = params.get("country") or ""
        sub_region = params.get("region") or ""
        category = params.get("category") or ""
        gprop = params.get("gprop") or ""
        upstream_args = dict(
            keywords=keywords, start=start, country=country, region=sub_region, category=category, gprop=gprop
        )

        key_keywords = keywords[:1] if kind == "related-topics" else keywords
        key_parts = [kind, ",".join(normalize_key(k) for k in key_keywords), start, country, category, gprop]

        async def fetch() -> Payload:
            if kind == "interest-over-time":
                return TimeSeriesResult(keywords, await self.trends.get_interest_over_time(**upstream_args))
            if kind == "interest-by-region":
                resolution = params.get("resolution") or "COUNTRY"
                data = await self.trends.get_interest_by_region(
                    **upstream_args,
                    resolution=resolution,
                    include_low_volume=bool(params.get("include_low_volume", False)),
                )
                return RegionMapResult(keywords, resolution, data)
            if kind == "related-queries":
                return RelatedListResult(keywords, "queries", await self.trends.get_related_queries(**upstream_args))
            return RelatedListResult(key_keywords, "topics", await self.trends.get_related_topics(**upstream_args))

        if kind == "interest-by-region":
            key_parts += [str(params.get("resolution") or "COUNTRY"), str(bool(params.get("include_low_volume")))]

        return await self.read_through(
            "|".join(key_parts),
            CacheScope.TIME_SERIES,
            fetch,
            region=normalize_region(sub_region or country, default=WORLDWIDE),
        )

    # -- trending keywords ------------------------------------------------

    async def trending_by_country(self, country: str) -> CacheResult:
        if not country or not country.strip():
            raise ValidationFailure("Country is required")

        async def fetch() -> TrendingKeywordsResult:
            return TrendingKeywordsResult(country, await self.trending.get_trends_by_country(country))

        return await self.read_through(country, CacheScope.COUNTRY_TRENDS, fetch)

    async def global_trending(self) -> CacheResult:
        async def fetch() -> TrendingKeywordsResult:
            return TrendingKeywordsResult(None, await self.trending.get_global_trends())

        return await self.read_through(GLOBAL_KEY, CacheScope.GLOBAL_TRENDS, fetch)
