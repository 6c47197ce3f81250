"""Google Trends data through the Trendly RapidAPI reseller.

Reference data (categories, geographic options) is read through the 30-day
options cache. Keyword analytics endpoints validate their inputs locally so a
bad request never costs an upstream call.
"""

import logging

import httpx

from errors import UpstreamError, ValidationFailure
from services.options_cache import OptionsCache
from services.rapidapi import RapidApiClient
from services.settings_source import SettingsSource

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "All categories"


def require_keywords(keywords) -> list[str]:
    if not keywords or not isinstance(keywords, list):
        raise ValidationFailure("Keywords array is required")
    return [str(k) for k in keywords]


def require_start(start: str | None) -> str:
    if not start:
        raise ValidationFailure("Start date is required (format: YYYY-MM-DDTHH:mm:ss+0100)")
    return start


class TrendsClient(RapidApiClient):
    service_name = "Google Trends service"

    def __init__(
        self,
        http: httpx.AsyncClient,
        config_source: SettingsSource,
        options: OptionsCache,
        host: str = "trendly.p.rapidapi.com",
        timeout: float = 10.0,
    ):
        super().__init__(http, config_source, host, timeout)
        self.options = options

    # -- reference data ---------------------------------------------------

    async def get_categories(self, force_refresh: bool = False) -> list[str]:
        if not force_refresh:
            cached = await self.options.get_categories()
            if cached:
                logger.info("Categories retrieved from cache (count=%d)", len(cached))
                return cached

        logger.info("Fetching categories from Trendly API")
        response = await self._request("GET", "/cat")
        categories = response.get("cat") if isinstance(response, dict) else None
        if not isinstance(categories, list):
            raise UpstreamError("Invalid categories response format", status_code=502, endpoint="/cat")

        await self.options.save_categories(categories)
        logger.info("Categories fetched and cached (count=%d)", len(categories))
        return categories

    async def get_geographic(self, force_refresh: bool = False) -> dict:
        if not force_refresh:
            cached = await self.options.get_geographic()
            if cached:
                logger.info("Geographic options retrieved from cache (countries=%d)", len(cached["countries"]))
                return cached

        logger.info("Fetching geographic options from Trendly API")
        response = await self._request("GET", "/geo")
        geo = response.get("geo") if isinstance(response, dict) else None
        if not isinstance(geo, dict) or not isinstance(geo.get("countries"), dict):
            raise UpstreamError("Invalid geographic options response format", status_code=502, endpoint="/geo")

        await self.options.save_geographic(geo)
        logger.info("Geographic options fetched and cached (countries=%d)", len(geo["countries"]))
        return geo

    # -- keyword analytics ------------------------------------------------

    async def get_interest_over_time(
        self, keywords, start, country: str = "", region: str = "", category: str = "", gprop: str = ""
    ) -> dict:
        keywords = require_keywords(keywords)
        body = {
            "keywords": keywords,
            "start": require_start(start),
            "country": country,
            "region": region,
            "category": category,
            "gprop": gprop,
        }
        logger.info("Fetching interest over time (keywords=%s, country=%s)", ", ".join(keywords), country or "worldwide")
        return await self._request("POST", "/historical", body)

    async def get_interest_by_region(
        self,
        keywords,
        start,
        country: str = "",
        region: str = "",
        category: str = "",
        gprop: str = "",
        resolution: str = "COUNTRY",
        include_low_volume: bool = False,
    ) -> dict:
        keywords = require_keywords(keywords)
        body = {
            "keywords": keywords,
            "start": require_start(start),
            "country": country,
            "region": region,
            "category": category,
            "gprop": gprop,
            "resolution": resolution or "COUNTRY",
            "include_low_volume": bool(include_low_volume),
        }
        logger.info("Fetching interest by region (keywords=%s, resolution=%s)", ", ".join(keywords), body["resolution"])
        return await self._request("POST", "/region", body)

    async def get_related_queries(
        self, keywords, start, country: str = "", region: str = "", category: str = "", gprop: str = ""
    ) -> dict:
        keywords = require_keywords(keywords)
        body = {
            "keywords": keywords,
            "start": require_start(start),
            "country": country,
            "region": region,
            "category": category,
            "gprop": gprop,
        }
        logger.info("Fetching related queries (keywords=%s)", ", ".join(keywords))
        return await self._request("POST", "/queries", body)

    async def get_related_topics(
        self, keywords, start, country: str = "", region: str = "", category: str = "", gprop: str = ""
    ) -> dict:
        keywords = require_keywords(keywords)
        if len(keywords) > 1:
            logger.warning("Related topics API supports only one keyword, using %r only", keywords[0])
        body = {
            "keywords": keywords[:1],
            "start": require_start(start),
            "country": country,
            "region": region,
            "category": category,
            "gprop": gprop,
        }
        logger.info("Fetching related topics (keyword=%s)", keywords[0])
        return await self._request("POST", "/topics", body)

    # -- live searches ----------------------------------------------------

    async def get_realtime_searches(self, country=None, category=None) -> dict:
        body = {"country": str(country or ""), "category": str(category or DEFAULT_CATEGORY)}
        logger.info("Fetching realtime searches (country=%s)", body["country"] or "worldwide")
        return await self._request("POST", "/realtime", body)

    async def get_today_searches(self, country=None, category=None) -> dict:
        body = {"country": str(country or ""), "category": str(category or DEFAULT_CATEGORY)}
        logger.info("Fetching today searches (country=%s)", body["country"] or "worldwide")
        return await self._request("POST", "/today", body)

    async def get_suggestions(self, params: dict) -> dict:
        logger.info("Fetching keyword suggestions")
        return await self._request("POST", "/suggest", params)

    async def get_hot_trending(self, params: dict) -> dict:
        logger.info("Fetching hot trending data")
        return await self._request("POST", "/hot", params)
