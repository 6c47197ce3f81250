"""Realtime trending keywords per country (google-realtime-trends-data RapidAPI)."""

import asyncio
import logging
from urllib.parse import quote

import httpx

from errors import AppError, UpstreamError, ValidationFailure
from services.rapidapi import RapidApiClient
from services.settings_source import SettingsSource

logger = logging.getLogger(__name__)

REGION_COUNTRIES = {
    "Asia": [
        "India", "China", "Japan", "South Korea", "Thailand", "Indonesia",
        "Vietnam", "Pakistan", "Bangladesh", "Malaysia", "Philippines", "Singapore",
    ],
    "Europe": [
        "United Kingdom", "Germany", "France", "Italy", "Spain", "Netherlands",
        "Poland", "Sweden", "Norway", "Denmark", "Finland", "Belgium",
    ],
    "Americas": ["United States", "Canada", "Brazil", "Mexico", "Argentina", "Chile", "Colombia", "Peru"],
    "Middle East": [
        "Saudi Arabia", "United Arab Emirates", "Qatar", "Kuwait", "Bahrain",
        "Oman", "Jordan", "Lebanon", "Iraq",
    ],
    "Africa": ["South Africa", "Nigeria", "Kenya", "Egypt", "Ghana", "Ethiopia", "Morocco", "Algeria"],
    "Oceania": ["Australia", "New Zealand"],
}


class TrendingKeywordsClient(RapidApiClient):
    service_name = "Trending keywords service"

    def __init__(
        self,
        http: httpx.AsyncClient,
        config_source: SettingsSource,
        host: str = "google-realtime-trends-data-api.p.rapidapi.com",
        timeout: float = 10.0,
    ):
        super().__init__(http, config_source, host, timeout)

    async def _get_trends(self, endpoint: str) -> dict:
        response = await self._request("GET", endpoint)
        if not isinstance(response, dict) or not response.get("success"):
            raise UpstreamError("Invalid response from RapidAPI", status_code=502, endpoint=endpoint)
        return response

    async def get_trends_by_country(self, country: str) -> dict:
        if not country or not country.strip():
            raise ValidationFailure("Country is required")
        logger.info("Fetching trends for country: %s", country)
        response = await self._get_trends(f"/trends/{quote(country.strip(), safe='')}")
        count = len((response.get("data") or {}).get("keywordsText") or [])
        logger.info("Fetched trends for %s (keywords=%d)", country, count)
        return response

    async def get_global_trends(self) -> dict:
        logger.info("Fetching global trends for all countries")
        response = await self._get_trends("/trends")
        logger.info("Fetched global trends (countries=%d)", len(response.get("data") or []))
        return response

    async def get_trends_for_countries(self, countries: list[str]) -> list[dict]:
        """Fetch several countries concurrently; a failing country is dropped, not fatal."""
        if not isinstance(countries, list) or not countries:
            raise ValidationFailure("Countries must be a non-empty array")

        async def _one(country: str) -> dict | None:
            try:
                return await self.get_trends_by_country(country)
            except AppError as e:
                logger.warning("Failed to fetch trends for %s: %s", country, e)
                return None

        results = await asyncio.gather(*[_one(c) for c in countries])
        return [r for r in results if r is not None]

    async def get_trends_by_region(self, region: str) -> list[dict]:
        countries = REGION_COUNTRIES.get(region)
        if not countries:
            raise ValidationFailure(
                f"Unknown region: {region}. Available regions: {', '.join(REGION_COUNTRIES)}"
            )
        logger.info("Fetching trends for region: %s (%d countries)", region, len(countries))
        return await self.get_trends_for_countries(countries)

    async def get_available_countries(self) -> list[str]:
        response = await self.get_global_trends()
        data = response.get("data")
        if not isinstance(data, list):
            return []
        countries = sorted(item["country"] for item in data if isinstance(item, dict) and item.get("country"))
        logger.info("Retrieved %d available countries", len(countries))
        return countries
