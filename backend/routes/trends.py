"""Google Trends routes.

GET  /trends/categories, /trends/geographic      → 30-day options cache
POST /trends/interest-over-time|interest-by-region|related-queries|related-topics
                                                 → cached read-through (trends scope)
POST /trends/realtime|today|suggestions|hot      → direct upstream
GET  /trends/keywords[/{country}|/region/{name}] → trending keywords per country
"""

import logging

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from responses import success
from services.context import ServiceContext, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trends", tags=["trends"])


class KeywordQuery(BaseModel):
    # Optional here so empty/missing values get the service's own 400 message
    keywords: list[str] | None = None
    start: str | None = None
    country: str | None = None
    region: str | None = None
    category: str | None = None
    gprop: str | None = None


class RegionQuery(KeywordQuery):
    resolution: str = "COUNTRY"
    include_low_volume: bool = False


class LiveSearchQuery(BaseModel):
    country: str | None = None
    category: str | None = None


# ---------------------------------------------------------------------------
# Reference options
# ---------------------------------------------------------------------------

@router.get("/categories")
async def categories(
    refresh: bool = Query(False),
    services: ServiceContext = Depends(get_services),
) -> dict:
    cats = await services.trends.get_categories(force_refresh=refresh)
    return success("Categories retrieved successfully", {"categories": cats, "total": len(cats)})


@router.get("/geographic")
async def geographic(
    refresh: bool = Query(False),
    services: ServiceContext = Depends(get_services),
) -> dict:
    geo = await services.trends.get_geographic(force_refresh=refresh)
    return success("Geographic options retrieved successfully", geo)


# ---------------------------------------------------------------------------
# Keyword analytics
# ---------------------------------------------------------------------------

async def _analytics(services: ServiceContext, kind: str, body: KeywordQuery) -> dict:
    result = await services.inspiration.trends_analytics(kind, body.model_dump())
    label = kind.replace("-", " ").capitalize()
    source = "retrieved from cache" if result.from_cache else "fetched successfully"
    return success(f"{label} {source}", result.payload.to_response())


@router.post("/interest-over-time")
async def interest_over_time(body: KeywordQuery, services: ServiceContext = Depends(get_services)) -> dict:
    return await _analytics(services, "interest-over-time", body)


@router.post("/interest-by-region")
async def interest_by_region(body: RegionQuery, services: ServiceContext = Depends(get_services)) -> dict:
    return await _analytics(services, "interest-by-region", body)


@router.post("/related-queries")
async def related_queries(body: KeywordQuery, services: ServiceContext = Depends(get_services)) -> dict:
    return await _analytics(services, "related-queries", body)


@router.post("/related-topics")
async def related_topics(body: KeywordQuery, services: ServiceContext = Depends(get_services)) -> dict:
    return await _analytics(services, "related-topics", body)


# ---------------------------------------------------------------------------
# Live searches
# ---------------------------------------------------------------------------

@router.post("/realtime")
async def realtime(
    body: LiveSearchQuery | None = None,
    services: ServiceContext = Depends(get_services),
) -> dict:
    body = body or LiveSearchQuery()
    data = await services.trends.get_realtime_searches(country=body.country, category=body.category)
    return success("Realtime searches retrieved successfully", data)


@router.post("/today")
async def today(
    body: LiveSearchQuery | None = None,
    services: ServiceContext = Depends(get_services),
) -> dict:
    body = body or LiveSearchQuery()
    data = await services.trends.get_today_searches(country=body.country, category=body.category)
    return success("Today searches retrieved successfully", data)


@router.post("/suggestions")
async def suggestions(
    params: dict = Body(default_factory=dict),
    services: ServiceContext = Depends(get_services),
) -> dict:
    return success("Keyword suggestions retrieved successfully", await services.trends.get_suggestions(params))


@router.post("/hot")
async def hot_trending(
    params: dict = Body(default_factory=dict),
    services: ServiceContext = Depends(get_services),
) -> dict:
    return success("Hot trending data retrieved successfully", await services.trends.get_hot_trending(params))


# ---------------------------------------------------------------------------
# Trending keywords by country
# ---------------------------------------------------------------------------

@router.get("/keywords")
async def global_keywords(services: ServiceContext = Depends(get_services)) -> dict:
    result = await services.inspiration.global_trending()
    return success("Global trending keywords retrieved successfully", result.payload.to_response())


@router.get("/keywords/region/{region}")
async def region_keywords(region: str, services: ServiceContext = Depends(get_services)) -> dict:
    results = await services.trending.get_trends_by_region(region)
    return success(
        f"Trending keywords for {region} retrieved successfully",
        {"region": region, "countries": results, "total": len(results)},
    )


@router.get("/keywords/{country}")
async def country_keywords(country: str, services: ServiceContext = Depends(get_services)) -> dict:
    result = await services.inspiration.trending_by_country(country)
    return success(f"Trending keywords for {country} retrieved successfully", result.payload.to_response())
