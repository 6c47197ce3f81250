"""Inspiration routes: cached Reddit search plus direct listing reads."""

import logging

from fastapi import APIRouter, Depends, Header, Query

from responses import success
from services.context import ServiceContext, get_services
from services.store import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inspiration", tags=["inspiration"])


@router.get("")
async def search_inspiration(
    topic: str | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    x_user_id: str | None = Header(None),
    services: ServiceContext = Depends(get_services),
) -> dict:
    """Cache-aside Reddit search. Cached per topic and, when given, per user."""
    data = await services.inspiration.search_inspiration(topic, limit=limit, owner=x_user_id)
    message = "Inspiration data retrieved from cache" if data["fromCache"] else "Inspiration data fetched successfully"
    return success(message, data)


@router.get("/trending")
async def trending_topics(
    limit: int = Query(20, ge=1, le=100),
    services: ServiceContext = Depends(get_services),
) -> dict:
    """Hot posts from r/all. Upstream failures degrade to an empty list."""
    result = await services.reddit.get_trending_posts(limit)
    if result.suppressed:
        logger.info("Serving empty trending list after suppressed upstream failure")
    return success(
        "Trending topics retrieved successfully",
        {"reddit": result.items, "degraded": result.suppressed, "timestamp": utcnow().isoformat()},
    )


@router.get("/subreddit/{subreddit}")
async def subreddit_posts(
    subreddit: str,
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("hot"),
    services: ServiceContext = Depends(get_services),
) -> dict:
    posts = await services.reddit.get_subreddit_posts(subreddit, limit=limit, sort=sort)
    return success(
        f"Posts from r/{subreddit} retrieved successfully",
        {"subreddit": subreddit, "posts": posts, "total": len(posts)},
    )


@router.get("/subreddit/{subreddit}/about")
async def subreddit_info(subreddit: str, services: ServiceContext = Depends(get_services)) -> dict:
    info = await services.reddit.get_subreddit_info(subreddit)
    return success(f"r/{subreddit} info retrieved successfully", info)
