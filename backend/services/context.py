"""Wiring for one running app: store, caches, upstream clients, orchestrator.

Built once in the FastAPI lifespan and handed to routes through ``Depends``;
tests build their own with a ``MemoryStore`` and a mocked HTTP transport.
"""

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from config import Settings
from services.inspiration import InspirationService
from services.inspiration_cache import InspirationCache
from services.options_cache import OptionsCache
from services.reddit import RedditClient
from services.reddit_auth import RedditTokenManager
from services.settings_source import SettingsSource
from services.store import DocumentStore, create_store
from services.trending_keywords import TrendingKeywordsClient
from services.trends import TrendsClient

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    settings: Settings
    store: DocumentStore
    http: httpx.AsyncClient
    inspiration_cache: InspirationCache
    options: OptionsCache
    settings_source: SettingsSource
    reddit: RedditClient
    trends: TrendsClient
    trending: TrendingKeywordsClient
    inspiration: InspirationService

    async def startup(self) -> None:
        await self.inspiration_cache.setup()
        await self.options.setup()
        await self.trends.initialize()
        await self.trending.initialize()

    async def aclose(self) -> None:
        await self.http.aclose()
        await self.store.close()


def build_context(
    settings: Settings,
    store: DocumentStore | None = None,
    http: httpx.AsyncClient | None = None,
) -> ServiceContext:
    store = store or create_store(settings.database_uri, settings.database_name)
    http = http or httpx.AsyncClient(timeout=settings.upstream_timeout)

    inspiration_cache = InspirationCache(store, ttl_seconds=settings.inspiration_cache_ttl)
    options = OptionsCache(store)
    settings_source = SettingsSource(store, settings)

    tokens = RedditTokenManager(
        http,
        client_id=settings.reddit_client_id,
        client_secret=settings.reddit_client_secret,
        username=settings.reddit_username,
        password=settings.reddit_password,
        user_agent=settings.reddit_user_agent,
    )
    if not settings.reddit_configured:
        logger.warning("Reddit API credentials not configured")
    reddit = RedditClient(
        http,
        tokens,
        user_agent=settings.reddit_user_agent,
        configured=settings.reddit_configured,
        timeout=settings.upstream_timeout,
    )
    trends = TrendsClient(
        http, settings_source, options, host=settings.rapidapi_trends_host, timeout=settings.upstream_timeout
    )
    trending = TrendingKeywordsClient(
        http, settings_source, host=settings.rapidapi_trending_host, timeout=settings.upstream_timeout
    )

    return ServiceContext(
        settings=settings,
        store=store,
        http=http,
        inspiration_cache=inspiration_cache,
        options=options,
        settings_source=settings_source,
        reddit=reddit,
        trends=trends,
        trending=trending,
        inspiration=InspirationService(inspiration_cache, reddit, trends, trending),
    )


def get_services(request: Request) -> ServiceContext:
    return request.app.state.services
