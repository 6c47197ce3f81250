"""Reddit API client: authenticated reads normalized into flat post dicts.

All calls go through ``oauth.reddit.com`` with a bearer token from
``RedditTokenManager`` and a fixed per-call timeout.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from errors import NotConfigured, RateLimited, UpstreamError, UpstreamUnreachable, ValidationFailure
from services.reddit_auth import RedditTokenManager

logger = logging.getLogger(__name__)

BASE_URL = "https://oauth.reddit.com"
MAX_LIMIT = 100

SEARCH_SORTS = {"relevance", "hot", "top", "new", "comments"}
SEARCH_TIMES = {"hour", "day", "week", "month", "year", "all"}
LISTING_SORTS = {"hot", "new", "top", "rising"}

# Thumbnail values Reddit uses in place of an actual image URL
_PLACEHOLDER_THUMBNAILS = {"self", "default"}


@dataclass
class BestEffort:
    """Result of a call whose failures are swallowed on purpose.

    ``error`` tells an empty-because-nothing-matched answer apart from an
    empty-because-the-upstream-failed one.
    """

    items: list = field(default_factory=list)
    error: str | None = None

    @property
    def suppressed(self) -> bool:
        return self.error is not None


def _iso_from_epoch(seconds: float | None) -> str | None:
    if seconds is None:
        return None
    dt = datetime.fromtimestamp(float(seconds), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_LIMIT))


def format_posts(children: list[dict]) -> list[dict]:
    """Keep only posts (kind ``t3``) and map each to a fixed, fully-populated shape."""
    posts = []
    for child in children:
        if child.get("kind") != "t3":
            continue
        post = child.get("data") or {}
        thumbnail = post.get("thumbnail")
        selftext = post.get("selftext")
        posts.append({
            "id": post.get("id"),
            "title": post.get("title"),
            "subreddit": post.get("subreddit"),
            "author": post.get("author"),
            "score": post.get("score"),
            "upvoteRatio": post.get("upvote_ratio"),
            "numComments": post.get("num_comments"),
            "url": f"https://reddit.com{post.get('permalink', '')}",
            "createdAt": _iso_from_epoch(post.get("created_utc")),
            "thumbnail": thumbnail if thumbnail and thumbnail not in _PLACEHOLDER_THUMBNAILS else None,
            "isVideo": bool(post.get("is_video") or False),
            "selftext": selftext[:200] if selftext else None,
            "domain": post.get("domain"),
            "gilded": post.get("gilded"),
            "over18": post.get("over_18"),
        })
    return posts


class RedditClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        tokens: RedditTokenManager,
        user_agent: str,
        configured: bool = True,
        timeout: float = 10.0,
    ):
        self._http = http
        self._tokens = tokens
        self._user_agent = user_agent
        self._timeout = timeout
        self.configured = configured

    def _require_configured(self) -> None:
        if not self.configured:
            raise NotConfigured("Reddit API")

    async def _get(self, endpoint: str, params: dict | None = None) -> dict:
        token = await self._tokens.get_token()
        try:
            resp = await self._http.get(
                f"{BASE_URL}{endpoint}",
                params=params,
                headers={"Authorization": f"Bearer {token}", "User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            logger.error("Reddit API unreachable (%s): %s", endpoint, e)
            raise UpstreamUnreachable("Failed to reach Reddit API", endpoint=endpoint) from e

        if resp.status_code == 429:
            logger.warning("Reddit API rate limit hit on %s", endpoint)
            raise RateLimited("Reddit API rate limit exceeded", endpoint=endpoint)
        if resp.is_error:
            if resp.status_code == 401:
                self._tokens.invalidate()
            detail = _error_detail(resp)
            logger.error("Reddit API error (%d) on %s: %s", resp.status_code, endpoint, detail)
            raise UpstreamError(
                f"Reddit API error: {detail or 'Unknown error'}",
                status_code=resp.status_code,
                endpoint=endpoint,
            )
        try:
            return resp.json()
        except ValueError as e:
            logger.error("Reddit API returned non-JSON body on %s: %s", endpoint, e)
            raise UpstreamError("Invalid JSON response from Reddit API", status_code=502, endpoint=endpoint) from e

    async def search_posts(
        self,
        keyword: str,
        limit: int = 10,
        sort: str = "relevance",
        time: str = "week",
        subreddit: str = "all",
    ) -> list[dict]:
        self._require_configured()
        if sort not in SEARCH_SORTS:
            raise ValidationFailure(f"Invalid sort '{sort}'. Allowed: {sorted(SEARCH_SORTS)}")
        if time not in SEARCH_TIMES:
            raise ValidationFailure(f"Invalid time '{time}'. Allowed: {sorted(SEARCH_TIMES)}")

        logger.info("Searching Reddit for: %s", keyword)
        data = await self._get(
            f"/r/{subreddit}/search",
            {"q": keyword, "sort": sort, "t": time, "limit": _clamp_limit(limit), "raw_json": 1},
        )
        return format_posts(data["data"]["children"])

    async def get_subreddit_posts(self, subreddit: str, limit: int = 10, sort: str = "hot") -> list[dict]:
        self._require_configured()
        listing = sort if sort in LISTING_SORTS else "hot"
        # ``t`` only matters for "top" but Reddit ignores it elsewhere
        data = await self._get(f"/r/{subreddit}/{listing}", {"limit": _clamp_limit(limit), "t": "week"})
        return format_posts(data["data"]["children"])

    async def get_hot_posts(self, subreddit: str = "all", limit: int = 25) -> BestEffort:
        """Hot listing for display. Never raises; failures come back as an empty, flagged result."""
        try:
            data = await self._get(f"/r/{subreddit}/hot", {"limit": _clamp_limit(limit)})
            return BestEffort(items=format_posts(data["data"]["children"]))
        except Exception as e:
            logger.warning("Suppressed failure fetching hot posts from r/%s: %s", subreddit, e)
            return BestEffort(items=[], error=str(e))

    async def get_trending_posts(self, limit: int = 20) -> BestEffort:
        return await self.get_hot_posts("all", limit)

    async def get_subreddit_info(self, subreddit: str) -> dict:
        self._require_configured()
        about = (await self._get(f"/r/{subreddit}/about"))["data"]
        return {
            "name": about.get("display_name"),
            "title": about.get("title"),
            "description": about.get("public_description"),
            "subscribers": about.get("subscribers"),
            "activeUsers": about.get("active_user_count"),
            "created": _iso_from_epoch(about.get("created_utc")),
            "over18": about.get("over18"),
        }


def _error_detail(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or None
    if isinstance(body, dict):
        return body.get("message") or body.get("error")
    return None
