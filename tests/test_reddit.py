"""Tests for the Reddit token manager and client."""

import httpx
import pytest

from conftest import REDDIT_API, REDDIT_AUTH_URL, listing, reddit_post
from errors import (
    AuthenticationFailure,
    NotConfigured,
    RateLimited,
    UpstreamError,
    UpstreamUnreachable,
    ValidationFailure,
)
from services.reddit import RedditClient, format_posts
from services.reddit_auth import RedditTokenManager


def _tokens(http: httpx.AsyncClient, clock=None) -> RedditTokenManager:
    kwargs = {"clock": clock} if clock else {}
    return RedditTokenManager(http, "id", "secret", "bot", "pw", "test-agent/1.0", **kwargs)


class TestFormatPosts:
    def test_keeps_only_posts(self):
        children = [
            reddit_post("a"),
            {"kind": "t1", "data": {"id": "comment"}},
            reddit_post("b"),
            {"kind": "more", "data": {}},
        ]

        posts = format_posts(children)

        assert [p["id"] for p in posts] == ["a", "b"]

    @pytest.mark.parametrize("thumbnail", ["self", "default", None, ""])
    def test_placeholder_thumbnails_become_none(self, thumbnail):
        child = reddit_post("a", thumbnail=thumbnail)
        if thumbnail is None:
            del child["data"]["thumbnail"]

        assert format_posts([child])[0]["thumbnail"] is None

    def test_real_thumbnail_passes_through(self):
        url = "https://example.com/thumb.png"
        assert format_posts([reddit_post("a", thumbnail=url)])[0]["thumbnail"] == url

    def test_normalized_shape(self):
        post = format_posts([reddit_post("a", selftext="x" * 500, is_video=None)])[0]

        assert set(post) == {
            "id", "title", "subreddit", "author", "score", "upvoteRatio", "numComments", "url",
            "createdAt", "thumbnail", "isVideo", "selftext", "domain", "gilded", "over18",
        }
        assert post["url"] == "https://reddit.com/r/python/comments/a/post/"
        assert post["createdAt"] == "2023-11-14T22:13:20.000Z"
        assert post["isVideo"] is False
        assert len(post["selftext"]) == 200

    def test_missing_optional_fields_are_explicit_nulls(self):
        post = format_posts([{"kind": "t3", "data": {"id": "bare", "permalink": "/r/x/1/"}}])[0]

        assert post["selftext"] is None
        assert post["thumbnail"] is None
        assert post["createdAt"] is None
        assert post["domain"] is None
        assert post["isVideo"] is False


class TestTokenManager:
    @pytest.mark.asyncio
    async def test_token_reused_within_validity_window(self, upstream):
        tokens = _tokens(upstream.client())

        first = await tokens.get_token()
        second = await tokens.get_token()

        assert first == second == "reddit-token"
        assert len(upstream.calls("POST", REDDIT_AUTH_URL)) == 1

    @pytest.mark.asyncio
    async def test_exchange_uses_basic_auth_and_password_grant(self, upstream):
        await _tokens(upstream.client()).get_token()

        request = upstream.calls("POST", REDDIT_AUTH_URL)[0]
        assert request.headers["Authorization"].startswith("Basic ")
        assert b"grant_type=password" in request.content
        assert b"username=bot" in request.content

    @pytest.mark.asyncio
    async def test_refreshes_five_minutes_before_expiry(self, upstream):
        now = [1_000_000.0]
        tokens = _tokens(upstream.client(), clock=lambda: now[0])

        await tokens.get_token()
        now[0] += 3600 - 300 - 1
        await tokens.get_token()
        assert len(upstream.calls("POST", REDDIT_AUTH_URL)) == 1

        now[0] += 1
        await tokens.get_token()
        assert len(upstream.calls("POST", REDDIT_AUTH_URL)) == 2

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, upstream):
        upstream.json("POST", REDDIT_AUTH_URL, {"error": "invalid_grant"}, status=401)

        with pytest.raises(AuthenticationFailure):
            await _tokens(upstream.client()).get_token()

    @pytest.mark.asyncio
    async def test_network_failure_is_authentication_failure(self, upstream):
        upstream.fail("POST", REDDIT_AUTH_URL)

        with pytest.raises(AuthenticationFailure):
            await _tokens(upstream.client()).get_token()


class TestRedditClient:
    @pytest.fixture
    def http(self, upstream):
        return upstream.client()

    @pytest.fixture
    def client(self, http) -> RedditClient:
        return RedditClient(http, _tokens(http), user_agent="test-agent/1.0")

    @pytest.mark.asyncio
    async def test_search_posts(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/search", listing(reddit_post("a"), reddit_post("b")))

        posts = await client.search_posts("python", limit=500, sort="top", time="day")

        assert [p["id"] for p in posts] == ["a", "b"]
        request = upstream.calls("GET", f"{REDDIT_API}/r/all/search")[0]
        assert request.headers["Authorization"] == "Bearer reddit-token"
        assert request.url.params["q"] == "python"
        assert request.url.params["limit"] == "100"
        assert request.url.params["sort"] == "top"
        assert request.url.params["t"] == "day"

    @pytest.mark.asyncio
    async def test_two_calls_one_token_exchange(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/search", listing())

        await client.search_posts("a")
        await client.search_posts("b")

        assert len(upstream.calls("POST", REDDIT_AUTH_URL)) == 1

    @pytest.mark.asyncio
    async def test_invalid_sort_rejected_before_network(self, client, upstream):
        with pytest.raises(ValidationFailure):
            await client.search_posts("python", sort="random")
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_not_configured(self, http):
        client = RedditClient(http, _tokens(http), user_agent="x", configured=False)

        with pytest.raises(NotConfigured):
            await client.search_posts("python")

    @pytest.mark.asyncio
    async def test_rate_limited(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/search", {"message": "Too Many Requests"}, status=429)

        with pytest.raises(RateLimited) as exc_info:
            await client.search_posts("python")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_upstream_error_keeps_status_and_detail(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/nope/hot", {"message": "Forbidden", "error": 403}, status=403)

        with pytest.raises(UpstreamError) as exc_info:
            await client.get_subreddit_posts("nope")
        assert exc_info.value.status_code == 403
        assert "Forbidden" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_upstream_error(self, client, upstream):
        upstream.add("GET", f"{REDDIT_API}/r/all/search", httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(UpstreamError) as exc_info:
            await client.search_posts("python")
        assert exc_info.value.status_code == 502
        assert exc_info.value.endpoint == "/r/all/search"

    @pytest.mark.asyncio
    async def test_unreachable(self, client, upstream):
        upstream.fail("GET", f"{REDDIT_API}/r/all/search")

        with pytest.raises(UpstreamUnreachable) as exc_info:
            await client.search_posts("python")
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_unauthorized_drops_cached_token(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/search", {"message": "Unauthorized"}, status=401)

        with pytest.raises(UpstreamError):
            await client.search_posts("python")
        with pytest.raises(UpstreamError):
            await client.search_posts("python")

        assert len(upstream.calls("POST", REDDIT_AUTH_URL)) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sort,listing_path", [("new", "new"), ("rising", "rising"), ("bogus", "hot")])
    async def test_subreddit_listing_sorts(self, client, upstream, sort, listing_path):
        upstream.json("GET", f"{REDDIT_API}/r/python/{listing_path}", listing(reddit_post("a")))

        posts = await client.get_subreddit_posts("python", sort=sort)

        assert len(posts) == 1
        assert upstream.calls("GET", f"{REDDIT_API}/r/python/{listing_path}")[0].url.params["t"] == "week"

    @pytest.mark.asyncio
    async def test_hot_posts_degrade_to_empty(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/hot", {"message": "boom"}, status=500)

        result = await client.get_hot_posts("all", 10)

        assert result.items == []
        assert result.suppressed

    @pytest.mark.asyncio
    async def test_hot_posts_truly_empty_is_not_suppressed(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/all/hot", listing())

        result = await client.get_trending_posts(5)

        assert result.items == []
        assert not result.suppressed

    @pytest.mark.asyncio
    async def test_subreddit_info(self, client, upstream):
        upstream.json("GET", f"{REDDIT_API}/r/python/about", {"kind": "t5", "data": {
            "display_name": "Python",
            "title": "Python",
            "public_description": "News about Python",
            "subscribers": 1000,
            "active_user_count": 12,
            "created_utc": 1201233135,
            "over18": False,
        }})

        info = await client.get_subreddit_info("python")

        assert info["name"] == "Python"
        assert info["activeUsers"] == 12
        assert info["created"] == "2008-01-25T03:52:15.000Z"
