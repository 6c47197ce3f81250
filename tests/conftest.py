"""Shared fixtures: a scriptable fake upstream, test settings, in-memory context."""

from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest

from config import Settings
from services.context import ServiceContext, build_context
from services.store import MemoryStore

REDDIT_AUTH_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_API = "https://oauth.reddit.com"
TRENDLY_API = "https://trendly.p.rapidapi.com"
TRENDING_API = "https://google-realtime-trends-data-api.p.rapidapi.com"


class FakeUpstream:
    """Routes requests by method + URL (no query string) and records every call."""

    def __init__(self):
        self.routes: dict[tuple[str, str], httpx.Response | Callable] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, response: httpx.Response | Callable) -> None:
        self.routes[(method, url)] = response

    def json(self, method: str, url: str, body, status: int = 200) -> None:
        self.add(method, url, httpx.Response(status, json=body))

    def fail(self, method: str, url: str) -> None:
        def _raise(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        self.add(method, url, _raise)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        route = self.routes.get((request.method, url))
        if route is None:
            return httpx.Response(404, json={"message": f"no fake route for {request.method} {url}"})
        if callable(route):
            return route(request)
        return route

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and f"{r.url.scheme}://{r.url.host}{r.url.path}" == url
        ]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def reddit_post(post_id: str, **overrides) -> dict:
    data = {
        "id": post_id,
        "title": f"Post {post_id}",
        "subreddit": "python",
        "author": "someone",
        "score": 42,
        "upvote_ratio": 0.97,
        "num_comments": 7,
        "permalink": f"/r/python/comments/{post_id}/post/",
        "created_utc": 1700000000,
        "thumbnail": "https://b.thumbs.redditmedia.com/x.jpg",
        "is_video": False,
        "selftext": "hello",
        "domain": "self.python",
        "gilded": 0,
        "over_18": False,
    }
    data.update(overrides)
    return {"kind": "t3", "data": data}


def listing(*children: dict) -> dict:
    return {"kind": "Listing", "data": {"children": list(children)}}


@pytest.fixture
def upstream() -> FakeUpstream:
    fake = FakeUpstream()
    fake.json("POST", REDDIT_AUTH_URL, {"access_token": "reddit-token", "expires_in": 3600})
    return fake


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.reddit_client_id = "client-id"
    s.reddit_client_secret = "client-secret"
    s.reddit_username = "bot"
    s.reddit_password = "hunter2"
    s.rapidapi_key = "rapid-key"
    s.trends_enabled = True
    s.database_uri = None
    s.inspiration_cache_ttl = 86400
    return s


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def context(settings: Settings, store: MemoryStore, upstream: FakeUpstream) -> ServiceContext:
    return build_context(settings, store=store, http=upstream.client())
