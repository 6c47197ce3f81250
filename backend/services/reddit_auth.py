"""Reddit OAuth token lifecycle (password grant, basic-auth client credentials).

The token lives in process memory only; a restart forces one re-authentication.
It is treated as expired 5 minutes before Reddit says it is, so a request never
goes out with a token that lapses mid-flight.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx

from errors import AuthenticationFailure

logger = logging.getLogger(__name__)

AUTH_URL = "https://www.reddit.com/api/v1/access_token"
REFRESH_MARGIN_SECONDS = 300


@dataclass
class UpstreamToken:
    value: str
    expires_at_epoch_ms: float


class RedditTokenManager:
    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str | None,
        client_secret: str | None,
        username: str | None,
        password: str | None,
        user_agent: str,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http
        self._client_id = client_id
        self._client_secret = client_secret
        self._username = username
        self._password = password
        self._user_agent = user_agent
        self._clock = clock
        self._token: UpstreamToken | None = None
        self._lock = asyncio.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _valid(self) -> bool:
        return self._token is not None and self._now_ms() < self._token.expires_at_epoch_ms

    def invalidate(self) -> None:
        self._token = None

    async def get_token(self) -> str:
        """Return a cached token, exchanging credentials only when it is missing or stale."""
        if self._valid():
            return self._token.value

        # Single-flight: callers that queued behind a refresh reuse its result.
        async with self._lock:
            if self._valid():
                return self._token.value
            self._token = await self._exchange()
            return self._token.value

    async def _exchange(self) -> UpstreamToken:
        try:
            resp = await self._http.post(
                AUTH_URL,
                auth=(self._client_id or "", self._client_secret or ""),
                data={
                    "grant_type": "password",
                    "username": self._username or "",
                    "password": self._password or "",
                },
                headers={"User-Agent": self._user_agent},
            )
            resp.raise_for_status()
            payload = resp.json()
            value = payload["access_token"]
            ttl_seconds = int(payload.get("expires_in", 3600))
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Failed to get Reddit access token: %s", e)
            raise AuthenticationFailure() from e

        logger.info("Reddit OAuth token obtained (expires_in=%ds)", ttl_seconds)
        return UpstreamToken(
            value=value,
            expires_at_epoch_ms=self._now_ms() + (ttl_seconds - REFRESH_MARGIN_SECONDS) * 1000,
        )
