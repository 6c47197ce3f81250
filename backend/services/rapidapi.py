"""Shared plumbing for RapidAPI-hosted upstreams (static key headers).

Clients start uninitialized; ``initialize()`` pulls the key from the runtime
config source, and every request fails fast with ``NotInitialized`` until a key
is present and the feature is enabled.
"""

import logging

import httpx

from errors import NotInitialized, RateLimited, UpstreamError, UpstreamUnreachable
from services.settings_source import SettingsSource

logger = logging.getLogger(__name__)


class RapidApiClient:
    service_name = "RapidAPI service"

    def __init__(
        self,
        http: httpx.AsyncClient,
        config_source: SettingsSource,
        host: str,
        timeout: float = 10.0,
    ):
        self._http = http
        self._config_source = config_source
        self.host = host
        self.base_url = f"https://{host}"
        self._timeout = timeout
        self._api_key: str | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Load key and enabled flag. Safe to call again after a settings change."""
        config = await self._config_source.get_rapidapi_config()
        if not config.key:
            logger.warning("RapidAPI key not configured - %s will not work", self.service_name)
            self._api_key = None
            self._initialized = False
            return

        self._api_key = config.key
        self._initialized = config.enabled
        if self._initialized:
            logger.info("%s initialized (key source: %s)", self.service_name, config.source)
        else:
            logger.warning("%s is disabled in settings", self.service_name)

    def is_ready(self) -> bool:
        return self._initialized and bool(self._api_key)

    async def _request(self, method: str, endpoint: str, data: dict | None = None) -> dict:
        if not self.is_ready():
            raise NotInitialized(self.service_name)

        headers = {"x-rapidapi-key": self._api_key, "x-rapidapi-host": self.host}
        try:
            resp = await self._http.request(
                method,
                f"{self.base_url}{endpoint}",
                json=data if method == "POST" else None,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            logger.error("Network error for %s: %s", endpoint, e)
            raise UpstreamUnreachable(f"Network error: {e}", endpoint=endpoint) from e

        if resp.is_error:
            detail = _error_detail(resp)
            logger.error("%s API error for %s: status=%d message=%s", self.service_name, endpoint, resp.status_code, detail)
            if resp.status_code == 429:
                raise RateLimited(f"API error: {detail}", endpoint=endpoint)
            raise UpstreamError(f"API error: {detail}", status_code=502, endpoint=endpoint)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(f"API error: invalid JSON from {endpoint}", status_code=502, endpoint=endpoint) from e


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        return body.get("msg") or body.get("message") or resp.reason_phrase
    return resp.reason_phrase
