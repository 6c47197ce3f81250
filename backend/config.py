"""Settings loaded from environment variables, read once at import."""

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")

        # Reddit (OAuth password grant)
        self.reddit_client_id: str | None = os.getenv("REDDIT_CLIENT_ID")
        self.reddit_client_secret: str | None = os.getenv("REDDIT_CLIENT_SECRET")
        self.reddit_username: str | None = os.getenv("REDDIT_USERNAME")
        self.reddit_password: str | None = os.getenv("REDDIT_PASSWORD")
        self.reddit_user_agent: str = os.getenv("REDDIT_USER_AGENT", "SoloAI/1.0.0")

        # RapidAPI resellers (static key headers)
        self.rapidapi_key: str | None = os.getenv("RAPIDAPI_KEY")
        self.rapidapi_trends_host: str = os.getenv("RAPIDAPI_TRENDS_HOST", "trendly.p.rapidapi.com")
        self.rapidapi_trending_host: str = os.getenv(
            "RAPIDAPI_TRENDING_HOST", "google-realtime-trends-data-api.p.rapidapi.com"
        )
        self.trends_enabled: bool = _env_bool("TRENDS_ENABLED", True)

        # Persistence; no URI means the in-process store
        self.database_uri: str | None = os.getenv("DATABASE_URI")
        self.database_name: str = os.getenv("DATABASE_NAME", "inspiration")
        self.inspiration_cache_ttl: int = int(os.getenv("INSPIRATION_CACHE_TTL", "86400"))

        self.upstream_timeout: float = float(os.getenv("UPSTREAM_TIMEOUT", "10"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def reddit_configured(self) -> bool:
        return bool(self.reddit_client_id and self.reddit_client_secret)

    def validate(self) -> list[str]:
        """Return list of missing env vars for upstream features."""
        required = [
            "REDDIT_CLIENT_ID",
            "REDDIT_CLIENT_SECRET",
            "REDDIT_USERNAME",
            "REDDIT_PASSWORD",
            "RAPIDAPI_KEY",
        ]
        return [var for var in required if not getattr(self, var.lower())]


settings = Settings()
