"""Centralized configuration: all env vars in one place."""

import os


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port: int = int(os.getenv("PORT", "8000"))
        self.static_dir: str = os.getenv("STATIC_DIR", "static")

        # Durable cache store (SQLite file). Unset -> transient caches only.
        self.cache_db_path: str | None = os.getenv("CACHE_DB_PATH")

        # Upstream quote providers
        self.alphavantage_url: str = os.getenv("ALPHAVANTAGE_URL", "https://www.alphavantage.co/query")
        self.alphavantage_api_key: str | None = os.getenv("ALPHAVANTAGE_API_KEY")
        self.goldapi_url: str = os.getenv("GOLDAPI_URL", "https://www.goldapi.io/api")
        self.goldapi_access_token: str | None = os.getenv("GOLDAPI_ACCESS_TOKEN")
        self.provider_timeout: float = float(os.getenv("PROVIDER_TIMEOUT", "10"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of missing provider credentials."""
        required = ["ALPHAVANTAGE_API_KEY", "GOLDAPI_ACCESS_TOKEN"]
        return [var for var in required if not getattr(self, var.lower())]


settings = Settings()
