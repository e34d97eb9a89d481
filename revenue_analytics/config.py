# revenue_analytics/config.py
import os
from collections.abc import Mapping


def _csv(raw: str) -> list[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


class Settings:
    """Process configuration from environment variables (read once per instance)."""

    def __init__(self, env: Mapping[str, str] | None = None):
        env = os.environ if env is None else env

        # Serving
        self.HOST: str = env.get("APP_HOST", "0.0.0.0")
        self.PORT: int = int(env.get("APP_PORT", env.get("PORT", "5000")))
        self.APP_ENV: str = env.get("APP_ENV", "development")
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO").upper()

        # Reported by /api/status
        self.SERVICE_NAME: str = env.get("SERVICE_NAME", "SFS Revenue Analytics")

        # Stripe; without a key the /stripe/* endpoints fail instead of reporting zeros
        self.STRIPE_SECRET_KEY: str | None = env.get("STRIPE_SECRET_KEY") or None
        self.STRIPE_PAGE_LIMIT: int = int(env.get("STRIPE_PAGE_LIMIT", "100"))

        # Default look-back for /stripe/revenue when no startDate is given
        self.REVENUE_WINDOW_DAYS: int = int(env.get("REVENUE_WINDOW_DAYS", "30"))

        # Comma-separated origins, "*" allows all
        self.CORS_ALLOW_ORIGINS: list[str] = _csv(env.get("CORS_ALLOW_ORIGINS", "*")) or ["*"]


settings = Settings()
