"""
Centralized configuration using pydantic-settings.

How it works:
- Reads environment variables automatically (e.g., REDIS_HOST env var → Settings.REDIS_HOST)
- Falls back to defaults defined here if env vars are not set
- Can also read from a .env file in the project root

Both processes (the API and the worker) import `settings` from here.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── PostgreSQL (access ledger) ──────────────────────────────
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "contentqueue"
    POSTGRES_PASSWORD: str = "contentqueue"
    POSTGRES_DB: str = "contentqueue"

    # ── Redis (broker + rate limit counters) ────────────────────
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # ── Broker topology ─────────────────────────────────────────
    BROKER_EXCHANGE: str = "content_exchange"
    BROKER_QUEUE: str = "content_generation"
    BROKER_ROUTING_KEY: str = "content.generate"
    QUEUE_MAX_LENGTH: int = 10_000     # publishes beyond this are rejected

    # ── Worker ──────────────────────────────────────────────────
    WORKER_POLL_INTERVAL: float = 1.0  # seconds a receive blocks before looping
    CONSUMER_NAME: str = "worker-1"    # names this worker's in-flight list
    RECOVER_CONSUMERS: list[str] = []  # retired consumer names whose in-flight lists are reclaimed at startup

    # ── Retry ───────────────────────────────────────────────────
    MAX_RETRIES: int = 3
    RETRY_BACKOFF_BASE: float = 2.0    # delay = base ** retry_count seconds

    # ── Admission ───────────────────────────────────────────────
    ARTICLE_RATE_LIMIT: int = 5        # requests per window per IP
    NOVEL_RATE_LIMIT: int = 2
    RATE_LIMIT_WINDOW: int = 60        # seconds
    ADMIN_API_KEY: Optional[str] = None

    # ── Generation timeouts ─────────────────────────────────────
    ARTICLE_TIMEOUT: float = 180.0
    NOVEL_MIN_TIMEOUT: float = 600.0
    NOVEL_SECONDS_PER_WORD: float = 0.05
    NOVEL_DEFAULT_WORDS: int = 2000

    # ── Content generator collaborator ──────────────────────────
    GENERATOR_BACKEND: str = "http"    # "http" or "simulated"
    GENERATOR_URL: str = "http://localhost:3001"
    SIMULATED_DURATION: float = 2.0    # seconds per simulated generation
    SIMULATED_FAIL_PROBABILITY: float = 0.0

    # ── Webhooks ────────────────────────────────────────────────
    WEBHOOK_TIMEOUT: float = 10.0

    # ── App ─────────────────────────────────────────────────────
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    MAX_BODY_BYTES: int = 100 * 1024
    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        """Async connection string for FastAPI (uses asyncpg driver)."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton, import this everywhere
settings = Settings()
