"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.03.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Set by the test suite; switches rate limiting to in-memory storage
    TESTING: bool = False

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 8

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Webhook secrets at rest (Fernet key)
    INTEGRATION_ENCRYPTION_KEY: str = ""  # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_WEBHOOK: int = 120  # Calendar webhooks
    RATE_LIMIT_API: int = 60  # General API

    # Scheduling
    DEFAULT_ORG_TIMEZONE: str = "America/New_York"
    MAX_RECURRING_WEEKS: int = 52

    # Calendar webhook ingestion
    WEBHOOK_MIN_LEAD_HOURS: float = 2.0  # Appointments sooner than this never become trips
    WEBHOOK_MAX_PAYLOAD_BYTES: int = 256000
    WEBHOOK_DEDUPE_ENABLED: bool = True  # One trip per (integration, event_id)
    WEBHOOK_LOG_LIMIT: int = 100

    # Permission cache
    PERMISSION_CACHE_TTL_SECONDS: int = 300

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets


settings = Settings()
