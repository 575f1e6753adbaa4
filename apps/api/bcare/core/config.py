"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Bearer tokens (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 8

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Sentry (error tracking)
    SENTRY_DSN: str = ""

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Rate limiting (requests per minute, 0 disables)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Ticketing
    TICKET_NUMBER_PREFIX: str = "BNI"
    TICKET_TIMEZONE: str = "Asia/Jakarta"  # Calendar day used for ticket numbers
    TICKET_NUMBER_MAX_RETRIES: int = 3
    DEFAULT_SLA_DAYS: int = 1  # Used when no complaint policy matches
    CXC_DIVISION_ID: int = 1
    CXC_ROLE_ID: int = 1
    POLICY_SPECIFICITY_KEYWORDS: str = "BNI,Bank Lain,ATM BNI,ATM Bank Lain"

    # SLA monitor
    SLA_WARNING_WINDOW_HOURS: int = 1

    # Email (Resend)
    RESEND_API_KEY: str = ""  # Empty = dry run (logged, not sent)
    EMAIL_FROM: str = "B-Care <noreply@bcare.local>"

    # Push notifications (FCM legacy HTTP API)
    FCM_SERVER_KEY: str = ""  # Empty = dry run (logged, not sent)
    FCM_ENDPOINT: str = "https://fcm.googleapis.com/fcm/send"

    # Worker
    WORKER_POLL_INTERVAL: int = 10
    WORKER_BATCH_SIZE: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Secrets accepted for token verification (current first)."""
        return [s for s in (self.JWT_SECRET, self.JWT_SECRET_PREVIOUS) if s]

    @property
    def policy_keywords_list(self) -> list[str]:
        """Parse policy specificity keywords from comma-separated string."""
        return [k.strip() for k in self.POLICY_SPECIFICITY_KEYWORDS.split(",") if k.strip()]


settings = Settings()
