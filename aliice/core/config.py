"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    TESTING: bool = False

    # Redis (rate limit storage; empty = in-memory)
    REDIS_URL: str = ""

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Dev-only
    DEV_SECRET: str = "change-me"

    # OpenAI (assistant chat)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Agora RTC (Dischat voice/video)
    AGORA_APP_ID: str = ""
    AGORA_APP_CERTIFICATE: str = ""  # Empty = tokens disabled (testing mode project)
    AGORA_TOKEN_TTL_SECONDS: int = 3600

    # File storage (account documents, canvas images)
    STORAGE_BACKEND: str = "local"  # 'local' or 's3'
    LOCAL_STORAGE_PATH: str = "/tmp/aliice-uploads"
    S3_BUCKET: str = "aliice-uploads"
    S3_REGION: str = "us-east-1"
    S3_PUBLIC_BASE_URL: str = ""  # e.g. https://cdn.example.com
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    # Marketing
    DEFAULT_CURRENCY: str = "AED"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting (requests per minute)
    RATE_LIMIT_API: int = 60  # General API
    RATE_LIMIT_AI: int = 20  # LLM-backed endpoints
    RATE_LIMIT_PUBLIC: int = 30  # Unauthenticated lead capture

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

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only in production."""
        return self.ENV != "dev"


settings = Settings()
