"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Runtime
    environment: str = "development"
    port: int = 5000
    log_level: str = "INFO"

    # Database (in-memory storage when unset)
    database_url: str | None = None

    # AI provider (OpenAI-compatible)
    ai_integrations_openai_base_url: str | None = None
    ai_integrations_openai_api_key: str | None = None
    openai_model: str = "gpt-5"
    openai_embedding_model: str = "text-embedding-3-small"

    # Billing
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_price_id_monthly: str | None = None
    stripe_price_id_yearly: str | None = None
    frontend_url: str = "http://localhost:5000"

    # Plans
    free_daily_limit: int = 20

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    cors_origin: str = "*"
    seed_demo_accounts: bool = True

    # Topic intelligence
    topic_intelligence_embeddings: str = "on"
    topic_intelligence_batch: int = 50
    topic_intelligence_hybrid: str = "off"
    topic_intelligence_chunk_limit: int = 300

    # Company info (shown in the client footer and legal pages)
    company_name: str = "IWRITE"
    company_legal_name: str = ""
    company_address: str = ""
    company_email: str = "support@example.com"
    company_phone: str = ""
    company_vat_id: str = ""
    company_registration_number: str = ""
    company_website: str = ""

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production mode."""
        return self.environment.lower() == "production"

    @property
    def embeddings_enabled(self) -> bool:
        """Whether chunk embeddings are generated and used for search."""
        return self.topic_intelligence_embeddings.lower() != "off"

    @property
    def hybrid_search(self) -> bool:
        """Whether search blends cosine and keyword scores."""
        return self.topic_intelligence_hybrid.lower() == "on"

    def validate_for_startup(self) -> None:
        """Refuse to boot production without real secrets.

        Raises:
            RuntimeError: If a required production secret is missing
        """
        if not self.is_production:
            return
        if not self.jwt_secret or self.jwt_secret == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set in production")
        if not self.ai_integrations_openai_api_key:
            raise RuntimeError("AI_INTEGRATIONS_OPENAI_API_KEY must be set in production")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
