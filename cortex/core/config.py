"""Configuration management for the Cortex gateway."""

from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Anthropic configuration (optional - suggestions fail without it)
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    SUGGESTION_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Model for background suggestions"
    )
    SUGGESTION_MAX_TOKENS: int = Field(default=1500, description="Max tokens per suggestion")

    # Environment
    CORTEX_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Internal tools
    ADMIN_API_KEY: str | None = Field(default=None, description="API key for internal tools")

    # Background enrichment
    BACKGROUND_AI_ENABLED: bool = Field(
        default=True, description="Process-wide switch for background suggestions"
    )
    ENRICHMENT_WORKERS: int = Field(default=2, description="Number of enrichment worker tasks")
    ENRICHMENT_DEFAULT_TIMEOUT_SECONDS: float = Field(
        default=30.0, description="Timeout for a suggestion kind without its own limit"
    )

    # AI disclaimer policy
    AI_DISCLAIMER_POLICY_VERSION: str = Field(
        default="2024-10", description="Current AI content policy version users must acknowledge"
    )

    # Gateway
    MAX_LIST_LIMIT: int = Field(default=100, description="Upper bound for list queries")


@dataclass(frozen=True)
class GatewayConfig:
    """Per-instance configuration for the federated data gateway.

    Attributes:
        max_list_limit: Upper bound applied to list_accessible()
        audit_access: Whether to write access decisions to the access log
    """

    max_list_limit: int = 100
    audit_access: bool = True


@dataclass(frozen=True)
class EnrichmentConfig:
    """Per-instance configuration for the background enrichment orchestrator.

    Attributes:
        enabled: Process-wide switch; when False enqueue() is a no-op
        workers: Number of concurrent worker tasks
        default_timeout_seconds: Used for kinds missing from kind_timeouts
        kind_timeouts: Per-kind computation time limit in seconds
    """

    enabled: bool = True
    workers: int = 2
    default_timeout_seconds: float = 30.0
    kind_timeouts: dict[str, float] = field(
        default_factory=lambda: {
            "content": 5.0,
            "risk": 8.0,
            "recommendation": 5.0,
            "quality_score": 3.0,
            "anomaly": 5.0,
        }
    )

    def timeout_for(self, kind: str) -> float:
        return self.kind_timeouts.get(kind, self.default_timeout_seconds)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()


def gateway_config_from_settings(settings: Settings) -> GatewayConfig:
    return GatewayConfig(max_list_limit=settings.MAX_LIST_LIMIT)


def enrichment_config_from_settings(settings: Settings) -> EnrichmentConfig:
    return EnrichmentConfig(
        enabled=settings.BACKGROUND_AI_ENABLED,
        workers=settings.ENRICHMENT_WORKERS,
        default_timeout_seconds=settings.ENRICHMENT_DEFAULT_TIMEOUT_SECONDS,
    )
