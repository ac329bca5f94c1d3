"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode
from pydantic import AliasChoices, Field, field_validator, ConfigDict

# Project root: tempo-guide/
PROJECT_ROOT = Path(__file__).parent.parent.parent


@dataclass(frozen=True)
class StravaCredentials:
    """Strava API application credentials passed to OAuth/API clients."""

    client_id: str
    client_secret: str
    scope: str = "read,activity:read_all"


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///./tempo_guide.db",
        description="Database connection URL"
    )

    # === CORS / Frontend ===
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )
    frontend_origin: str = Field(
        default="http://localhost:5173",
        description="Frontend origin used for OAuth failure redirects"
    )

    # === Strava ===
    strava_client_id: Optional[str] = Field(default=None)
    strava_client_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("strava_client_secret", "strava_secret"),
    )
    strava_scope: str = Field(default="read,activity:read_all")
    strava_callback_path: str = Field(default="/api/v1/auth/strava/callback")

    # === OAuth state tokens ===
    state_token_ttl_minutes: int = Field(default=15, ge=1)

    # === Token vault ===
    token_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key used to encrypt provider tokens at rest"
    )

    # === Caller authentication (JWT issued by the auth provider) ===
    auth_jwt_secret: Optional[str] = Field(default=None)
    auth_jwt_algorithm: str = Field(default="HS256")
    auth_jwt_audience: Optional[str] = Field(default="authenticated")

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @property
    def strava_configured(self) -> bool:
        return bool(self.strava_client_id and self.strava_client_secret)

    def strava_credentials(self) -> StravaCredentials:
        """Build the credentials value handed to Strava clients."""
        return StravaCredentials(
            client_id=self.strava_client_id or "",
            client_secret=self.strava_client_secret or "",
            scope=self.strava_scope,
        )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Global settings instance
settings = Settings()
