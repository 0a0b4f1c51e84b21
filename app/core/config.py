import json
from typing import List, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PRODUCTION_ENVS = {"prod", "production"}
_LOCAL_ENVS = {"dev", "development", "local", "staging", "stage"}
_WEAK_SECRETS = {
    "",
    "change_me",
    "changeme",
    "secret",
    "dev-secret-key-change-before-prod",
}


def _parse_origin_list(value: Union[str, List[str], None]) -> List[str]:
    """Accept `a,b,c`, a JSON list string, or an actual list."""
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            value = json.loads(raw)
            if not isinstance(value, list):
                raise ValueError("CORS_ORIGINS JSON value must be a list")
        else:
            value = raw.split(",")
    if not isinstance(value, list):
        raise ValueError(f"Unsupported CORS_ORIGINS value: {value!r}")
    return [str(item).strip() for item in value if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "Toy Store Backend"
    env: str = "dev"
    log_level: str = "INFO"
    secret_key: str
    access_token_expire_minutes: int = Field(default=60, ge=1, le=60 * 24 * 30)

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    # LOGIN LOCKOUT
    auth_rate_limit_max_attempts: int = Field(default=5, ge=1)
    auth_rate_limit_window_seconds: int = Field(default=300, ge=1)
    auth_rate_limit_lock_seconds: int = Field(default=900, ge=1)

    # Clients use this to size their own request timeouts.
    api_timeout_hint_ms: int = Field(default=30_000, ge=1000, le=1_800_000)

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @property
    def is_production(self) -> bool:
        return self.env.lower().strip() in _PRODUCTION_ENVS

    @property
    def is_local(self) -> bool:
        return self.env.lower().strip() in _LOCAL_ENVS

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: Union[str, List[str], None]) -> List[str]:
        return _parse_origin_list(value)

    @field_validator("cors_origin_regex", mode="before")
    @classmethod
    def normalize_origin_regex(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @model_validator(mode="after")
    def validate_production_safety(self) -> "Settings":
        if not self.is_production:
            return self

        secret = self.secret_key.strip()
        if secret.lower() in _WEAK_SECRETS or len(secret) < 32:
            raise ValueError("SECRET_KEY must be a random value of at least 32 characters in production")
        if "*" in self.cors_origins:
            raise ValueError("CORS_ORIGINS cannot contain '*' in production")
        if self.cors_origin_regex:
            raise ValueError("CORS_ORIGIN_REGEX cannot be set in production")
        if self.database_url.lower().startswith("sqlite"):
            raise ValueError("DATABASE_URL must point at a server database in production")

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
