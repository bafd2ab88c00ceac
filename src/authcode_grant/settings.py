from __future__ import annotations

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthorizationCodeGrantSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTHCODE_GRANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    cache_enabled: bool = False
    cache_max_size: PositiveInt = Field(default=1024)
    cache_ttl_seconds: PositiveInt = Field(default=300)

    issue_refresh_token: bool = True
    access_token_ttl_seconds: PositiveInt = Field(default=3600)
    token_prefix: str = "acg_"

    @field_validator("token_prefix")
    @classmethod
    def validate_token_prefix(cls, value: str) -> str:
        if any(char.isspace() for char in value):
            msg = "token_prefix must not contain whitespace"
            raise ValueError(msg)
        return value
