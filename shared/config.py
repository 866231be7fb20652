"""
Shared configuration management for the Janus gateway.

Settings are read once at startup from a TOML file; ``JANUS_``-prefixed
environment variables override file values (``JANUS_ALIYUN__ACCESS_KEY_ID``
for nested sections). The resulting object is passed explicitly to every
component and never mutated.
"""

import os
import tomllib
from pathlib import Path
from typing import Dict, Literal, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from shared.logging import get_logger

DEFAULT_CONFIG_PATH = "config.toml"
OBJECT_KEY_PLACEHOLDER = "{object_key}"

logger = get_logger("shared.config")


class FrozenSection(BaseModel):
    """Read-only configuration section."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class ServerConfig(FrozenSection):
    """Address the HTTP server listens on."""

    binding: str = "localhost"
    port: int = 8000

    def full_url(self) -> str:
        return f"{self.binding}:{self.port}"


class LoggerConfig(FrozenSection):
    enable: bool = True
    level: Literal["trace", "debug", "info", "warn", "warning", "error"] = "info"
    # "compact" and "pretty" render for humans, "json" for log shippers
    format: Literal["compact", "pretty", "json"] = "json"


class HttpClientConfig(FrozenSection):
    """Outbound HTTP client settings shared by all remote APIs."""

    timeout_seconds: float = 10.0
    max_connections: int = 100
    # Inbound request bodies must be fully received within this window.
    request_body_timeout_seconds: float = 10.0


class JwtConfig(FrozenSection):
    """ES256 key pair; the private key is only needed to issue tokens."""

    private_key: Optional[str] = None
    public_key: Optional[str] = None
    # Unset means issued tokens carry no ``exp`` claim and never expire.
    token_ttl_seconds: Optional[int] = Field(default=None, gt=0)


class AliyunConfig(FrozenSection):
    """Aliyun credentials and the bucket → CDN URL template map."""

    access_key_id: str
    access_key_secret: str
    cdn_endpoint: str = "cdn.aliyuncs.com"
    bucket_url_map: Dict[str, str] = Field(default_factory=dict)

    @field_validator("bucket_url_map")
    @classmethod
    def _templates_have_placeholder(cls, value: Dict[str, str]) -> Dict[str, str]:
        for bucket, template in value.items():
            if OBJECT_KEY_PLACEHOLDER not in template:
                raise ValueError(f"URL template for bucket {bucket!r} lacks {OBJECT_KEY_PLACEHOLDER}")
        return value


class BilibiliConfig(FrozenSection):
    """Session cookies of the account that posts dynamics."""

    sessdata: str
    bili_jct: str


class GatewaySettings(BaseSettings):
    """Complete application settings combining file and environment layers."""

    model_config = SettingsConfigDict(
        env_prefix="JANUS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    env: str = "local"
    server: ServerConfig = Field(default_factory=ServerConfig)
    logger: LoggerConfig = Field(default_factory=LoggerConfig)
    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    jwt: JwtConfig = Field(default_factory=JwtConfig)
    aliyun: Optional[AliyunConfig] = None
    bilibili: Optional[BilibiliConfig] = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment takes precedence.
        return (env_settings, dotenv_settings, init_settings, file_secret_settings)


def load_settings(config_path: Optional[Union[str, Path]] = None) -> GatewaySettings:
    """Load settings from a TOML file (if present) and the environment."""
    path = Path(config_path or os.getenv("JANUS_CONFIG", DEFAULT_CONFIG_PATH))
    file_values: Dict = {}
    if path.is_file():
        logger.info("Loading configuration", selected_path=str(path))
        with path.open("rb") as fh:
            file_values = tomllib.load(fh)
    elif config_path is not None:
        raise FileNotFoundError(f"Configuration file not found: {path}")
    else:
        logger.warning("Configuration file missing, using environment only", selected_path=str(path))
    return GatewaySettings(**file_values)
