"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (LINKGLANCE__CACHE__TTL_DAYS=7)
  2. linkglance.yaml        (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from linkglance import __version__


def _find_config_file() -> str | None:
    """Return the path of the first linkglance.yaml found, or None."""
    candidates = [
        Path("linkglance.yaml"),
        Path(platformdirs.user_config_dir("linkglance")) / "linkglance.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080


class FetcherSettings(BaseModel):
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    max_content_bytes: int = Field(default=2 * 1024 * 1024, gt=0)
    user_agent: str = f"linkglance/{__version__}"


class CacheSettings(BaseModel):
    ttl_days: int = Field(default=30, ge=1)
    max_entries: int | None = Field(default=1000, ge=1)
    # 0 disables the background sweep; expired entries are still dropped on read
    sweep_interval_seconds: int = Field(default=3600, ge=0)


class ResolverSettings(BaseModel):
    strategy: Literal["direct", "delegated"] = "direct"
    # "package.module:attribute", only read when strategy is "delegated"
    delegate: str | None = None


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: LINKGLANCE__SERVER__PORT=9090
        env_prefix="LINKGLANCE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    fetcher: FetcherSettings = FetcherSettings()
    cache: CacheSettings = CacheSettings()
    resolver: ResolverSettings = ResolverSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
