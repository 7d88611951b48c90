"""Configuration schema using Pydantic.

Single data model and defaults for vibetorrent, persisted as camelCase JSON
(see ``loader.get_config_path``).
"""

import re
from typing import Any

from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic_settings import BaseSettings

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """Seconds from a number or a string such as "30s", "500ms", "2m"."""
    if isinstance(value, bool):
        raise ValueError("duration must be a number or a string like '30s'")
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


class RTorrentConfig(BaseModel):
    """rTorrent connection settings."""
    socket: str = ""  # unix:///path, /path, tcp://host:port, host:port or "mock"
    timeout: float = 30.0  # seconds, whole call
    connect_timeout: float = 5.0
    max_response_bytes: int = Field(default=32 * 1024 * 1024, gt=0)
    # Fetch torrent details with one system.multicall instead of a call per field.
    batch_details: bool = True

    @field_validator("timeout", "connect_timeout", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> float:
        seconds = parse_duration(value)
        if seconds <= 0:
            raise ValueError("duration must be positive")
        return seconds


class ServerConfig(BaseModel):
    """Web server configuration."""
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class DownloadsConfig(BaseModel):
    default_path: str = "/downloads"
    temp_path: str = "/downloads/incomplete"


class PreferencesConfig(BaseModel):
    """Dashboard preferences."""
    theme: str = "dark"
    items_per_page: int = Field(default=50, ge=1)
    refresh_interval: float = 2.0  # seconds between dashboard polls

    @field_validator("refresh_interval", mode="before")
    @classmethod
    def _coerce_interval(cls, value: Any) -> float:
        return parse_duration(value)


class Config(BaseSettings):
    """Root configuration for vibetorrent."""
    rtorrent: RTorrentConfig = Field(default_factory=RTorrentConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    downloads: DownloadsConfig = Field(default_factory=DownloadsConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)

    @property
    def is_rtorrent_configured(self) -> bool:
        return bool(self.rtorrent.socket.strip())

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # VIBETORRENT_* variables win over values read from the config file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    model_config = ConfigDict(
        env_prefix="VIBETORRENT_",
        env_nested_delimiter="__"
    )
