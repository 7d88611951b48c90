"""Configuration loading utilities."""

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from vibetorrent.config.schema import Config

CONFIG_ENV_VAR = "VIBETORRENT_CONFIG"
CONFIG_FILENAME = "config.json"


def get_config_path() -> Path:
    """
    Resolve the configuration file path.

    Order: $VIBETORRENT_CONFIG, then ./config.json when it exists, then
    ~/.config/vibetorrent/config.json.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if explicit:
        return Path(explicit).expanduser()
    local = Path.cwd() / CONFIG_FILENAME
    if local.exists():
        return local
    return Path.home() / ".config" / "vibetorrent" / CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or fall back to defaults.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object, with environment overrides applied.
    """
    path = config_path or get_config_path()
    data = read_config_file(path)
    try:
        cfg = Config(**data)
    except ValidationError as e:
        raise ValueError(_load_failure(path, e)) from e

    _apply_env_overrides(cfg)
    return cfg


def read_config_file(config_path: Path) -> dict[str, Any]:
    """Return the file's settings as snake_case data, or {} when there is no file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(_load_failure(config_path, e)) from e
    if not isinstance(data, dict):
        raise ValueError(_load_failure(config_path, "config root must be a JSON object"))
    return convert_keys(data)


def load_file_config(config_path: Path) -> Config:
    """
    Build a config from the file and defaults only.

    Neither VIBETORRENT_* variables nor RTORRENT_SOCKET/HOST/PORT are applied,
    so the result is safe to write back to disk.
    """
    data = read_config_file(config_path)
    try:
        sections = {
            name: field.annotation.model_validate(data.get(name, {}))
            for name, field in Config.model_fields.items()
        }
    except ValidationError as e:
        raise ValueError(_load_failure(config_path, e)) from e
    return Config.model_construct(**sections)


def _load_failure(path: Path, reason: Any) -> str:
    return f"Failed to load config from {path}: {reason}. Fix the file or remove it to regenerate defaults."


def _apply_env_overrides(cfg: Config) -> None:
    """Apply the short deployment variables RTORRENT_SOCKET, HOST and PORT."""
    socket = os.environ.get("RTORRENT_SOCKET")
    if socket:
        cfg.rtorrent.socket = socket.strip()
    host = os.environ.get("HOST")
    if host:
        cfg.server.host = host.strip()
    port = os.environ.get("PORT")
    if port:
        try:
            cfg.server.port = int(port)
        except ValueError as e:
            raise ValueError(f"PORT must be an integer, got {port!r}") from e


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.

    Returns:
        The path written.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    # Keep the cached facade coherent without a hard import cycle.
    from vibetorrent.config.access import clear_config_cache

    clear_config_cache(config_path=path)
    return path


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
