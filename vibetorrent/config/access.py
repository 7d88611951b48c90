"""Process-wide cached view of the configuration file."""

from __future__ import annotations

import threading
from pathlib import Path

from vibetorrent.config.loader import get_config_path, load_config, load_file_config, save_config
from vibetorrent.config.schema import Config

_lock = threading.RLock()
_configs: dict[Path, Config] = {}


def _resolve(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Return the config for a path, loading it on first use."""
    path = _resolve(config_path)
    with _lock:
        cfg = _configs.get(path)
        if cfg is None or force_reload:
            cfg = _configs[path] = load_config(path)
        return cfg


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached config, or all of them when no path is given."""
    with _lock:
        if config_path is None:
            _configs.clear()
        else:
            _configs.pop(_resolve(config_path), None)


def persist_setup(
    endpoint: str,
    *,
    default_path: str = "",
    temp_path: str = "",
    config_path: Path | None = None,
) -> Config:
    """Store a verified endpoint (and optional download paths) and return the fresh config."""
    path = _resolve(config_path)
    with _lock:
        # Environment overrides stay out of the file.
        cfg = load_file_config(path)
        cfg.rtorrent.socket = endpoint
        if default_path:
            cfg.downloads.default_path = default_path
        if temp_path:
            cfg.downloads.temp_path = temp_path
        save_config(cfg, path)
        return get_config(config_path=path)
