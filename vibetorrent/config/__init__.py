"""Configuration module for vibetorrent."""

from vibetorrent.config.loader import load_config, get_config_path, save_config
from vibetorrent.config.schema import Config
from vibetorrent.config.access import get_config, clear_config_cache, persist_setup

__all__ = [
    "Config",
    "load_config",
    "get_config_path",
    "save_config",
    "get_config",
    "clear_config_cache",
    "persist_setup",
]
