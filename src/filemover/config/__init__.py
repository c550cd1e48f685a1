"""
Configuration management: YAML loading, placeholder resolution, global access.
"""

from filemover.config.loader import Config, load_config
from filemover.config.resolver import resolve_config
from filemover.config.singleton import get_config, set_config

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "get_config",
    "set_config",
]
