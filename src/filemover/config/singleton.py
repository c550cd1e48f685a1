"""
Process-wide configuration.

Published once by the initializer at boot; logging auto-setup reads it.
"""

import threading

from filemover.config.loader import Config

_current: Config | None = None
_lock = threading.Lock()


def get_config() -> Config | None:
    """Return the published Config, or None before the worker boots."""
    return _current


def set_config(config: Config) -> None:
    global _current
    with _lock:
        _current = config


def reset_config() -> None:
    """Forget the published config (tests)."""
    global _current
    with _lock:
        _current = None
