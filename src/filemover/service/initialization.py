"""
FileMover startup initialization.

Orchestrates initialization in order:
1. Config (with validation)
2. Logging
3. Worker components (bus, ledger, catalog, scheduler, consumer)
"""

import logging
import os
from pathlib import Path

import yaml

from filemover.config.loader import Config, load_config
from filemover.config.singleton import set_config
from filemover.exceptions import ConfigurationError, FileMoverError, InitializationError
from filemover.utils.logging import setup_logging_from_config


class FileMoverInitializer:
    """Handles initialization of a FileMover project directory."""

    def __init__(self, project_dir: Path, env: str | None = None, verbose: bool = False):
        self.project_dir = Path(project_dir)
        self.env = env or os.environ.get("FILEMOVER_ENV")
        self.verbose = verbose
        self.config: Config | None = None

    def initialize_config(self) -> Config:
        """Load, validate and publish the configuration, then set up logging."""
        self.config = self._initialize_config()
        self._initialize_logging()
        return self.config

    def _initialize_config(self) -> Config:
        try:
            config = load_config(self.project_dir, env=self.env)
            config.validate()
            return config
        except ConfigurationError as e:
            raise InitializationError(str(e), details=e.details) from None
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise InitializationError(str(e)) from None

    def _initialize_logging(self) -> None:
        assert self.config is not None
        set_config(self.config)
        logger = setup_logging_from_config(self.config.data, project_dir=self.project_dir)
        if self.verbose:
            logger.setLevel(logging.DEBUG)
            for handler in logger.handlers:
                handler.setLevel(logging.DEBUG)

    def build_worker(self):
        """Build a FileMoverWorker from the loaded config."""
        from filemover.service.worker import FileMoverWorker

        if self.config is None:
            self.initialize_config()
        try:
            return FileMoverWorker(self.config)
        except FileMoverError as e:
            raise InitializationError(f"Failed to build worker: {e}", details=e.details) from None


def initialize(project_dir: Path, env: str | None = None, verbose: bool = False) -> Config:
    """
    Initialize a FileMover project: config plus logging.

    Raises:
        InitializationError: If the config cannot be loaded or is invalid
    """
    return FileMoverInitializer(project_dir, env=env, verbose=verbose).initialize_config()
