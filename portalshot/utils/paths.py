"""Centralized path management for Portalshot.

This module provides the default locations of the configuration file and
the screenshots directory.
"""

import os
from pathlib import Path


class PortalshotPaths:
    """Centralized path management for Portalshot.

    Provides consistent access to default directories across the application.
    """

    # Default directories (will be expanded with os.path.expanduser)
    DEFAULT_SCREENSHOTS_DIR = "~/Pictures/Screenshots"
    DEFAULT_CONFIG_HOME = "~/.config"

    APP_DIR_NAME = "portalshot"
    CONFIG_FILENAME = "config.yaml"

    @staticmethod
    def get_screenshots_dir() -> str:
        """Get the default screenshots directory (expanded).

        Returns:
            str: Absolute path to screenshots directory with ~ expanded.
        """
        return os.path.expanduser(PortalshotPaths.DEFAULT_SCREENSHOTS_DIR)

    @staticmethod
    def get_config_dir() -> str:
        """Get the configuration directory, honoring $XDG_CONFIG_HOME."""
        config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser(
            PortalshotPaths.DEFAULT_CONFIG_HOME
        )
        return os.path.join(config_home, PortalshotPaths.APP_DIR_NAME)

    @staticmethod
    def get_config_file() -> str:
        return os.path.join(PortalshotPaths.get_config_dir(), PortalshotPaths.CONFIG_FILENAME)

    @staticmethod
    def ensure_directory(path: str) -> str:
        """Create path (and parents) if missing and return it expanded."""
        expanded = os.path.expanduser(path)
        Path(expanded).mkdir(parents=True, exist_ok=True)
        return expanded
