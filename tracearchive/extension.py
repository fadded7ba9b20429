"""
Extension configuration loader for tracearchive.

This module loads extension configuration from extension.ini files in
installed extension packages. Extensions contribute platform type tables for
additional traced systems without touching the core package.

Example extension.ini:

    [extensions]
    package_name = tracearchive_giraph
    platforms_dirs = tracearchive_giraph/platforms
"""

import os
import configparser
import importlib.util
import logging

log = logging.getLogger(__name__)

CORE_PKG_NAME = "tracearchive"
CORE_PLATFORMS_DIR = os.path.join("input", "platforms")
EXTENSION_ENV_VAR = "TRACEARCHIVE_EXTENSION_PKG_NAMES"


class ExtensionConfig:
    """Load and parse extension configuration from extension.ini files."""

    def __init__(self):
        """Initialize the extension config loader."""
        self.config = None
        self.extension_ini_base = None
        self.site_packages_dir = None
        self.load_config()

    def load_config(self):
        """
        Load extension.ini from the packages named in the environment, or from the core package.

        Search order:
        1. If TRACEARCHIVE_EXTENSION_PKG_NAMES is set (comma-separated list):
           look for extension.ini in each <extension_pkg>/extension.ini, first hit wins
        2. Otherwise, look for extension.ini in the tracearchive package directory
        """
        config_file = None
        extension_pkg_names = os.environ.get(EXTENSION_ENV_VAR)
        if extension_pkg_names:
            for pkg_name in extension_pkg_names.split(","):
                pkg_name = pkg_name.strip()
                if pkg_name:
                    config_file = self._find_config_in_package(pkg_name)
                    if config_file:
                        break

        if not config_file:
            config_file = self._find_config_in_package(CORE_PKG_NAME)

        if config_file and os.path.exists(config_file):
            try:
                self.config = configparser.ConfigParser()
                self.config.read(config_file)
                self.extension_ini_base = os.path.dirname(config_file)
                # Sibling extension packages resolve relative to site-packages
                self.site_packages_dir = os.path.dirname(self.extension_ini_base)
            except configparser.Error as e:
                log.warning(f"Could not parse extension config {config_file}: {e}")
                self.config = None

    def _find_config_in_package(self, package_name):
        """
        Find extension.ini in an installed package.

        Args:
            package_name (str): The name of the package to search

        Returns:
            str or None: Path to extension.ini if found, None otherwise
        """
        try:
            spec = importlib.util.find_spec(package_name)
        except (ImportError, ValueError):
            return None
        if spec and spec.origin:
            config_path = os.path.join(os.path.dirname(spec.origin), "extension.ini")
            if os.path.exists(config_path):
                return os.path.abspath(config_path)
        return None

    def get_package_name(self):
        """Package name from config, defaulting to the core package."""
        if self.config and self.config.has_option("extensions", "package_name"):
            return self.config.get("extensions", "package_name")
        return CORE_PKG_NAME

    def get_platforms_dirs(self):
        """
        Platform table directories contributed by extensions.

        Relative paths resolve from the site-packages directory so an
        extension can point at its own package (e.g. ``my_ext/platforms``).

        Returns:
            list: Absolute directory paths
        """
        dirs = []
        if self.config and self.config.has_option("extensions", "platforms_dirs"):
            dirs_str = self.config.get("extensions", "platforms_dirs")
            for platform_path in [d.strip() for d in dirs_str.split(",") if d.strip()]:
                if os.path.isabs(platform_path):
                    dirs.append(platform_path)
                else:
                    dirs.append(os.path.join(self.site_packages_dir, platform_path))
        return dirs


def core_platforms_dir():
    """Directory holding the platform tables shipped with tracearchive."""
    return os.path.join(os.path.dirname(__file__), CORE_PLATFORMS_DIR)
