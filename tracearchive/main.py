#!/usr/bin/env python3
import argparse
import sys
import os
import importlib
import logging
import pkgutil
import importlib.metadata as metadata
from tracearchive.cli_plugins.base import SubcommandPlugin

PLUGIN_DIR = os.path.join(os.path.dirname(__file__), "cli_plugins")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

log = logging.getLogger(__name__)


def get_version():
    """Get the version from importlib.metadata or fallback to version.txt file."""
    try:
        return f"tracearchive: {metadata.version('tracearchive')}"
    except metadata.PackageNotFoundError:
        # Fallback for development
        version_file = os.path.join(os.path.dirname(__file__), "..", "version.txt")
        if os.path.exists(version_file):
            with open(version_file) as f:
                return f"tracearchive: {f.read().strip()}"
    return "tracearchive: unknown"


def discover_plugins():
    """Discover and instantiate all CLI subcommand plugin classes from the cli_plugins directory.

    Only classes defined directly in a plugin module (not imported) are
    considered, to avoid duplicates from relative imports.

    Returns:
        list: Plugin instances, sorted by order then alphabetically by name.
    """
    plugins = []
    for _, name, ispkg in pkgutil.iter_modules([PLUGIN_DIR]):
        if ispkg:
            continue
        try:
            mod = importlib.import_module(f"tracearchive.cli_plugins.{name}")
        except Exception as e:
            log.warning(f"Failed to load plugin {name}: {e}")
            continue
        for attr in dir(mod):
            obj = getattr(mod, attr)
            if (
                isinstance(obj, type)
                and issubclass(obj, SubcommandPlugin)
                and obj is not SubcommandPlugin
                and obj.__module__ == mod.__name__
            ):
                plugins.append(obj())

    return sorted(plugins, key=lambda p: (p.get_order(), p.get_name()))


def build_arg_parser(plugins):
    """Build the main argument parser with one subparser per plugin.

    Plugin epilogs (examples/help) are concatenated into the main epilog.
    """
    epilogs = [plugin.get_epilog() for plugin in plugins if plugin.get_epilog().strip()]
    epilog = "\n".join(epilogs) if epilogs else ""

    parser = argparse.ArgumentParser(
        description="Trace archive builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    parser.add_argument("--version", action="version", version=get_version())
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    for plugin in plugins:
        plugin.get_parser(subparsers)
    return parser


def configure_logging(verbose=False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def main(plugins=None, argv=None):
    if plugins is None:
        plugins = discover_plugins()
    parser = build_arg_parser(plugins)
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    # Dispatch to plugin
    if hasattr(args, "_plugin"):
        return args._plugin.run(args)
    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    sys.exit(main())
