#!/usr/bin/env python3
import argparse
import sys
import os
import importlib
import pkgutil
import importlib.metadata as metadata
from fvharness.cli_plugins.base import SubcommandPlugin

PLUGIN_DIR = os.path.join(os.path.dirname(__file__), "cli_plugins")
DEFAULT_COMMAND = "run"
TOP_LEVEL_FLAGS = {"-h", "--help", "--version"}


def get_version():
    """Get the version from importlib.metadata or fallback to version.txt file."""
    try:
        return f"fvharness: {metadata.version('fvharness')}"
    except metadata.PackageNotFoundError:
        # Fallback for development
        version_file = os.path.join(os.path.dirname(__file__), "..", "version.txt")
        if os.path.exists(version_file):
            with open(version_file) as f:
                return f"fvharness: {f.read().strip()}"
    return "fvharness: unknown"


def discover_plugins():
    """Discover and instantiate all CLI subcommand plugin classes from the cli_plugins directory.

    Only classes defined directly in a plugin module (not imported) are considered,
    so a plugin extending another one is not registered twice.

    Returns:
        list: A list of instantiated plugin objects, sorted by order then alphabetically by name.
    """
    plugins = []
    for _, name, ispkg in pkgutil.iter_modules([PLUGIN_DIR]):
        if not ispkg:
            try:
                mod = importlib.import_module(f"fvharness.cli_plugins.{name}")
            except Exception as e:
                print(f"Warning: Failed to load plugin {name}: {e}")
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

    # Sort plugins by order first, then by name
    return sorted(plugins, key=lambda p: (p.get_order(), p.get_name()))


def build_arg_parser(plugins):
    """Build the main argument parser for the fvharness CLI.

    Epilogs (examples/help) from all plugins are concatenated into the main
    parser's epilog.

    Args:
        plugins (list): List of instantiated plugin objects.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    epilogs = [plugin.get_epilog() for plugin in plugins if plugin.get_epilog().strip()]
    epilog = "\n".join(epilogs) if epilogs else ""

    parser = argparse.ArgumentParser(
        description="Felix functional verification harness (configured through environment variables)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    parser.add_argument("--version", action="version", version=get_version())
    subparsers = parser.add_subparsers(dest="command", help="Available commands (default: run)")
    for plugin in plugins:
        plugin.get_parser(subparsers)
    return parser


def main(plugins=None, argv=None):
    if plugins is None:
        plugins = discover_plugins()
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    parser = build_arg_parser(plugins)

    # Without a subcommand the harness runs; "fvharness --log-level DEBUG" means "fvharness run --log-level DEBUG"
    names = {p.get_name() for p in plugins}
    if DEFAULT_COMMAND in names and not names.intersection(argv) and not TOP_LEVEL_FLAGS.intersection(argv):
        argv = [DEFAULT_COMMAND] + argv
    args = parser.parse_args(argv)

    # Dispatch to plugin
    if hasattr(args, "_plugin"):
        args._plugin.run(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
