"""
VarCache - command line access to a configured variable cache.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

import lib.utils as utils
from internal.config.manager import ConfigManager
from internal.services.varcache import VarCacheService
from lib.logging_utils import initLogging
from lib.varcache import CodecMethod, VarCache, VarCacheError

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.WARNING)
logger = logging.getLogger(__name__)


class VarCacheCli:
    """Wires configuration, logging and the cache service together."""

    def __init__(self, configPath: str = "config.toml", configDirs: Optional[List[str]] = None):
        self.configManager = ConfigManager(configPath, configDirs)

        initLogging(self.configManager.getLoggingConfig())

        self.service = VarCacheService.getInstance()
        self.service.injectConfig(self.configManager)

    def run(self, args: argparse.Namespace) -> Any:
        """Run a single subcommand and return its JSON-serializable result."""
        with self.service.lock:
            cache = self.service.getCache()
            try:
                return runCommand(cache, args)
            finally:
                self.service.shutdown()


def runCommand(cache: VarCache, args: argparse.Namespace) -> Any:
    """Execute parsed subcommand against the cache, dood!"""
    match args.command:
        case "get":
            if not cache.has(args.name):
                return None
            return cache.get(args.name)
        case "set":
            value: Any = args.value
            codec = CodecMethod.SERIALIZE
            if args.json:
                value = json.loads(args.value)
                codec = CodecMethod.JSON
            if args.tag:
                return cache.storeTagged(
                    args.name, value, args.tag, compressed=args.compressed, expiry=args.expiry, codec=codec
                )
            return cache.store(args.name, value, compressed=args.compressed, expiry=args.expiry, codec=codec)
        case "delete":
            return cache.delete(args.name or "")
        case "keys":
            return cache.getKeys()
        case "tags":
            return cache.getAllTags()
        case "stats":
            return {
                "hits": cache.getHits(),
                "misses": cache.getMisses(),
                "keys": len(cache.getKeys()),
                "storage": cache.info(),
            }
        case "info":
            return cache.getInfo(args.name)
        case _:
            raise ValueError(f"Unknown command: {args.command}")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="VarCache - named values with expiry and tags, dood!")
    parser.add_argument(
        "-c",
        "--config",
        default="config.toml",
        help="Path to configuration file (default: config.toml)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times), dood!",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit, dood!",
    )

    subparsers = parser.add_subparsers(dest="command")

    getParser = subparsers.add_parser("get", help="Print stored value")
    getParser.add_argument("name")

    setParser = subparsers.add_parser("set", help="Store value")
    setParser.add_argument("name")
    setParser.add_argument("value")
    setParser.add_argument("--expiry", default=0, help="Expiry: seconds, '2 days', a date or 'never'")
    setParser.add_argument("--tag", action="append", help="Tag to attach (can be specified multiple times)")
    setParser.add_argument("--json", action="store_true", help="Parse value as JSON and store it with JSON codec")
    setParser.add_argument("--compressed", action="store_true", help="Compress stored blob")

    deleteParser = subparsers.add_parser("delete", help="Delete entry, or everything if no name given")
    deleteParser.add_argument("name", nargs="?", default="")

    subparsers.add_parser("keys", help="List logical names")
    subparsers.add_parser("tags", help="List every tag in use")
    subparsers.add_parser("stats", help="Print hit/miss counters and storage info")

    infoParser = subparsers.add_parser("info", help="Print metadata of an entry")
    infoParser.add_argument("name")

    args = parser.parse_args(argv)
    args.config = os.path.abspath(args.config)
    if args.config_dir:
        args.config_dir = [os.path.abspath(dirPath) for dirPath in args.config_dir]

    if not args.print_config and not args.command:
        parser.error("a command is required unless --print-config is given")

    return args


def prettyPrintConfig(configManager: ConfigManager):
    """Pretty-print the loaded configuration, dood!"""
    print("=== VarCache Configuration ===")
    print()
    print(utils.jsonDumps(configManager.config, indent=2))
    print()
    print("=== Configuration loaded successfully, dood! ===")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        if args.print_config:
            prettyPrintConfig(ConfigManager(args.config, args.config_dir))
            return 0

        cli = VarCacheCli(configPath=args.config, configDirs=args.config_dir)
        result = cli.run(args)
        print(utils.jsonDumps(result, indent=2))
    except (VarCacheError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
