"""
Configuration management for varcache.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomli

import lib.utils as utils

logger = logging.getLogger(__name__)


def replaceMatchToEnv(match: re.Match[str]) -> str:
    """Replace environment variable placeholder with its value.

    Args:
        match: A regex match object containing the environment variable name.

    Returns:
        str: The value of the environment variable or the original placeholder
             if the variable is not set.
    """
    key = match.group(1)
    return os.getenv(key, match.group(0))


def substituteEnvVars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} placeholders in configuration values.

    Strings get placeholders replaced, dicts and lists are processed item by
    item, anything else is returned unchanged.
    """
    if isinstance(value, str):
        return re.sub(r"\$\{([A-Za-z_][A-Za-z0-9_-]*)\}", replaceMatchToEnv, value)
    elif isinstance(value, dict):
        return {k: substituteEnvVars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substituteEnvVars(item) for item in value]
    return value


class ConfigManager:
    """Loads and merges varcache configuration, dood!"""

    def __init__(
        self, configPath: str = "config.toml", configDirs: Optional[List[str]] = None, dotEnvFile: str = ".env"
    ):
        """Initialize ConfigManager with config file path and optional config directories."""
        self.config_path = configPath
        self.config_dirs = configDirs or []
        utils.load_dotenv(path=dotEnvFile)
        self.config = substituteEnvVars(self._loadConfig())

    def _findTomlFilesRecursive(self, directory: str) -> List[Path]:
        """Recursively find all .toml files in a directory, dood!"""
        tomlFiles: List[Path] = []
        dirPath = Path(directory)

        if not dirPath.exists():
            logger.warning(f"Config directory {directory} does not exist, skipping, dood!")
            return tomlFiles

        if not dirPath.is_dir():
            logger.warning(f"Config path {directory} is not a directory, skipping, dood!")
            return tomlFiles

        try:
            for tomlFile in dirPath.rglob("*.toml"):
                if tomlFile.is_file():
                    tomlFiles.append(tomlFile)
                    logger.debug(f"Found config file: {tomlFile}")
        except OSError as e:
            logger.error(f"Error scanning directory {directory}: {e}")

        return sorted(tomlFiles)

    def _mergeConfigs(self, baseConfig: Dict[str, Any], newConfig: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge two configuration dictionaries, later values win."""
        merged = baseConfig.copy()

        for key, value in newConfig.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._mergeConfigs(merged[key], value)
            else:
                merged[key] = value

        return merged

    def _loadConfig(self) -> Dict[str, Any]:
        """
        Load configuration from the main TOML file and optional config directories.

        Files found in config directories are merged on top of the main file in
        sorted order. A broken file inside a config directory is logged and
        skipped.

        Returns:
            Dict[str, Any]: The loaded and merged configuration dictionary.

        Raises:
            SystemExit: If the main file is missing and no config directories are
                        given, or if the main file cannot be parsed.
        """
        configFile = Path(self.config_path)
        hasConfigFile = configFile.exists()
        if not hasConfigFile and not self.config_dirs:
            logger.error(f"Configuration file {self.config_path} not found!")
            sys.exit(1)

        config: Dict[str, Any] = {}
        if hasConfigFile:
            try:
                with open(configFile, "rb") as f:
                    config = tomli.load(f)
            except (OSError, tomli.TOMLDecodeError) as e:
                logger.error(f"Failed to load configuration {self.config_path}: {e}")
                sys.exit(1)
            logger.info(f"Loaded main config from {self.config_path}")

        if self.config_dirs:
            logger.info(f"Scanning {len(self.config_dirs)} config directories for .toml files, dood!")

            for configDir in self.config_dirs:
                tomlFiles = self._findTomlFilesRecursive(configDir)
                logger.info(f"Found {len(tomlFiles)} .toml files in {configDir}")

                for tomlFile in tomlFiles:
                    try:
                        with open(tomlFile, "rb") as f:
                            dirConfig = tomli.load(f)
                    except (OSError, tomli.TOMLDecodeError) as e:
                        logger.error(f"Failed to load config file {tomlFile}: {e}")
                        continue

                    config = self._mergeConfigs(config, dirConfig)
                    logger.info(f"Merged config from {tomlFile}")

        logger.info("Configuration loaded and merged successfully, dood!")
        return config

    def get(self, key: str, default=None) -> Any:
        """Get configuration value by key."""
        return self.config.get(key, default)

    def getCacheConfig(self) -> Dict[str, Any]:
        """
        Get cache facade configuration.

        Recognised keys:
        - enabled: Whether the cache does anything at all (default true)
        - encrypt-keys: Whether logical names are hashed before reaching
          the backend (default true)
        """
        return self.get("cache", {})

    def getStorageConfig(self) -> Dict[str, Any]:
        """
        Get storage backend configuration.

        Returns a dictionary with the following structure:
        - type: Backend type ("memory", "file", "redis", "s3" or "null")
        - memory: Memory backend options
            - prefix: Key prefix
        - file: Filesystem backend options
            - cache-dir: Directory holding cache files
            - extension: Cache file extension (default "kcf")
            - file-locking: Use advisory locks (default true)
        - redis: Redis backend options
            - host, port, db, password, prefix, timeout
        - s3: S3 backend options
            - endpoint, region, key-id, key-secret, bucket, prefix

        Returns:
            Dict[str, Any]: Storage configuration, empty dict if the storage
                            section is not configured.

        Example return values:
            Filesystem backend:
            {
                "type": "file",
                "file": {"cache-dir": "./storage/cache"}
            }

            Null backend:
            {
                "type": "null"
            }
        """
        return self.get("storage", {})

    def getLoggingConfig(self) -> Dict[str, Any]:
        """Get logging-specific configuration."""
        return self.get("logging", {})
