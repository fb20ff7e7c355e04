#!/usr/bin/env python3
"""
Configuration Management Module for MintGate CLI

Handles hierarchical configuration loading, environment variable mapping,
validation, and management of settings across different environments.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

import yaml


# Environment variable prefix
ENV_PREFIX = 'MINTGATE_'

# Default configuration values
DEFAULT_CONFIG = {
    # CLI behavior
    'cli': {
        'output_format': 'table',  # table, json, yaml
        'verbose': 0,
        'color_output': True,
    },

    # Collection state persistence
    'storage': {
        'state_file': '~/.mintgate/collection.json',
        'backup_count': 5,
        'lock_timeout': 30.0,
    },

    # Defaults for `collection init`
    'collection': {
        'name': 'MintGate Collection',
        'symbol': 'MINT',
        'base_uri': '',
        'mint_price': 0,
        'whitelist_price': 0,
        'total_supply_cap': 10000,
        'whitelist_supply_cap': 1000,
        'royalty_bps': 0,
        'allow_general_mint': False,
        'allow_whitelist_mint': False,
    },
}

# Configuration profiles
PROFILES = {
    'production': {
        'cli': {'verbose': 0, 'color_output': False},
        'storage': {'backup_count': 20},
    },
    'development': {
        'cli': {'verbose': 2},
        'storage': {'state_file': './.mintgate/collection.json', 'backup_count': 1},
        'collection': {'allow_general_mint': True, 'allow_whitelist_mint': True},
    },
}


def config_search_paths() -> List[Path]:
    """Configuration file locations in order of precedence (highest to lowest)."""
    return [
        Path.cwd() / '.mintgate.yml',             # Project-specific YAML
        Path.cwd() / '.mintgate.json',            # Project-specific JSON
        Path.home() / '.mintgate' / 'config.yml',   # User global YAML
        Path.home() / '.mintgate' / 'config.json',  # User global JSON
        Path('/etc/mintgate/config.yml'),         # System-wide YAML
    ]


def deep_merge(*dicts: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge multiple dictionaries; later ones win."""
    result = {}

    for dictionary in dicts:
        for key, value in dictionary.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)

    return result


def profile_defaults(profile: Optional[str] = None) -> Dict[str, Any]:
    """Default configuration with a profile applied on top."""
    if profile and profile not in PROFILES:
        raise ConfigurationError(f"Unknown profile: {profile}")
    return deep_merge(DEFAULT_CONFIG, PROFILES.get(profile, {}) if profile else {})


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be used."""
    pass


class ConfigurationManager:
    """Manages hierarchical configuration with environment variable support."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_file: Explicit configuration file path
            profile: Configuration profile to load (production, development)
        """
        self.logger = logging.getLogger('mintgate-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._config_cache = None
        self._config_sources = []

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from all sources in hierarchical order.

        Returns:
            Merged configuration dictionary
        """
        if self._config_cache is not None:
            return self._config_cache

        configs = []
        self._config_sources = []

        # 1. Start with default configuration
        configs.append(copy.deepcopy(DEFAULT_CONFIG))
        self._config_sources.append("defaults")

        # 2. Apply profile if specified
        if self.profile:
            if self.profile not in PROFILES:
                raise ConfigurationError(f"Unknown profile: {self.profile}")
            configs.append(copy.deepcopy(PROFILES[self.profile]))
            self._config_sources.append(f"profile:{self.profile}")
            self.logger.debug(f"Applied profile: {self.profile}")

        # 3. Load configuration files
        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise ConfigurationError(f"Config file not found: {path}")
            configs.append(self._load_config_file(path))
            self._config_sources.append(f"file:{path}")
        else:
            for config_path in config_search_paths():
                if config_path.exists():
                    configs.append(self._load_config_file(config_path))
                    self._config_sources.append(f"file:{config_path}")
                    self.logger.debug(f"Loaded config from {config_path}")
                    break  # Use first found config file

        # 4. Apply environment variables
        env_config = self._load_environment_variables()
        if env_config:
            configs.append(env_config)
            self._config_sources.append("environment")

        # Merge all configurations (later ones override earlier ones)
        self._config_cache = deep_merge(*configs)

        self._expand_paths(self._config_cache)

        return self._config_cache

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Load configuration from file."""
        try:
            with open(path, 'r') as f:
                if path.suffix in ['.yml', '.yaml']:
                    data = yaml.safe_load(f)
                elif path.suffix == '.json':
                    data = json.load(f)
                else:
                    raise ConfigurationError(f"Unknown config file format: {path}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        The first underscore after the prefix separates section from key:
        MINTGATE_STORAGE_STATE_FILE -> {'storage': {'state_file': value}}
        """
        env_config = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            section, _, option = key[len(ENV_PREFIX):].lower().partition('_')
            if not option:
                continue

            env_config.setdefault(section, {})[option] = self._parse_env_value(value)

        return env_config

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse environment variable value to appropriate type."""
        # Boolean values
        if value.lower() in ['true', 'yes']:
            return True
        elif value.lower() in ['false', 'no']:
            return False

        # Numeric values
        try:
            if '.' in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        # Default to string
        return value

    def _expand_paths(self, config: Dict[str, Any]):
        """Expand ~ and environment variables in path values."""
        for key, value in config.items():
            if isinstance(value, dict):
                self._expand_paths(value)
            elif isinstance(value, str):
                if '~' in value or '$' in value:
                    config[key] = os.path.expanduser(os.path.expandvars(value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        Args:
            key_path: Dot-separated path (e.g., 'storage.state_file')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self.load()

        for key in key_path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key_path: str, value: Any):
        """Set configuration value by dot-notation path (in memory only)."""
        config = self.load()

        keys = key_path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def save(self, path: Optional[str] = None, format: str = 'yaml') -> Path:
        """
        Save current configuration to file.

        Args:
            path: File path to save to (default: project config file)
            format: Output format ('yaml' or 'json')

        Returns:
            Path written
        """
        config = self.load()

        if not path:
            path = Path.cwd() / ('.mintgate.yml' if format == 'yaml' else '.mintgate.json')

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            if format == 'yaml':
                yaml.dump(config, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(config, f, indent=2)

        self.logger.info(f"Configuration saved to {path}")
        return path

    def validate(self) -> List[str]:
        """
        Validate current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        config = self.load()
        errors = []

        output_format = config.get('cli', {}).get('output_format')
        if output_format not in ['table', 'json', 'yaml']:
            errors.append(f"Invalid output format: {output_format}")

        if not config.get('storage', {}).get('state_file'):
            errors.append("storage.state_file is required")

        backup_count = config.get('storage', {}).get('backup_count')
        if not isinstance(backup_count, int) or backup_count < 0:
            errors.append("storage.backup_count must be a non-negative integer")

        lock_timeout = config.get('storage', {}).get('lock_timeout')
        if isinstance(lock_timeout, bool) or not isinstance(lock_timeout, (int, float)) or lock_timeout <= 0:
            errors.append("storage.lock_timeout must be a positive number")

        collection = config.get('collection', {})
        for key in ('mint_price', 'whitelist_price', 'total_supply_cap', 'whitelist_supply_cap', 'royalty_bps'):
            value = collection.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(f"collection.{key} must be a non-negative integer")

        if not errors and collection['whitelist_supply_cap'] > collection['total_supply_cap']:
            errors.append("collection.whitelist_supply_cap cannot exceed collection.total_supply_cap")

        return errors

    def get_sources(self) -> List[str]:
        """Get list of configuration sources that were loaded."""
        self.load()
        return self._config_sources

    def reset(self):
        """Reset configuration cache."""
        self._config_cache = None
        self._config_sources = []
