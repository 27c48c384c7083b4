#!/usr/bin/env python3
"""
Settings loader for Quire static site generator.
Supports configuration from config.toml, config.yml, config.yaml or config.json
at the root of the site directory.
"""

import copy
import json
import os
import tomllib
from typing import Any, Dict, Optional

import yaml

from .config import SiteConfig
from .errors import ConfigurationError


class QuireSettings:
    """Load and manage Quire configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'site': {
            'title': None,
            'description': None,
            'url': None,
            'author': None,
            'language': 'en-us',
        },
        'build': {
            'minify': True,
            'reading_speed': 200,
            'syntax_highlighting': {
                'enabled': True,
                'theme': 'one-dark',
            },
        },
        'feeds': [],
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['config.toml', 'config.yml', 'config.yaml', 'config.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Site directory to look for config files in. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if not isinstance(loaded_settings, dict):
                raise ConfigurationError("configuration must be a mapping", config_file)
            self.settings = _deep_merge(self.settings, loaded_settings)

        return copy.deepcopy(self.settings)

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.isfile(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            if file_ext == '.toml':
                with open(config_path, 'rb') as f:
                    return tomllib.load(f)
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ConfigurationError(f"Unsupported config file format: {file_ext}", config_path)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in configuration file: {e}", config_path) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}", config_path) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {e}", config_path) from e
        except PermissionError as e:
            raise ConfigurationError("Permission denied reading configuration file", config_path) from e
        except (IOError, OSError) as e:
            raise ConfigurationError(f"Error reading configuration file: {e}", config_path) from e

    def create_sample_config(self, site_title: str = 'My Quire Site') -> str:
        """
        Create a sample config.toml in the config directory.

        Returns:
            Path to created sample config file
        """
        config_path = os.path.join(self.config_dir, 'config.toml')
        title = json.dumps(site_title)
        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write("# Quire configuration file\n\n")
                f.write("[site]\n")
                f.write(f"title = {title}\n")
                f.write('description = "Built with Quire"\n')
                f.write('url = "https://example.com"\n')
                f.write('author = "Site Author"\n')
                f.write('language = "en-us"\n')
                f.write('title_template = "{{ title }} | {{ site.title }}"\n\n')
                f.write("[build]\n")
                f.write("minify = true\n")
                f.write("reading_speed = 200\n\n")
                f.write("[build.syntax_highlighting]\n")
                f.write("enabled = true\n")
                f.write('theme = "one-dark"\n\n')
                f.write("[[feeds]]\n")
                f.write('name = "blog"\n')
                f.write('source = "/blog"\n')
                f.write('output_rss = "blog.xml"\n')
                f.write('output_atom = "blog.atom"\n')
                f.write("limit = 20\n")
        except PermissionError as e:
            raise ConfigurationError("Permission denied creating configuration file", config_path) from e
        except (IOError, OSError) as e:
            raise ConfigurationError(f"Error writing configuration file: {e}", config_path) from e

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(self.settings)
        merged['site'] = dict(merged.get('site') or {})
        merged['build'] = dict(merged.get('build') or {})

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is None:
                continue
            if key == 'site_url':
                merged['site']['url'] = value
            elif key == 'minify':
                merged['build']['minify'] = value
            elif key == 'workers':
                merged['build']['workers'] = value

        return merged

    def site_config(self, args_dict: Optional[Dict[str, Any]] = None) -> SiteConfig:
        """Load, merge and validate settings in one step."""
        self.load_settings()
        try:
            return SiteConfig.from_dict(self.merge_with_args(args_dict or {}))
        except ConfigurationError as e:
            if self.config_file_path and not e.path:
                raise ConfigurationError(e.message, self.config_file_path) from e
            raise


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
