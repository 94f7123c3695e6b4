#!/usr/bin/env python3
"""
Settings loader for Ghostwright.
Supports configuration from ghostwright.yml, ghostwright.yaml, or ghostwright.json files.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional


class GhostwrightSettings:
    """Load and manage Ghostwright configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'source': 'file',
        'content_file': 'content.json',
        'graphql_url': None,
        'ghost_api_url': None,
        'ghost_content_api_key': None,
        'output': 'public',
        'templates': 'templates',
        'assets': 'static',
        'posts_per_page': 12,
        'site_title': None,
        'site_url': None,
        'robots': 'public',
        'production': True
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['ghostwright.yml', 'ghostwright.yaml', 'ghostwright.json']

    SAMPLE_YAML = """# Ghostwright Configuration File

# Site information
site_url: https://example.com
site_title: My Ghost Blog

# Content source: file, graphql or ghost
source: ghost
ghost_api_url: https://demo.ghost.io
ghost_content_api_key: 22444f78447824223cefc48062
# graphql_url: http://localhost:8000/___graphql
content_file: content.json

# Build settings
output: public
templates: templates
assets: static
posts_per_page: 12

# SEO settings
robots: public  # public or private
"""

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            loaded_settings = self._load_config_file(config_file)
            if not isinstance(loaded_settings, dict):
                raise ValueError(f"Configuration file {config_file} must contain a mapping")
            self.settings.update(loaded_settings)

        return self.settings.copy()

    def _find_config_file(self) -> Optional[str]:
        """Find the first available configuration file."""
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
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
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        filename = f'ghostwright.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    f.write(self.SAMPLE_YAML)
                elif file_format == 'json':
                    json.dump(yaml.safe_load(self.SAMPLE_YAML), f, indent=2)
                else:
                    raise ValueError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

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
        merged = self.settings.copy()

        for key, value in args_dict.items():
            if value is not None:
                merged[key] = value

        return merged
