"""
Configuration module for GitLab Mirror.

This module provides the immutable run configuration handed to the traversal
engine, plus the optional JSON settings file the command line falls back to.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, FrozenSet, Iterable
import json

from .exceptions import ConfigurationError


# Default configuration values
DEFAULT_CONFIG = {
    "gitlab_host": "https://gitlab.com",
    "dest_dir": "./repos",
    "ignore_group_ids": [],
    "ignore_project_ids": [],
    "page_size": 100,      # GitLab caps per_page at 100
    "ssh_user": "git",
    "deduplicate": False,
}


@dataclass(frozen=True)
class MirrorConfig:
    """Settings that stay fixed for the duration of one mirror run."""

    destination: Path
    """Mirror root; every repository lands below it"""

    excluded_group_ids: FrozenSet[int] = field(default_factory=frozenset)
    """Groups that are neither fetched nor traversed"""

    excluded_project_ids: FrozenSet[int] = field(default_factory=frozenset)
    """Projects that are neither fetched nor synchronised"""

    page_size: int = DEFAULT_CONFIG["page_size"]
    """Items requested per API page when listing projects and subgroups"""

    deduplicate: bool = False
    """Visit each group and project at most once per run"""

    def __post_init__(self):
        object.__setattr__(self, 'destination', Path(self.destination).expanduser().resolve())
        object.__setattr__(self, 'excluded_group_ids', frozenset(int(i) for i in self.excluded_group_ids))
        object.__setattr__(self, 'excluded_project_ids', frozenset(int(i) for i in self.excluded_project_ids))
        if self.page_size <= 0:
            raise ConfigurationError(f"page_size must be positive, got {self.page_size}")

    def is_group_excluded(self, group_id: int) -> bool:
        return group_id in self.excluded_group_ids

    def is_project_excluded(self, project_id: int) -> bool:
        return project_id in self.excluded_project_ids

    @classmethod
    def build(cls, destination: str, excluded_group_ids: Iterable[int] = (),
              excluded_project_ids: Iterable[int] = (), **kwargs) -> 'MirrorConfig':
        """Create a config from plain iterables (CLI lists, settings file values)."""
        return cls(
            destination=Path(destination),
            excluded_group_ids=frozenset(excluded_group_ids),
            excluded_project_ids=frozenset(excluded_project_ids),
            **kwargs,
        )


class Config:
    """Configuration file manager for GitLab Mirror."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration file (optional)

        Raises:
            ConfigurationError: If the file exists but is not valid JSON
        """
        self.config_file = config_file or self._get_default_config_path()
        self.config = self._load_config()

    def _get_default_config_path(self) -> str:
        """Get default configuration file path."""
        return os.path.join(os.path.expanduser("~"), ".gitlab_mirror_config.json")

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file."""
        if not os.path.exists(self.config_file):
            return {}
        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigurationError(f"Cannot read settings file {self.config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {self.config_file} must contain a JSON object")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Lookup order is the settings file, then DEFAULT_CONFIG, then `default`.
        """
        if key in self.config:
            return self.config[key]
        return DEFAULT_CONFIG.get(key, default)

    def get_bool(self, key: str) -> bool:
        """
        Get a flag from the settings file.

        Raises:
            ConfigurationError: If the value is not a JSON boolean
        """
        value = self.get(key, False)
        if not isinstance(value, bool):
            raise ConfigurationError(f"Setting {key!r} in {self.config_file} must be true or false, got {value!r}")
        return value

    def validate_gitlab_url(self, url: str) -> bool:
        """
        Validate GitLab URL format.

        Args:
            url: GitLab URL to validate

        Returns:
            True if valid, False otherwise
        """
        if not url:
            return False

        url = url.lower()
        return url.startswith(('http://', 'https://'))

    def validate_access_token(self, token: str) -> bool:
        """
        Validate GitLab access token format.

        Any non-blank string is accepted; the API decides whether it works.
        """
        if not token:
            return False
        return len(token.strip()) > 0

    def validate_destination_path(self, path: str) -> bool:
        """
        Validate destination path.

        The directory itself may be missing, its parent must exist.
        """
        if not path:
            return False

        try:
            path_obj = Path(path).expanduser().resolve()
            parent = path_obj.parent
            return parent.exists() or parent == path_obj
        except (OSError, ValueError):
            return False
