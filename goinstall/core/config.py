"""YAML configuration for goinstall.

A single ``InstallerConfig`` value is built at start-up and handed to every
stage. Network settings such as the proxy live on the session it creates,
never in the process environment.

Example ``goinstall.yaml``::

    download_url_prefix: https://dl.google.com/go
    proxy_url: http://proxy.internal:3128
    cache_dir: ~/.cache/goinstall
    timeout: 60
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import requests
import yaml

from goinstall.core.directory import (
    get_downloads_dir,
    get_global_cache_dir,
    get_version_file,
)
from goinstall.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_URL_PREFIX = "https://dl.google.com/go"
DEFAULT_SOURCE_URL = "https://go.googlesource.com/go/+refs?format=TEXT"
DEFAULT_USER_AGENT = "golang.org-getgo/{target}"


@dataclass(frozen=True)
class InstallerConfig:
    """Settings shared by the version catalog, fetcher and extractor."""

    download_url_prefix: str = DEFAULT_DOWNLOAD_URL_PREFIX
    source_url: str = DEFAULT_SOURCE_URL
    proxy_url: Optional[str] = None
    cache_dir: Path = field(default_factory=get_global_cache_dir)
    timeout: int = 30
    cache_ttl_hours: float = 72.0
    tag_prefix: str = "refs/tags/go"
    archive_root: str = "go"
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def downloads_dir(self) -> Path:
        return get_downloads_dir(self.cache_dir)

    @property
    def version_file(self) -> Path:
        return get_version_file(self.cache_dir)

    def with_overrides(self, **overrides) -> "InstallerConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "cache_dir" in changes:
            changes["cache_dir"] = Path(changes["cache_dir"]).expanduser()
        return replace(self, **changes)

    def create_session(self) -> requests.Session:
        """
        Build the HTTP session every stage of one install shares.

        Returns:
            requests.Session with proxies applied when ``proxy_url`` is set
        """
        session = requests.Session()
        if self.proxy_url:
            session.proxies.update({"https": self.proxy_url, "http": self.proxy_url})
            logger.debug(f"Using proxy {self.proxy_url}")
        return session


_FIELD_TYPES = {
    "download_url_prefix": str,
    "source_url": str,
    "proxy_url": str,
    "cache_dir": str,
    "timeout": int,
    "cache_ttl_hours": (int, float),
    "tag_prefix": str,
    "archive_root": str,
    "user_agent": str,
}


def load_config(config_path: Optional[Path] = None, required: bool = False) -> InstallerConfig:
    """
    Load installer configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. None means defaults only.
        required: Raise if the file does not exist

    Returns:
        Parsed configuration, defaults filled in for absent keys

    Raises:
        ConfigError: If the file is missing (when required), not valid YAML,
            not a mapping, or carries unknown keys or wrongly typed values
    """
    if config_path is None:
        return InstallerConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_path}")
        logger.debug(f"No configuration at {config_path}, using defaults")
        return InstallerConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration {config_path}: {e}") from e

    if data is None:
        return InstallerConfig()

    return parse_config_data(data)


def parse_config_data(data) -> InstallerConfig:
    """Validate a decoded YAML document and build the configuration."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    known = {f.name for f in fields(InstallerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        if value is None:
            continue
        expected = _FIELD_TYPES[key]
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(f"Invalid type for '{key}': {type(value).__name__}")
        values[key] = value

    if "cache_dir" in values:
        values["cache_dir"] = Path(values["cache_dir"]).expanduser()
    if values.get("timeout", 1) <= 0:
        raise ConfigError("'timeout' must be positive")
    if values.get("cache_ttl_hours", 1) < 0:
        raise ConfigError("'cache_ttl_hours' must not be negative")

    return InstallerConfig(**values)
