"""
Release version discovery.

The release index is a plain-text refs listing, one ``<hash> <ref>`` pair
per line::

    3b5d9f0c...  refs/tags/go1.21.0
    9e1c2a44...  refs/tags/go1.22rc1
    77aa01bd...  refs/heads/master

Tags are cut down to their version part (``1.21.0``, ``1.22rc1``),
normalized into a comparable form (``1.22.0-rc1``) and returned newest
first. The normalized form is only a sort key; callers always get the
tags exactly as published.
"""

import logging
import re
import time
from pathlib import Path
from typing import Iterable, Optional

import requests
from packaging.version import InvalidVersion, Version

from goinstall.core.config import InstallerConfig
from goinstall.core.download import fetch_bytes
from goinstall.core.exceptions import CacheReadError, CacheWriteError
from goinstall.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

_TAG_PATTERN = re.compile(
    r"^(?P<release>\d+(?:\.\d+){0,2})(?P<pre>(?:beta|rc)\d*)?$"
)

# Sorts below every parseable version
_UNPARSEABLE = (0, Version("0"))


def normalize_version(tag: str) -> str:
    """
    Rewrite a version tag into a three-component, semver-shaped string.

    Missing numeric components are filled with ``.0`` and a ``beta``/``rc``
    suffix becomes a hyphenated pre-release part. Tags that do not look
    like a release are returned unchanged.

    Example:
        >>> normalize_version("1")
        '1.0.0'
        >>> normalize_version("1.4beta1")
        '1.4.0-beta1'
        >>> normalize_version("1.9.2rc2")
        '1.9.2-rc2'
    """
    match = _TAG_PATTERN.match(tag)
    if not match:
        return tag

    sections = match.group("release").split(".")
    sections += ["0"] * (3 - len(sections))
    normalized = ".".join(sections)

    if match.group("pre"):
        normalized += f"-{match.group('pre')}"
    return normalized


def _sort_key(tag: str) -> tuple:
    try:
        return (1, Version(normalize_version(tag)))
    except InvalidVersion:
        logger.debug(f"Unrecognised version tag, sorting last: {tag}")
        return _UNPARSEABLE


def sort_versions(tags: Iterable[str]) -> list[str]:
    """
    Sort version tags newest first.

    The sort is stable, so tags comparing equal keep their input order.
    Unrecognised tags go last.

    Example:
        >>> sort_versions(["1.2.3", "1.10.0", "1.2.10"])
        ['1.10.0', '1.2.10', '1.2.3']
    """
    return sorted(tags, key=_sort_key, reverse=True)


def is_prerelease(tag: str) -> bool:
    """True for beta and release-candidate tags."""
    key = _sort_key(tag)
    return key is _UNPARSEABLE or key[1].is_prerelease


def parse_refs(text: str, tag_prefix: str = "refs/tags/go") -> list[str]:
    """
    Extract version tags from a refs listing.

    Lines without exactly two whitespace-separated fields, and refs not
    carrying tag_prefix, are skipped.

    Args:
        text: Listing document
        tag_prefix: Marker identifying release tags

    Returns:
        Version tags in listing order
    """
    tags = []
    for line in text.splitlines():
        fields = line.split()
        if len(fields) != 2:
            continue

        ref = fields[1]
        if tag_prefix not in ref:
            continue

        tag = ref.replace(tag_prefix, "")
        if tag:
            tags.append(tag)
    return tags


class VersionCatalog:
    """
    Lists published releases, backed by a cached copy of the refs listing.

    The cache lives at ``<cache_dir>/VERSION`` and is refreshed when it is
    missing or at least ``cache_ttl_hours`` old.

    Example:
        >>> catalog = VersionCatalog(InstallerConfig())
        >>> catalog.list_versions()[:3]
        ['1.22rc1', '1.21.0', '1.21rc4']
    """

    def __init__(
        self, config: InstallerConfig, session: Optional[requests.Session] = None
    ):
        self.config = config
        self.session = session or config.create_session()

    @property
    def cache_path(self) -> Path:
        return self.config.version_file

    def list_versions(self) -> list[str]:
        """
        Return every published version tag, newest first.

        Raises:
            NetworkError: Listing could not be fetched (cache untouched)
            CacheReadError: Fresh cache exists but cannot be read
            CacheWriteError: Fetched listing cannot be stored
        """
        listing = self._load_listing()
        tags = parse_refs(listing.decode("utf-8", errors="replace"), self.config.tag_prefix)
        logger.debug(f"Found {len(tags)} version tags")
        return sort_versions(tags)

    def latest(self, include_prereleases: bool = False) -> Optional[str]:
        """Newest tag, skipping betas and release candidates unless asked."""
        for tag in self.list_versions():
            if include_prereleases or not is_prerelease(tag):
                return tag
        return None

    def is_cache_fresh(self, now: Optional[float] = None) -> bool:
        """True if the cached listing exists and is younger than the TTL."""
        try:
            mtime = self.cache_path.stat().st_mtime
        except OSError:
            return False

        now = time.time() if now is None else now
        age_hours = (now - mtime) / 3600
        return age_hours < self.config.cache_ttl_hours

    def refresh(self) -> bytes:
        """
        Fetch the listing and overwrite the cache with it.

        The cache file is replaced atomically, and only after a successful
        fetch.
        """
        url = self.config.source_url
        logger.info(f"Fetching version list from {url}")
        content = fetch_bytes(self.session, url, self.config.timeout)

        try:
            atomic_write(self.cache_path, content)
        except OSError as e:
            raise CacheWriteError(
                f"Failed to write version cache {self.cache_path}: {e}", self.cache_path
            ) from e
        return content

    def _load_listing(self) -> bytes:
        if not self.is_cache_fresh():
            return self.refresh()

        logger.debug(f"Using cached version list {self.cache_path}")
        try:
            return self.cache_path.read_bytes()
        except OSError as e:
            raise CacheReadError(
                f"Failed to read version cache {self.cache_path}: {e}", self.cache_path
            ) from e
