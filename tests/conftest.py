"""
Pytest configuration and shared fixtures for goinstall tests.
"""

import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, Union

import pytest

from goinstall.core.config import InstallerConfig

DOWNLOAD_PREFIX = "https://dl.example.com/go"
SOURCE_URL = "https://source.example.com/go/+refs?format=TEXT"

# name -> file content, or None for a directory; optional (content, mode)
ArchiveSpec = Dict[str, Union[None, bytes, tuple]]


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def installer_config(tmp_path) -> InstallerConfig:
    """Configuration pointing at fake endpoints and a temporary cache."""
    return InstallerConfig(
        download_url_prefix=DOWNLOAD_PREFIX,
        source_url=SOURCE_URL,
        cache_dir=tmp_path / "cache",
    )


def _split_spec(value) -> tuple:
    if isinstance(value, tuple):
        return value
    if value is None:
        return None, 0o755
    return value, 0o644


def build_tar_gz(path: Path, entries: ArchiveSpec) -> Path:
    """Write a .tar.gz with the given entries, in order."""
    with tarfile.open(path, "w:gz") as tar:
        for name, value in entries.items():
            content, mode = _split_spec(value)
            info = tarfile.TarInfo(name)
            info.mode = mode
            if content is None:
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            else:
                info.size = len(content)
                tar.addfile(info, io.BytesIO(content))
    return path


def build_zip(path: Path, entries: ArchiveSpec) -> Path:
    """Write a .zip with the given entries, in order, carrying Unix modes."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, value in entries.items():
            content, mode = _split_spec(value)
            if content is None:
                info = zipfile.ZipInfo(name if name.endswith("/") else name + "/")
                info.external_attr = ((0o040000 | mode) << 16) | 0x10
                zf.writestr(info, b"")
            else:
                info = zipfile.ZipInfo(name)
                info.external_attr = (0o100000 | mode) << 16
                info.compress_type = zipfile.ZIP_DEFLATED
                zf.writestr(info, content)
    return path


@pytest.fixture
def tar_gz_factory(tmp_path):
    """Return a builder: tar_gz_factory(entries, name=...) -> Path."""

    def factory(entries: ArchiveSpec, name: str = "archive.tar.gz") -> Path:
        return build_tar_gz(tmp_path / name, entries)

    return factory


@pytest.fixture
def zip_factory(tmp_path):
    """Return a builder: zip_factory(entries, name=...) -> Path."""

    def factory(entries: ArchiveSpec, name: str = "archive.zip") -> Path:
        return build_zip(tmp_path / name, entries)

    return factory


@pytest.fixture
def go_tree() -> ArchiveSpec:
    """Minimal release layout nested under the common 'go/' root."""
    return {
        "go/": None,
        "go/bin/": None,
        "go/bin/tool": (b"#!/bin/sh\necho tool\n", 0o755),
        "go/README": b"Go release\n",
        "go/src/": None,
        "go/src/main.go": b"package main\n",
    }
