"""
Tests for the install pipeline.

Runs the full download -> verify -> extract sequence against mocked
endpoints and real archives built in the test.
"""

import hashlib
from unittest.mock import patch

import pytest
import responses

from goinstall.core.exceptions import ChecksumMismatchError, HTTPStatusError
from goinstall.core.platform import PlatformInfo
from goinstall.toolchain.installer import InstallPipeline
from goinstall.toolchain.target import DownloadTarget


def _serve(config, target, archive_path, digest=None):
    data = archive_path.read_bytes()
    url = target.url(config.download_url_prefix)
    responses.add(
        responses.GET, url, body=data, headers={"Content-Length": str(len(data))}
    )
    responses.add(
        responses.GET,
        f"{url}.sha256",
        body=digest or hashlib.sha256(data).hexdigest(),
    )
    return data


def _tree(root):
    return {
        p.relative_to(root).as_posix(): (None if p.is_dir() else p.read_bytes())
        for p in sorted(root.rglob("*"))
    }


class TestInstallPipeline:
    """Test InstallPipeline.install."""

    @responses.activate
    def test_install_tar_gz(self, installer_config, tar_gz_factory, go_tree, tmp_path):
        target = DownloadTarget("1.21.0", "linux", "amd64")
        data = _serve(installer_config, target, tar_gz_factory(go_tree))
        dest = tmp_path / "goroot"

        result = InstallPipeline(installer_config).install(target, dest)

        assert (dest / "bin" / "tool").exists()
        assert (dest / "README").read_bytes() == b"Go release\n"
        assert result.archive.sha256 == hashlib.sha256(data).hexdigest()
        assert result.extraction.files == 3
        assert result.destination == dest

    @responses.activate
    def test_install_zip_on_any_host(self, installer_config, zip_factory, go_tree, tmp_path):
        """Test a Windows target is unpacked as zip regardless of the host."""
        target = DownloadTarget("1.21.0", "windows", "amd64")
        _serve(installer_config, target, zip_factory(go_tree))
        dest = tmp_path / "goroot"

        InstallPipeline(installer_config).install(target, dest)

        assert (dest / "src" / "main.go").read_bytes() == b"package main\n"

    @responses.activate
    def test_checksum_mismatch_skips_extraction(
        self, installer_config, tar_gz_factory, go_tree, tmp_path
    ):
        """Test an unverified archive is never extracted."""
        target = DownloadTarget("1.21.0", "linux", "amd64")
        _serve(installer_config, target, tar_gz_factory(go_tree), digest="0" * 64)
        dest = tmp_path / "goroot"
        dest.mkdir()
        (dest / "previous").write_text("kept")

        with pytest.raises(ChecksumMismatchError):
            InstallPipeline(installer_config).install(target, dest)

        assert (dest / "previous").read_text() == "kept"
        assert (installer_config.downloads_dir / target.name).exists()

    @responses.activate
    def test_download_failure_propagates(self, installer_config, tmp_path):
        target = DownloadTarget("1.21.0", "linux", "amd64")
        responses.add(
            responses.GET, target.url(installer_config.download_url_prefix), status=500
        )

        with pytest.raises(HTTPStatusError):
            InstallPipeline(installer_config).install(target, tmp_path / "goroot")

        assert not (tmp_path / "goroot").exists()

    @responses.activate
    def test_reinstall_is_idempotent(
        self, installer_config, tar_gz_factory, go_tree, tmp_path
    ):
        """Test installing over an existing install equals a fresh install."""
        target = DownloadTarget("1.21.0", "linux", "amd64")
        archive = tar_gz_factory(go_tree)
        _serve(installer_config, target, archive)
        _serve(installer_config, target, archive)
        _serve(installer_config, target, archive)
        pipeline = InstallPipeline(installer_config)

        pipeline.install(target, tmp_path / "fresh")
        pipeline.install(target, tmp_path / "again")
        (tmp_path / "again" / "stray").write_text("x")
        pipeline.install(target, tmp_path / "again")

        assert _tree(tmp_path / "again") == _tree(tmp_path / "fresh")

    @responses.activate
    def test_progress_phases(self, installer_config, tar_gz_factory, go_tree, tmp_path):
        target = DownloadTarget("1.21.0", "linux", "amd64")
        _serve(installer_config, target, tar_gz_factory(go_tree))
        phases = []

        InstallPipeline(installer_config).install(
            target, tmp_path / "goroot", progress_callback=lambda p: phases.append(p.phase)
        )

        assert phases[0] == "downloading"
        assert phases[-1] == "extracting"

    def test_shares_one_session(self, installer_config):
        pipeline = InstallPipeline(installer_config)

        assert pipeline.catalog.session is pipeline.session
        assert pipeline.fetcher.session is pipeline.session

    @responses.activate
    def test_install_version_uses_host_platform(
        self, installer_config, tar_gz_factory, go_tree, tmp_path
    ):
        host = PlatformInfo("linux", "arm64")
        target = DownloadTarget.for_platform("1.22.1", host)
        _serve(installer_config, target, tar_gz_factory(go_tree))

        with patch(
            "goinstall.toolchain.target.detect_platform", return_value=host
        ):
            result = InstallPipeline(installer_config).install_version(
                "1.22.1", tmp_path / "goroot"
            )

        assert result.target.name == "go1.22.1.linux-arm64.tar.gz"
