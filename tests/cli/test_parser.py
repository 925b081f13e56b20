"""
Tests for the goinstall command-line interface.

Commands run end to end against mocked endpoints; only the network is faked.
"""

import hashlib
from unittest.mock import patch

import pytest
import responses

from goinstall.cli.parser import CLI
from goinstall.core.platform import clear_platform_cache
from goinstall.toolchain.target import DownloadTarget

HASH = "3b5d9f0c1e2a4b6c8d0e1f2a3b4c5d6e7f8a9b0c"
LISTING = "".join(
    f"{HASH} refs/tags/go{tag}\n" for tag in ["1.20.5", "1.21.0", "1.22rc1", "1.21.1"]
)


@pytest.fixture
def config_args(tmp_path, installer_config):
    """Global options pointing the CLI at the fake endpoints."""
    config_file = tmp_path / "goinstall.yaml"
    config_file.write_text(
        f"download_url_prefix: {installer_config.download_url_prefix}\n"
        f"source_url: '{installer_config.source_url}'\n"
    )
    return ["--config", str(config_file), "--cache-dir", str(installer_config.cache_dir)]


def _serve_archive(installer_config, target, archive_path, digest=None):
    data = archive_path.read_bytes()
    url = target.url(installer_config.download_url_prefix)
    responses.add(
        responses.GET, url, body=data, headers={"Content-Length": str(len(data))}
    )
    responses.add(
        responses.GET, f"{url}.sha256", body=digest or hashlib.sha256(data).hexdigest()
    )


class TestGlobalOptions:
    """Test option parsing and configuration wiring."""

    def test_no_command_prints_help(self, capsys):
        assert CLI().run([]) == 1
        assert "usage: goinstall" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["--version"])

        assert exc_info.value.code == 0
        assert "goinstall" in capsys.readouterr().out

    def test_proxy_reaches_session(self, config_args):
        cli = CLI()
        args = cli.parse_args(config_args + ["--proxy", "http://proxy:3128", "list"])

        pipeline = cli._create_pipeline(args)

        assert pipeline.session.proxies["https"] == "http://proxy:3128"
        assert pipeline.config.proxy_url == "http://proxy:3128"

    def test_missing_explicit_config(self, tmp_path):
        assert CLI().run(["--config", str(tmp_path / "nope.yaml"), "list"]) == 1


class TestListCommand:
    """Test the list command."""

    @responses.activate
    def test_lists_newest_first(self, config_args, installer_config, capsys):
        responses.add(responses.GET, installer_config.source_url, body=LISTING)

        assert CLI().run(config_args + ["list"]) == 0

        lines = capsys.readouterr().out.split()
        assert lines == ["1.22rc1", "1.21.1", "1.21.0", "1.20.5"]

    @responses.activate
    def test_stable_and_limit(self, config_args, installer_config, capsys):
        responses.add(responses.GET, installer_config.source_url, body=LISTING)

        assert CLI().run(config_args + ["list", "--stable", "--limit", "2"]) == 0

        assert capsys.readouterr().out.split() == ["1.21.1", "1.21.0"]

    @responses.activate
    def test_network_failure_exit_code(self, config_args, installer_config):
        responses.add(responses.GET, installer_config.source_url, status=500)

        assert CLI().run(config_args + ["list"]) == 1


class TestInstallCommand:
    """Test the install command."""

    @responses.activate
    def test_install_explicit_platform(
        self, config_args, installer_config, tar_gz_factory, go_tree, tmp_path
    ):
        target = DownloadTarget("1.21.0", "linux", "amd64")
        _serve_archive(installer_config, target, tar_gz_factory(go_tree))
        dest = tmp_path / "goroot"

        code = CLI().run(
            config_args
            + ["install", "1.21.0", str(dest), "--os", "linux", "--arch", "amd64"]
        )

        assert code == 0
        assert (dest / "bin" / "tool").exists()

    @responses.activate
    def test_install_latest(
        self, config_args, installer_config, zip_factory, go_tree, tmp_path
    ):
        """Test 'latest' resolves to the newest stable release."""
        responses.add(responses.GET, installer_config.source_url, body=LISTING)
        target = DownloadTarget("1.21.1", "windows", "amd64")
        _serve_archive(installer_config, target, zip_factory(go_tree))
        dest = tmp_path / "goroot"

        code = CLI().run(
            config_args
            + ["-q", "install", "latest", str(dest), "--os", "windows", "--arch", "amd64"]
        )

        assert code == 0
        assert (dest / "README").read_bytes() == b"Go release\n"

    @responses.activate
    def test_checksum_mismatch_exit_code(
        self, config_args, installer_config, tar_gz_factory, go_tree, tmp_path
    ):
        target = DownloadTarget("1.21.0", "linux", "amd64")
        _serve_archive(installer_config, target, tar_gz_factory(go_tree), digest="0" * 64)
        dest = tmp_path / "goroot"

        code = CLI().run(
            config_args
            + ["install", "1.21.0", str(dest), "--os", "linux", "--arch", "amd64"]
        )

        assert code == 1
        assert not dest.exists()

    def test_interrupt_exit_code(self, config_args, tmp_path):
        with patch(
            "goinstall.toolchain.installer.InstallPipeline.install",
            side_effect=KeyboardInterrupt,
        ):
            code = CLI().run(
                config_args
                + ["install", "1.21.0", str(tmp_path / "g"), "--os", "linux", "--arch", "amd64"]
            )

        assert code == 130

    def test_unrecognised_host_exit_code(self, config_args, tmp_path, capsys):
        """Test an undetectable host OS is reported, not raised."""
        clear_platform_cache()
        try:
            with patch("platform.system", return_value="SunOS"):
                code = CLI().run(
                    config_args
                    + ["install", "1.21.0", str(tmp_path / "g"), "--arch", "amd64"]
                )
        finally:
            clear_platform_cache()

        assert code == 1
        assert "Unsupported operating system: sunos" in capsys.readouterr().err

    @responses.activate
    def test_unknown_target_warns(self, config_args, installer_config, tmp_path, capsys):
        target = DownloadTarget("1.21.0", "linux", "mips")
        responses.add(
            responses.GET, target.url(installer_config.download_url_prefix), status=404
        )

        code = CLI().run(
            config_args
            + ["install", "1.21.0", str(tmp_path / "g"), "--os", "linux", "--arch", "mips"]
        )

        assert code == 1
        assert "No releases are known for linux-mips" in capsys.readouterr().err
