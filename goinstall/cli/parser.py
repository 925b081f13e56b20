"""
goinstall CLI argument parser.

This module implements the command-line interface for goinstall using argparse.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from goinstall import __version__
from goinstall.core.config import load_config
from goinstall.core.exceptions import GoInstallError, OperationCancelled
from goinstall.core.platform import PlatformInfo, detect_platform, is_supported_platform
from goinstall.toolchain.installer import InstallPipeline, ProgressInfo
from goinstall.toolchain.target import DownloadTarget
from goinstall.toolchain.versions import is_prerelease

logger = logging.getLogger(__name__)


class CLI:
    """goinstall command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="goinstall",
            description="goinstall - fetch, verify and install Go releases",
            epilog='Use "goinstall COMMAND --help" for command-specific help',
        )

        parser.add_argument(
            "--version", action="version", version=f"goinstall {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to YAML configuration file",
        )
        parser.add_argument(
            "--cache-dir",
            type=Path,
            metavar="DIR",
            help="Cache directory (default: ~/.goinstall)",
        )
        parser.add_argument(
            "--proxy", metavar="URL", help="Proxy used for all HTTP requests"
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        list_parser = subparsers.add_parser(
            "list",
            help="List published versions, newest first",
        )
        list_parser.add_argument(
            "--limit", type=int, metavar="N", help="Show at most N versions"
        )
        list_parser.add_argument(
            "--stable", action="store_true", help="Hide betas and release candidates"
        )

        install_parser = subparsers.add_parser(
            "install",
            help="Download, verify and extract a release",
        )
        install_parser.add_argument(
            "version", help="Version to install (e.g. 1.21.0) or 'latest'"
        )
        install_parser.add_argument(
            "destination", type=Path, help="Directory to install into (replaced)"
        )
        install_parser.add_argument(
            "--os", dest="target_os", metavar="OS", help="Target OS (default: host)"
        )
        install_parser.add_argument(
            "--arch",
            dest="target_arch",
            metavar="ARCH",
            help="Target architecture (default: host)",
        )

        return parser

    def parse_args(self, args: Optional[List[str]] = None):
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)
        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        command_map = {
            "list": self._run_list,
            "install": self._run_install,
        }

        try:
            pipeline = self._create_pipeline(parsed_args)
            return command_map[parsed_args.command](pipeline, parsed_args)
        except (KeyboardInterrupt, OperationCancelled):
            logger.info("Operation cancelled by user")
            return 130
        except GoInstallError as e:
            logger.error(f"Error: {e}")
            return 1

    def _configure_logging(self, args):
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(level=level, format=format_str, force=True)

    def _create_pipeline(self, args) -> InstallPipeline:
        config = load_config(args.config, required=args.config is not None)
        config = config.with_overrides(cache_dir=args.cache_dir, proxy_url=args.proxy)
        return InstallPipeline(config)

    def _run_list(self, pipeline: InstallPipeline, args) -> int:
        versions = pipeline.list_versions()
        if args.stable:
            versions = [v for v in versions if not is_prerelease(v)]
        if args.limit is not None:
            versions = versions[: args.limit]

        for version in versions:
            print(version)
        return 0

    def _run_install(self, pipeline: InstallPipeline, args) -> int:
        version = args.version
        if version == "latest":
            version = pipeline.catalog.latest()
            if version is None:
                logger.error("No stable release found")
                return 1

        host = detect_platform() if not (args.target_os and args.target_arch) else None
        platform = PlatformInfo(
            os=args.target_os or host.os, arch=args.target_arch or host.arch
        )
        if not is_supported_platform(platform):
            logger.warning(
                f"No releases are known for {platform}; the download may not exist"
            )
        target = DownloadTarget.for_platform(version, platform)

        result = pipeline.install(
            target,
            args.destination,
            progress_callback=None if args.quiet else _print_progress,
        )
        if not args.quiet:
            sys.stderr.write("\n")
        logger.info(
            f"Installed {result.target.name} into {result.destination} "
            f"({result.extraction.files} files)"
        )
        return 0


def _print_progress(info: ProgressInfo) -> None:
    if info.phase == "downloading":
        sys.stderr.write(f"\r{info.transfer}")
        sys.stderr.flush()


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
