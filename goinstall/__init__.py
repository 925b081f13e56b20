"""
goinstall - fetch, verify and install Go toolchain releases.

Lists published releases, downloads a release archive while checking it
against the server's SHA-256 sidecar, and unpacks it into a directory.
"""

__version__ = "0.1.0"
