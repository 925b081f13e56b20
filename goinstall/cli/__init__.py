"""
goinstall CLI package.

Provides the command-line interface for listing and installing releases.
"""

from .parser import main

__all__ = ["main"]
