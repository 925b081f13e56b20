"""
Entry point for running goinstall as a module.

Usage: python -m goinstall [command] [options]
"""

from goinstall.cli.parser import main

if __name__ == "__main__":
    main()
