"""
devbox — macOS developer-machine bootstrap.

Installs Homebrew and a fixed package set, then patches the shell
profile with idempotent environment blocks.
"""

__version__ = "0.1.0"
