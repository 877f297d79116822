"""changeaudit command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``changeaudit`` script).
"""

from changeaudit.cli.main import cli

__all__ = ["cli"]
