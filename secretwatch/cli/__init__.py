"""secretwatch command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``secretwatch`` script).
"""

from secretwatch.cli.main import cli

__all__ = ["cli"]
