"""Entry point for `python -m secretwatch`.

Usage:
    python -m secretwatch run
    python -m secretwatch reconcile default/db-creds
"""

from __future__ import annotations

from secretwatch.cli import cli

cli()
