# File: tiergen/__main__.py
"""
tiergen - Module entry point.

Allows running the generator directly via::

    python -m tiergen --schema schema.yaml --output ./generated

This module simply delegates to the CLI entry point defined in ``tiergen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from tiergen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
