"""
Module entrypoint for the mcpcfg CLI.

This file exists so that `python -m mcpcfg ...` works when the console-script
wrapper is not installed. It contains no business logic.
"""

from __future__ import annotations

from mcpcfg.cli import main


def _run() -> None:
    """
    Execute the mcpcfg command line interface and exit with its status.

    Raises
    ------
    SystemExit
        Always, carrying the CLI exit code.
    """
    raise SystemExit(main())


if __name__ == "__main__":
    _run()
