"""Command dispatch and logging setup for the fwflash CLI."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from fwflash.cli.parser import _build_parser


class _FlashFormatter(logging.Formatter):
    """``[flash] message`` for info, ``[flash][ERROR] message`` above it."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"[flash][{record.levelname}] {message}"
        return f"[flash] {message}"


def _setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_FlashFormatter("%(message)s"))
    root = logging.getLogger("fwflash")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``fwflash`` CLI.

    Args:
        argv: Argument list to parse.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 on success, non-zero on error.
    """
    if argv is None:
        argv = sys.argv[1:]

    # Late import to allow tests to monkeypatch fwflash.cli.cmd_flash
    import fwflash.cli as cli

    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    return cli.cmd_flash(
        board=args.board,
        port=args.port,
        target=args.target,
        image=args.image,
        method=args.method,
        tool=args.tool,
        no_build=args.no_build,
        chip=args.chip,
        dry_run=args.dry_run,
        project_dir=args.project_dir,
        config=args.config,
        timeout=args.timeout,
        json_mode=args.json,
    )
