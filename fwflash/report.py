"""Run reporting: final status line, JSON payload and exit code."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional, Sequence

from fwflash.errors import BackendFailed, BackendUnavailable, FlashError, NoBackendSucceeded
from fwflash.image import ResolvedImage
from fwflash.selector import BackendAttempt, Selection

logger = logging.getLogger(__name__)

EXIT_OK = 0


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime())


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def attempts_of(error: FlashError) -> list[BackendAttempt]:
    """Backend attempts carried by a selector error, if any."""
    if isinstance(error, NoBackendSucceeded):
        return error.attempts
    if isinstance(error, (BackendUnavailable, BackendFailed)) and error.attempt is not None:
        return [error.attempt]
    return []


def status_line(selection: Optional[Selection], *, dry_run: bool, error: Optional[FlashError] = None) -> str:
    """One human-readable line naming the winner or the cause of failure.

    Raises:
        ValueError: If neither a selection nor an error is given.
    """
    if error is not None:
        return f"{type(error).__name__}: {error}"
    if selection is None:
        raise ValueError("status_line needs a selection or an error")
    if dry_run:
        return f"Dry run complete: would flash using {selection.backend.label}"
    return f"Flashed using {selection.backend.label}"


def build_payload(
    *,
    image: Optional[ResolvedImage],
    selection: Optional[Selection],
    attempts: Sequence[BackendAttempt],
    commands: Sequence[Sequence[str]],
    dry_run: bool,
    started: float,
    error: Optional[FlashError] = None,
) -> dict[str, Any]:
    converted = selection is not None and selection.winner.converted
    return {
        "schema_version": 1,
        "timestamp": _now_iso(),
        "success": error is None,
        "backend": selection.backend.name if selection is not None else None,
        "image": image.path if image is not None else None,
        "format": image.format.value if image is not None else None,
        "converted_from": "elf" if converted else None,
        "attempts": [a.to_dict() for a in attempts],
        "commands": [list(c) for c in commands],
        "dry_run": dry_run,
        "duration_ms": int((time.time() - started) * 1000),
        "error": status_line(None, dry_run=dry_run, error=error) if error is not None else None,
    }


def report(
    *,
    image: Optional[ResolvedImage],
    selection: Optional[Selection],
    commands: Sequence[Sequence[str]],
    dry_run: bool,
    started: float,
    json_mode: bool,
    error: Optional[FlashError] = None,
) -> int:
    """Log the final status line, optionally print JSON, and return the exit code."""
    attempts = selection.attempts if selection is not None else (attempts_of(error) if error else [])
    line = status_line(selection, dry_run=dry_run, error=error)
    if error is None:
        logger.info(line)
    else:
        logger.error(line)

    if json_mode:
        payload = build_payload(
            image=image,
            selection=selection,
            attempts=attempts,
            commands=commands,
            dry_run=dry_run,
            started=started,
            error=error,
        )
        _print_json(payload)

    return EXIT_OK if error is None else error.exit_code
