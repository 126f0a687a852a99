"""Execution sandbox for external commands.

Every build, conversion and flash step goes through :class:`CommandRunner`.
Commands are passed to :func:`subprocess.run` as an argument vector, never
through a shell.  In dry-run mode the command is recorded and echoed but
not executed, and reported as successful so the caller can trace the full
path it would take.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: tuple[str, ...]
    returncode: int
    dry_run: bool = False
    missing: bool = False  # executable could not be started
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.missing and not self.timed_out

    def describe(self) -> str:
        tool = self.argv[0] if self.argv else "?"
        if self.missing:
            return f"tool not found: {tool}"
        if self.timed_out:
            return f"{tool} timed out"
        return f"{tool} exited with status {self.returncode}"


class CommandRunner:
    """Runs (or, in dry-run mode, traces) external commands.

    Args:
        dry_run: Echo commands instead of executing them.
        timeout: Per-command timeout in seconds; ``None`` waits forever.
        echo: Stream dry-run commands are echoed to (default stdout).
    """

    DRY_RUN_PREFIX = "DRY RUN: "

    def __init__(
        self,
        dry_run: bool = False,
        timeout: Optional[float] = None,
        echo: Optional[TextIO] = None,
    ):
        self.dry_run = dry_run
        self.timeout = timeout
        self._echo = echo
        self.trace: list[tuple[str, ...]] = []

    def run(self, argv: Sequence[str], cwd: Optional[str] = None) -> CommandResult:
        cmd = tuple(str(a) for a in argv)
        self.trace.append(cmd)
        logger.info("exec argv=%r", list(cmd))
        if cwd:
            logger.debug("exec cwd=%s", cwd)

        if self.dry_run:
            print(self.DRY_RUN_PREFIX + shlex.join(cmd), file=self._echo or sys.stdout, flush=True)
            return CommandResult(argv=cmd, returncode=0, dry_run=True)

        try:
            # stdout/stderr are inherited so the tool's own output reaches the operator
            completed = subprocess.run(list(cmd), cwd=cwd, timeout=self.timeout)
        except FileNotFoundError:
            logger.warning("Tool not found: %s", cmd[0])
            return CommandResult(argv=cmd, returncode=127, missing=True)
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %ss", cmd[0], self.timeout)
            return CommandResult(argv=cmd, returncode=-1, timed_out=True)

        if completed.returncode != 0:
            logger.warning("%s exited with status %d", cmd[0], completed.returncode)
        return CommandResult(argv=cmd, returncode=completed.returncode)
