"""Flash firmware command: main orchestrator."""

from __future__ import annotations

import contextlib
import logging
import sys
import time
from typing import Optional

from fwflash.build import ensure_image
from fwflash.config import resolve_request
from fwflash.errors import FlashError
from fwflash.image import ResolvedImage
from fwflash.lock import HardwareLock
from fwflash.report import report
from fwflash.runner import CommandRunner
from fwflash.selector import Selection, select_and_flash

logger = logging.getLogger(__name__)


def cmd_flash(
    *,
    board: Optional[str] = None,
    port: Optional[str] = None,
    target: Optional[str] = None,
    image: Optional[str] = None,
    method: Optional[str] = None,
    tool: Optional[str] = None,
    no_build: bool = False,
    chip: Optional[str] = None,
    dry_run: bool = False,
    project_dir: Optional[str] = None,
    config: Optional[str] = None,
    timeout: Optional[float] = None,
    json_mode: bool = False,
) -> int:
    """Resolve, build if needed, flash, and report.

    Args:
        board: Board id (informational; selects the OpenOCD target config)
        port: Serial port, required by esptool
        target: Cargo target triple, inferred from build metadata if None
        image: Prebuilt firmware path; None triggers a build
        method: auto, probe, openocd, esptool or dfu (None means auto
            unless the project config names one)
        tool: Executable override for an explicit method
        no_build: Never build; image must be given
        chip: Chip name for probe-rs / esptool
        dry_run: Print commands instead of running them
        project_dir: Project root, defaults to the current directory
        config: YAML config path, defaults to <project_dir>/fwflash.yaml
        timeout: Per-command timeout in seconds
        json_mode: Emit a machine-parseable JSON result

    Returns:
        Exit code: 0 on success (or completed dry run), 2 for configuration
        errors, 1 for any other failure.
    """
    started = time.time()
    runner = CommandRunner(dry_run=dry_run, echo=sys.stderr if json_mode else None)
    resolved: Optional[ResolvedImage] = None
    selection: Optional[Selection] = None

    try:
        # --- Phase 1: Resolve configuration ---
        request = resolve_request(
            board=board,
            port=port,
            target=target,
            image=image,
            method=method,
            chip=chip,
            tool=tool,
            skip_build=no_build,
            dry_run=dry_run,
            project_dir=project_dir,
            config_path=config,
            timeout=timeout,
        )
        runner.timeout = request.timeout

        # --- Phase 2: Build or locate the image ---
        resolved = ensure_image(request, runner)
        logger.info("Flashing image: %s (%s)", resolved.path, resolved.format.value)

        # --- Phase 3: Select a backend and flash ---
        lock = contextlib.nullcontext() if request.dry_run else HardwareLock(request.port)
        with lock:
            selection = select_and_flash(request, resolved, runner)
    except FlashError as e:
        return report(
            image=resolved,
            selection=None,
            commands=runner.trace,
            dry_run=dry_run,
            started=started,
            json_mode=json_mode,
            error=e,
        )

    # --- Phase 4: Report ---
    return report(
        image=resolved,
        selection=selection,
        commands=runner.trace,
        dry_run=dry_run,
        started=started,
        json_mode=json_mode,
    )
