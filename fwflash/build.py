"""Build coordination: produce or locate the firmware image to flash."""

from __future__ import annotations

import logging
import os
from typing import Optional

from fwflash.config import DeploymentRequest
from fwflash.errors import ArtifactNotFound, BuildFailed, InvalidConfiguration, NoImageProvided
from fwflash.image import ResolvedImage, is_elf_file, resolve_image
from fwflash.runner import CommandRunner
from fwflash.toolchain import which_or_sdk

logger = logging.getLogger(__name__)

# Cargo side products that sit next to the executable in target/**/release
_SKIP_SUFFIXES = (".d", ".rlib", ".rmeta", ".a", ".so", ".dylib", ".dll", ".pdb", ".bin", ".hex")


def build_command(target: Optional[str]) -> list[str]:
    cargo = which_or_sdk("cargo") or "cargo"
    argv = [cargo, "build", "--release"]
    if target:
        argv.extend(["--target", target])
    return argv


def run_build(request: DeploymentRequest, runner: CommandRunner) -> None:
    """Run the release build in the project directory.

    Raises:
        BuildFailed: If the build tool is missing or exits non-zero.
    """
    logger.info("Building firmware (release)...")
    result = runner.run(build_command(request.target), cwd=request.project_dir)
    if not result.ok:
        raise BuildFailed(f"Build failed: {result.describe()}")


def find_artifact(target_dir: str) -> Optional[str]:
    """Find the most recently built firmware image under *target_dir*.

    Candidates are files placed directly in a ``release`` directory
    (``target/release`` or ``target/<triple>/release``) that end in
    ``.elf`` or carry the ELF magic.  The newest modification time wins;
    ties go to the lexicographically smallest path.
    """
    candidates: list[tuple[float, str]] = []
    for dirpath, dirnames, filenames in os.walk(target_dir):
        # deps/ and build/ hold intermediate objects and build scripts
        dirnames[:] = [d for d in dirnames if d not in ("deps", "build", "incremental", ".fingerprint")]
        if os.path.basename(dirpath) != "release":
            continue
        for name in filenames:
            if name.endswith(_SKIP_SUFFIXES):
                continue
            path = os.path.join(dirpath, name)
            if name.endswith(".elf") or is_elf_file(path):
                try:
                    candidates.append((os.path.getmtime(path), path))
                except OSError:
                    continue

    if not candidates:
        return None
    candidates.sort(key=lambda c: (-c[0], c[1]))
    return candidates[0][1]


def ensure_image(request: DeploymentRequest, runner: CommandRunner) -> ResolvedImage:
    """Return the image to flash, building it first when needed.

    Raises:
        InvalidConfiguration: If an explicit image path does not exist.
        NoImageProvided: If building is suppressed and no image was given.
        BuildFailed: If the build step fails.
        ArtifactNotFound: If the build produced no recognisable image.
    """
    if request.image:
        try:
            return resolve_image(request.image, dry_run=request.dry_run)
        except FileNotFoundError as e:
            raise InvalidConfiguration(str(e)) from e

    if request.skip_build:
        raise NoImageProvided("No image to flash: --no-build requires --image")

    run_build(request, runner)

    target_dir = os.path.join(request.project_dir, "target")
    path = find_artifact(target_dir)
    if path is None:
        raise ArtifactNotFound(
            f"Couldn't find a built firmware image under {target_dir}. "
            "Provide --image or set --target to a valid target."
        )
    logger.info("Auto-detected image %s", path)
    return resolve_image(path, dry_run=request.dry_run)
