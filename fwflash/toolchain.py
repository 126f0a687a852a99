"""External tool resolution for flashing backends.

Searches PATH and known install directories (cargo bin, ESP-IDF tools,
Arm GNU toolchain) for binaries like probe-rs-cli, esptool.py and the
objcopy variants that may not be on PATH.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import Optional


def _find_in_sdk_dirs(name: str) -> Optional[str]:
    """Search for a tool in known SDK directories beyond PATH.

    Args:
        name: Binary name to search for (e.g., probe-rs-cli).

    Returns:
        Absolute path to the binary, or None if not found.
    """
    home = Path.home()
    # cargo install puts probe-rs-cli / probe-run here
    candidate = home / ".cargo" / "bin" / name
    if candidate.is_file():
        return str(candidate)
    # ESP-IDF Xtensa objcopy (glob for version-numbered dirs)
    for tool_dir in sorted(
        home.glob(".espressif/tools/xtensa-esp*-elf/*/xtensa-esp*-elf/bin"),
        reverse=True,
    ):
        candidate = tool_dir / name
        if candidate.is_file():
            return str(candidate)
    # Arm GNU toolchain unpacked under /opt
    for tool_dir in sorted(Path("/opt").glob("*arm-none-eabi*/bin"), reverse=True):
        candidate = tool_dir / name
        if candidate.is_file():
            return str(candidate)
    return None


def which_or_sdk(name: str) -> Optional[str]:
    """Find a tool on PATH or in known SDK directories.

    An explicit path (anything containing a separator) is accepted as-is
    when it points at an executable file.

    Args:
        name: Binary name or path.

    Returns:
        Absolute path to the binary, or None if not found.
    """
    if os.sep in name or (os.altsep and os.altsep in name):
        if os.path.isfile(name) and os.access(name, os.X_OK):
            return os.path.abspath(name)
        return None
    return shutil.which(name) or _find_in_sdk_dirs(name)


def has_tool(name: str) -> bool:
    return which_or_sdk(name) is not None
