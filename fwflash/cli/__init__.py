"""
fwflash: flash a firmware image with whichever supported tool is available.

Entry points:
- fwflash: console script (installed via pip)
- python -m fwflash
- Can also be called programmatically via main(argv) or cmd_flash(...)
"""

from __future__ import annotations

from fwflash.cli.flash_cmd import cmd_flash
from fwflash.cli.dispatch import main

__all__ = ["cmd_flash", "main"]
