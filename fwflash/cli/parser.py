"""Argument parser for the fwflash CLI."""

from __future__ import annotations

import argparse

from fwflash import __version__
from fwflash.config import Method


def _build_parser() -> argparse.ArgumentParser:
    """Build the fwflash argument parser."""
    parser = argparse.ArgumentParser(
        prog="fwflash",
        description="Flash a firmware image with whichever supported tool is available.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Backends (auto mode tries them in this order):
  probe     probe-rs-cli download / probe-run      (ELF)
  openocd   st-flash write / openocd program       (BIN / ELF)
  esptool   esptool.py write_flash, needs --port   (BIN)
  dfu       dfu-util -D                            (BIN)

Examples:
  fwflash --image target/thumbv7em-none-eabihf/release/app --chip STM32F411CEUx
  fwflash --method esptool --port /dev/ttyUSB0 --image app.bin
  fwflash --dry-run
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("-b", "--board", default=None, help="Board id (e.g. stm32f4, nrf52840, esp32)")
    parser.add_argument("-p", "--port", default=None, help="Serial port or device (e.g. /dev/ttyUSB0)")
    parser.add_argument("-t", "--target", default=None, help="Cargo target triple (inferred if omitted)")
    parser.add_argument(
        "-i", "--image", default=None,
        help="Path to the firmware image (.elf or .bin). If omitted, builds the project.",
    )
    parser.add_argument(
        "-m", "--method", default=None,
        choices=[m.value for m in Method],
        help="Flash method (default: auto)",
    )
    parser.add_argument("--tool", default=None, help="Explicit tool binary for the chosen method")
    parser.add_argument(
        "-n", "--no-build", dest="no_build", action="store_true",
        help="Don't run cargo build; --image must be given",
    )
    parser.add_argument("--chip", default=None, help="Chip name for probe-rs or esptool")
    parser.add_argument("--dry-run", action="store_true", help="Show commands that would run and exit")

    parser.add_argument("--project-dir", default=None, help="Project root (default: current directory)")
    parser.add_argument("--config", default=None, help="YAML config file (default: <project-dir>/fwflash.yaml)")
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Per-command timeout in seconds (default: wait indefinitely)",
    )
    parser.add_argument("--json", action="store_true", help="Print a JSON result on stdout")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser
