"""
OpenOCD / ST-Link backend for STM32 targets.

Prefers st-flash (raw binary at the start of internal flash) when the
ST-Link utilities sit next to OpenOCD, otherwise programs the image
through OpenOCD itself, which accepts ELF and binary alike.

References:
- ST-Link tools: https://github.com/stlink-org/stlink
- OpenOCD STM32: https://openocd.org/doc/pdf/openocd.pdf
"""

from __future__ import annotations

from typing import Optional

from .base import (
    Backend,
    BackendKind,
    FlashCommand,
    FlashContext,
    ImageRequirement,
    ToolVariant,
)

STM32_FLASH_BASE = "0x8000000"

INTERFACE_CFG = "interface/stlink.cfg"
DEFAULT_TARGET_CFG = "target/stm32f4x.cfg"

_TARGET_MAP = {
    "stm32f1": "target/stm32f1x.cfg",
    "stm32f3": "target/stm32f3x.cfg",
    "stm32f4": "target/stm32f4x.cfg",
    "stm32l4": "target/stm32l4x.cfg",
    "stm32h7": "target/stm32h7x.cfg",
    "stm32g0": "target/stm32g0x.cfg",
    "stm32g4": "target/stm32g4x.cfg",
    "stm32u5": "target/stm32u5x.cfg",
}


def openocd_target_cfg(board: Optional[str] = None, chip: Optional[str] = None) -> str:
    """Pick the OpenOCD target config from the chip, then the board id.

    Falls back to stm32f4x.cfg when neither names a known STM32 family.
    """
    for hint in (chip, board):
        if not hint:
            continue
        hint = hint.lower()
        for prefix, cfg in _TARGET_MAP.items():
            if hint.startswith(prefix):
                return cfg
    return DEFAULT_TARGET_CFG


def _st_flash_write(tool: str, ctx: FlashContext) -> FlashCommand:
    return FlashCommand(tool=tool, args=["write", ctx.image, STM32_FLASH_BASE])


_TCL_SPECIAL = str.maketrans({c: "\\" + c for c in '\\"$[]{};'})


def tcl_quote(value: str) -> str:
    """Quote *value* as one Tcl word with no substitutions."""
    return '"' + value.translate(_TCL_SPECIAL) + '"'


def _openocd_program(tool: str, ctx: FlashContext) -> FlashCommand:
    target_cfg = openocd_target_cfg(ctx.board, ctx.chip)
    program = f"program {tcl_quote(ctx.image)} verify reset"
    if not ctx.is_elf:
        # Raw binaries carry no load address
        program += f" {STM32_FLASH_BASE}"
    return FlashCommand(
        tool=tool,
        args=[
            "-f", INTERFACE_CFG,
            "-f", target_cfg,
            # One argv element: OpenOCD parses the command string itself
            "-c", f"{program}; shutdown",
        ],
    )


OPENOCD = Backend(
    kind=BackendKind.OPENOCD,
    label="openocd/st-flash",
    variants=(
        ToolVariant(
            tool="st-flash",
            build=_st_flash_write,
            requires=("openocd",),
            image=ImageRequirement.BIN,
            converters=("arm-none-eabi-objcopy",),
        ),
        ToolVariant(
            tool="openocd",
            build=_openocd_program,
            image=ImageRequirement.ANY,
        ),
    ),
)
