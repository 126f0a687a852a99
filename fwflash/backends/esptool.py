"""Vendor flash tool backend (Espressif esptool.py over a serial port)."""

from __future__ import annotations

from .base import (
    Backend,
    BackendKind,
    FlashCommand,
    FlashContext,
    ImageRequirement,
    ToolVariant,
)

# Second-stage bootloader offset on classic ESP32 parts
ESP_FLASH_OFFSET = "0x1000"


def _write_flash(tool: str, ctx: FlashContext) -> FlashCommand:
    args: list[str] = []
    if ctx.chip:
        args.extend(["--chip", ctx.chip])
    args.extend(["--port", ctx.port, "write_flash", "-z", ESP_FLASH_OFFSET, ctx.image])
    return FlashCommand(tool=tool, args=args)


ESPTOOL = Backend(
    kind=BackendKind.ESPTOOL,
    label="esptool",
    variants=(
        ToolVariant(
            tool="esptool.py",
            build=_write_flash,
            image=ImageRequirement.BIN,
            params=("port",),
            converters=("xtensa-esp32-elf-objcopy", "arm-none-eabi-objcopy"),
        ),
    ),
)
