"""USB DFU backend (dfu-util). The most generic and least verifiable path."""

from __future__ import annotations

from .base import (
    Backend,
    BackendKind,
    FlashCommand,
    FlashContext,
    ImageRequirement,
    ToolVariant,
)


def _download(tool: str, ctx: FlashContext) -> FlashCommand:
    return FlashCommand(tool=tool, args=["-a", "0", "-D", ctx.image])


DFU = Backend(
    kind=BackendKind.DFU,
    label="dfu-util",
    variants=(
        ToolVariant(
            tool="dfu-util",
            build=_download,
            image=ImageRequirement.BIN,
            converters=("objcopy", "arm-none-eabi-objcopy"),
        ),
    ),
    hints={"port": "dfu-util usually autodetects the USB DFU device"},
)
