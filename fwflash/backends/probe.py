"""Debug-probe backend: probe-rs-cli, falling back to probe-run.

Both tools read ELF natively and verify programmatically, which is why
this backend comes first in auto mode.
"""

from __future__ import annotations

from .base import (
    Backend,
    BackendKind,
    FlashCommand,
    FlashContext,
    ImageRequirement,
    ToolVariant,
)


def _probe_rs_download(tool: str, ctx: FlashContext) -> FlashCommand:
    return FlashCommand(tool=tool, args=["download", ctx.image, "--chip", ctx.chip])


def _probe_run(tool: str, ctx: FlashContext) -> FlashCommand:
    args = ["--chip", ctx.chip] if ctx.chip else []
    return FlashCommand(tool=tool, args=[*args, ctx.image])


PROBE = Backend(
    kind=BackendKind.PROBE,
    label="probe-rs",
    variants=(
        ToolVariant(
            tool="probe-rs-cli",
            build=_probe_rs_download,
            image=ImageRequirement.ELF,
            params=("chip",),
        ),
        ToolVariant(
            tool="probe-run",
            build=_probe_run,
            image=ImageRequirement.ELF,
        ),
    ),
)
