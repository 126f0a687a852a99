"""
Backend descriptors for the flash dispatcher.

A backend is data, not control flow: an ordered tuple of tool variants,
each declaring
- the executable it invokes and any other tools that must be installed
- the image format it accepts (native ELF, raw binary, or either)
- the request parameters it cannot run without (chip, port)
- the objcopy flavours able to produce its binary input
- how to build its argument vector

Adding a backend means adding a descriptor, not another branch.
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field, replace
from typing import Callable, Optional


class BackendKind(enum.Enum):
    """Supported flashing backends, named as on the command line."""

    PROBE = "probe"
    OPENOCD = "openocd"
    ESPTOOL = "esptool"
    DFU = "dfu"


class ImageRequirement(enum.Enum):
    ELF = "elf"  # tool reads ELF natively; a raw binary cannot be used
    BIN = "bin"  # tool needs a raw binary; ELF images are converted
    ANY = "any"


@dataclass(frozen=True)
class FlashContext:
    """Inputs an argument builder may use."""

    image: str  # path handed to the tool (already converted when needed)
    chip: Optional[str] = None
    port: Optional[str] = None
    board: Optional[str] = None
    target: Optional[str] = None
    is_elf: bool = True  # format of the path in `image`


@dataclass
class FlashCommand:
    """A flash command configuration."""

    tool: str
    args: list[str]

    @property
    def argv(self) -> list[str]:
        return [self.tool, *self.args]


ArgBuilder = Callable[[str, FlashContext], FlashCommand]


@dataclass(frozen=True)
class ToolVariant:
    """One way of driving a backend (e.g. probe-rs-cli vs probe-run)."""

    tool: str
    build: ArgBuilder
    requires: tuple[str, ...] = ()
    image: ImageRequirement = ImageRequirement.ANY
    params: tuple[str, ...] = ()
    converters: tuple[str, ...] = ()

    def missing_params(self, ctx: FlashContext) -> list[str]:
        return [p for p in self.params if not getattr(ctx, p)]


@dataclass(frozen=True)
class Backend:
    """A flashing backend: variants tried in order until one is available."""

    kind: BackendKind
    label: str
    variants: tuple[ToolVariant, ...]
    # Logged when an optional parameter is absent, keyed by parameter name
    hints: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.kind.value

    def with_tool(self, tool: str) -> "Backend":
        """Return a copy that invokes *tool* through one variant only.

        The variant whose tool name matches the basename of *tool* is used,
        falling back to the primary variant when none matches.
        """
        name = os.path.basename(tool)
        chosen = next((v for v in self.variants if v.tool == name), self.variants[0])
        return Backend(
            kind=self.kind,
            label=self.label,
            variants=(replace(chosen, tool=tool),),
            hints=self.hints,
        )
