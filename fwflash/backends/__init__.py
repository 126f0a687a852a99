"""
Flashing backends for fwflash.

Usage:
    from fwflash.backends import BACKEND_ORDER, get_backend

    for backend in BACKEND_ORDER:      # auto mode priority
        ...

    backend = get_backend("dfu")       # explicit --method
"""

from .base import (
    Backend,
    BackendKind,
    FlashCommand,
    FlashContext,
    ImageRequirement,
    ToolVariant,
)
from .dfu import DFU
from .esptool import ESPTOOL
from .openocd import OPENOCD
from .probe import PROBE

__all__ = [
    "Backend",
    "BackendKind",
    "FlashCommand",
    "FlashContext",
    "ImageRequirement",
    "ToolVariant",
    "BACKEND_ORDER",
    "get_backend",
]

# Auto-mode priority order
BACKEND_ORDER: tuple[Backend, ...] = (PROBE, OPENOCD, ESPTOOL, DFU)

_BACKENDS: dict[BackendKind, Backend] = {b.kind: b for b in BACKEND_ORDER}


def get_backend(kind: BackendKind | str) -> Backend:
    """Look up a backend by kind or command-line name.

    Raises:
        ValueError: If the name is not a known backend.
    """
    if isinstance(kind, str):
        try:
            kind = BackendKind(kind.lower())
        except ValueError:
            supported = ", ".join(b.name for b in BACKEND_ORDER)
            raise ValueError(f"Unknown flash method: {kind!r}. Supported: {supported}") from None
    return _BACKENDS[kind]
