"""Firmware image resolution and ELF→BIN conversion.

Backends such as st-flash, esptool and dfu-util want a raw binary while
the build produces an ELF.  :func:`transient_binary` produces a converted
copy for exactly one backend attempt and removes it afterwards, whatever
the outcome.
"""

from __future__ import annotations

import contextlib
import enum
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fwflash.runner import CommandRunner

logger = logging.getLogger(__name__)

ELF_MAGIC = b"\x7fELF"

# ELF program header type for loadable segments
_PT_LOAD = "PT_LOAD"


class ImageFormat(enum.Enum):
    ELF = "elf"
    BIN = "bin"


class ConversionFailed(RuntimeError):
    """ELF→BIN conversion failed; the attempt that needed it has failed."""


@dataclass(frozen=True)
class ResolvedImage:
    """The firmware image chosen for this run."""

    path: str
    format: ImageFormat

    @property
    def is_elf(self) -> bool:
        return self.format is ImageFormat.ELF


def is_elf_file(path: str) -> bool:
    """Check the ELF magic; files shorter than 4 bytes are never ELF."""
    try:
        with open(path, "rb") as f:
            return f.read(4) == ELF_MAGIC
    except OSError:
        return False


def _format_from_name(path: str) -> ImageFormat:
    suffix = Path(path).suffix.lower()
    if suffix in ("", ".elf", ".axf", ".out"):
        return ImageFormat.ELF
    return ImageFormat.BIN


def resolve_image(path: str, dry_run: bool = False) -> ResolvedImage:
    """Build a :class:`ResolvedImage` for *path*.

    The format is read from the file's magic bytes.  In dry-run mode a
    missing file is allowed and its format is guessed from the extension.

    Raises:
        FileNotFoundError: If *path* does not exist (live mode only).
    """
    if os.path.isfile(path):
        fmt = ImageFormat.ELF if is_elf_file(path) else ImageFormat.BIN
    elif dry_run:
        fmt = _format_from_name(path)
    else:
        raise FileNotFoundError(f"Firmware file not found: {path}")
    return ResolvedImage(path=path, format=fmt)


def elf_to_bin(elf_path: str, bin_path: str) -> int:
    """Write a flat binary of *elf_path*'s loadable segments.

    Mirrors ``objcopy -O binary``: segments are placed at their load
    (physical) address relative to the lowest one and gaps are zero-filled.

    Returns:
        Number of bytes written.

    Raises:
        ConversionFailed: If the file is not a valid ELF or has nothing to load.
    """
    from elftools.common.exceptions import ELFError
    from elftools.elf.elffile import ELFFile

    chunks: list[tuple[int, bytes]] = []
    try:
        with open(elf_path, "rb") as f:
            elf = ELFFile(f)
            for segment in elf.iter_segments():
                if segment["p_type"] != _PT_LOAD or segment["p_filesz"] == 0:
                    continue
                chunks.append((segment["p_paddr"], segment.data()))
    except ELFError as e:
        raise ConversionFailed(f"Failed to convert ELF to binary: {e}") from e

    if not chunks:
        raise ConversionFailed(f"Failed to convert ELF to binary: no loadable segments in {elf_path}")

    chunks.sort(key=lambda c: c[0])
    base = chunks[0][0]
    end = max(addr + len(data) for addr, data in chunks)
    image = bytearray(end - base)
    for addr, data in chunks:
        offset = addr - base
        image[offset:offset + len(data)] = data

    with open(bin_path, "wb") as f:
        f.write(image)
    return len(image)


def _transient_path(image: ResolvedImage, label: str, dry_run: bool) -> str:
    if dry_run:
        # Deterministic so repeated dry runs print identical traces; never created.
        stem = Path(image.path).stem or "firmware"
        return os.path.join(tempfile.gettempdir(), f"fwflash-{stem}-{label}.bin")
    fd, path = tempfile.mkstemp(prefix=f"fwflash-{label}-", suffix=".bin")
    os.close(fd)
    return path


@contextlib.contextmanager
def transient_binary(
    image: ResolvedImage,
    runner: CommandRunner,
    label: str,
    converter: Optional[str] = None,
) -> Iterator[str]:
    """Yield a raw-binary path for *image*, converting once if it is ELF.

    Args:
        image: The resolved firmware image.
        runner: Sandbox used for the external objcopy call.
        label: Backend name, used in the transient file name.
        converter: Resolved objcopy executable.  ``None`` converts in-process.

    The transient file is removed on every exit path, including
    exceptions raised by the caller inside the ``with`` block.
    """
    if not image.is_elf:
        yield image.path
        return

    bin_path = _transient_path(image, label, runner.dry_run)
    try:
        if converter:
            result = runner.run([converter, "-O", "binary", image.path, bin_path])
            if not result.ok:
                raise ConversionFailed(f"Failed to convert ELF to binary: {result.describe()}")
        elif runner.dry_run:
            logger.info("Would convert %s to %s in-process", image.path, bin_path)
        else:
            size = elf_to_bin(image.path, bin_path)
            logger.info("Converted %s to %s (%d bytes)", image.path, bin_path, size)
        yield bin_path
    finally:
        if not runner.dry_run:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(bin_path)
                logger.debug("Removed transient image %s", bin_path)
