"""Shared pytest configuration for fwflash tests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional
from unittest.mock import patch

import pytest

from fwflash.lock import HardwareLock

from elf_factory import ARM_FLASH_BASE, make_elf


class FakeTools:
    """Stand-in for ``which_or_sdk`` with a configurable set of installed tools."""

    def __init__(self, installed: Iterable[str] = ()):
        self.installed = set(installed)
        self.queried: list[str] = []

    def __call__(self, name: str) -> Optional[str]:
        self.queried.append(name)
        if name not in self.installed:
            return None
        return name if "/" in name else f"/usr/bin/{name}"


@pytest.fixture
def tools():
    """Patch tool discovery; add names to ``tools.installed`` to 'install' them."""
    fake = FakeTools()
    with patch("fwflash.selector.which_or_sdk", fake), patch("fwflash.build.which_or_sdk", fake):
        yield fake


@pytest.fixture
def elf_image(tmp_path: Path) -> Path:
    fw = tmp_path / "fw.elf"
    fw.write_bytes(make_elf([(ARM_FLASH_BASE, bytes(range(64)))]))
    return fw


@pytest.fixture
def bin_image(tmp_path: Path) -> Path:
    fw = tmp_path / "fw.bin"
    fw.write_bytes(b"\x00\x01\x02\x03" * 16)
    return fw


@pytest.fixture(autouse=True)
def isolate_lock_dir(tmp_path, monkeypatch):
    """Redirect the hardware lock dir to tmp_path for every test."""
    lock_dir = str(tmp_path / "fwflash-locks")
    monkeypatch.setattr(HardwareLock, "LOCK_DIR", lock_dir)
    return lock_dir


@pytest.fixture(autouse=True)
def reset_fwflash_logger():
    """Undo the CLI's handler setup so caplog keeps working across tests."""
    yield
    logger = logging.getLogger("fwflash")
    logger.handlers[:] = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
