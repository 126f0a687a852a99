"""
Hardware interface locking for fwflash.

Backends in one run are serialized by construction; this lock extends
that to separate runs, so two fwflash processes never drive the same
serial port or debug probe at once.  Uses an exclusive portalocker lock
on a per-interface lock file.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from typing import Optional

import portalocker

from fwflash.errors import InterfaceBusy

logger = logging.getLogger(__name__)

# Key used when no port names the interface (USB probes, DFU autodetect)
DEFAULT_KEY = "probe"


class HardwareLock:
    """
    Exclusive lock on one hardware interface.

    Usage:
        with HardwareLock("/dev/ttyUSB0"):
            ...  # flash
    """

    LOCK_DIR = os.path.join(os.environ.get("FWFLASH_RUN_DIR", tempfile.gettempdir()), "fwflash-locks")

    def __init__(self, key: Optional[str] = None, wait_s: float = 0.0):
        self._key = key or DEFAULT_KEY
        self._wait_s = wait_s
        self._lock_fd: Optional[int] = None

    @property
    def path(self) -> str:
        # /dev/cu.usbmodem123 -> <lockdir>/_dev_cu.usbmodem123.lock
        safe_name = self._key.replace("/", "_").replace("\\", "_")
        return os.path.join(self.LOCK_DIR, f"{safe_name}.lock")

    @property
    def held(self) -> bool:
        return self._lock_fd is not None

    def acquire(self) -> None:
        """Take the lock, waiting up to ``wait_s`` seconds.

        Raises:
            InterfaceBusy: If another process holds the lock.
        """
        os.makedirs(self.LOCK_DIR, exist_ok=True)
        deadline = time.time() + self._wait_s
        fd = os.open(self.path, os.O_CREAT | os.O_RDWR, 0o644)
        while True:
            try:
                portalocker.lock(fd, portalocker.LOCK_EX | portalocker.LOCK_NB)
                break
            except (portalocker.LockException, OSError):
                if time.time() < deadline:
                    time.sleep(0.1)
                    continue
                os.close(fd)
                raise InterfaceBusy(f"{self._key} is in use by another flash run ({self.path})") from None

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._lock_fd = fd
        logger.debug("Acquired lock %s", self.path)

    def release(self) -> None:
        if self._lock_fd is None:
            return
        try:
            portalocker.unlock(self._lock_fd)
        finally:
            os.close(self._lock_fd)
            self._lock_fd = None
        logger.debug("Released lock %s", self.path)

    def __enter__(self) -> "HardwareLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
