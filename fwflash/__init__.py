"""
fwflash - Firmware deployment dispatcher

Gets a firmware image onto a device using whichever capable flashing tool
is installed: probe-rs, OpenOCD/ST-Link, esptool or dfu-util.
"""

__version__ = "0.1.0"

from .errors import (
    ArtifactNotFound,
    BackendFailed,
    BackendUnavailable,
    BuildFailed,
    FlashError,
    InterfaceBusy,
    InvalidConfiguration,
    NoBackendSucceeded,
    NoImageProvided,
)
from .config import DeploymentRequest, Method, resolve_request
from .image import ImageFormat, ResolvedImage
from .runner import CommandResult, CommandRunner
from .selector import BackendAttempt, Outcome, Selection, select_and_flash

__all__ = [
    "ArtifactNotFound",
    "BackendFailed",
    "BackendUnavailable",
    "BuildFailed",
    "FlashError",
    "InterfaceBusy",
    "InvalidConfiguration",
    "NoBackendSucceeded",
    "NoImageProvided",
    "DeploymentRequest",
    "Method",
    "resolve_request",
    "ImageFormat",
    "ResolvedImage",
    "CommandResult",
    "CommandRunner",
    "BackendAttempt",
    "Outcome",
    "Selection",
    "select_and_flash",
]
