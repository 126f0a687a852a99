"""
Flash dispatcher exceptions.

Each exception carries the process exit code the CLI reports for it and
renders as a single-line diagnostic naming the cause.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from fwflash.selector import BackendAttempt


class FlashError(Exception):
    """Base class for every failure the dispatcher reports."""

    exit_code = 1


class InvalidConfiguration(FlashError):
    """Bad or missing flag combination, detected before any command runs."""

    exit_code = 2


class NoImageProvided(FlashError):
    """Building was suppressed and no image path was given."""


class BuildFailed(FlashError):
    """The external build step failed or could not be started."""


class ArtifactNotFound(FlashError):
    """The build succeeded but no firmware image was found in its output tree."""


class InterfaceBusy(FlashError):
    """Another flash run holds the lock on the same port or probe."""


class BackendUnavailable(FlashError):
    """An explicitly requested backend's tool (or parameter) is missing."""

    def __init__(self, message: str, attempt: "BackendAttempt | None" = None):
        super().__init__(message)
        self.attempt = attempt


class BackendFailed(FlashError):
    """An explicitly requested backend ran and returned an error."""

    def __init__(self, message: str, attempt: "BackendAttempt | None" = None):
        super().__init__(message)
        self.attempt = attempt


class NoBackendSucceeded(FlashError):
    """Every backend was tried in auto mode and none flashed the device."""

    def __init__(self, message: str, attempts: Sequence["BackendAttempt"] = ()):
        super().__init__(message)
        self.attempts = list(attempts)
