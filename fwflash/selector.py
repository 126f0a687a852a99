"""Backend selection: try flashing backends until one succeeds.

Explicit method: exactly one backend is attempted and any outcome other
than success is terminal.  Auto method: backends are attempted in
:data:`~fwflash.backends.BACKEND_ORDER`; both *unavailable* (tool or
parameter missing) and *failed* (tool ran and returned an error) advance
to the next one, and only exhausting the list is fatal.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from fwflash.backends import (
    BACKEND_ORDER,
    Backend,
    BackendKind,
    FlashContext,
    ImageRequirement,
    ToolVariant,
    get_backend,
)
from fwflash.config import DeploymentRequest
from fwflash.errors import BackendFailed, BackendUnavailable, NoBackendSucceeded
from fwflash.image import ConversionFailed, ResolvedImage, transient_binary
from fwflash.runner import CommandResult, CommandRunner
from fwflash.toolchain import which_or_sdk

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass
class BackendAttempt:
    """What happened when one backend was tried."""

    backend: BackendKind
    outcome: Outcome
    commands: list[tuple[str, ...]] = field(default_factory=list)
    reason: str = ""
    tool: Optional[str] = None
    converted: bool = False

    def to_dict(self) -> dict:
        return {
            "backend": self.backend.value,
            "outcome": self.outcome.value,
            "commands": [list(c) for c in self.commands],
            "reason": self.reason,
            "tool": self.tool,
            "converted": self.converted,
        }


@dataclass
class Selection:
    """Result of a successful selector run."""

    backend: Backend
    attempts: list[BackendAttempt]

    @property
    def winner(self) -> BackendAttempt:
        return self.attempts[-1]


@dataclass(frozen=True)
class _Plan:
    variant: ToolVariant
    tool_path: str
    converters: tuple[str, ...] = ()  # installed objcopy paths, in preference order

    @property
    def converts(self) -> bool:
        return self.variant.image is ImageRequirement.BIN


def _plan_backend(backend: Backend, image: ResolvedImage, ctx: FlashContext) -> tuple[Optional[_Plan], str]:
    """Pick the first usable variant of *backend*.

    Returns:
        (plan, "") when a variant is usable, else (None, reason).
    """
    reasons: list[str] = []
    for variant in backend.variants:
        tool_path = which_or_sdk(variant.tool)
        if tool_path is None:
            reasons.append(f"{variant.tool} not found")
            continue
        missing_tools = [t for t in variant.requires if which_or_sdk(t) is None]
        if missing_tools:
            reasons.append(f"{variant.tool} needs {', '.join(missing_tools)}")
            continue
        missing_params = variant.missing_params(ctx)
        if missing_params:
            reasons.append(f"{variant.tool} needs --{missing_params[0]}")
            continue
        if variant.image is ImageRequirement.ELF and not image.is_elf:
            reasons.append(f"{variant.tool} needs an ELF image")
            continue

        converters: tuple[str, ...] = ()
        if variant.image is ImageRequirement.BIN and image.is_elf:
            found = (which_or_sdk(name) for name in variant.converters)
            converters = tuple(path for path in found if path)
        return _Plan(variant=variant, tool_path=tool_path, converters=converters), ""

    return None, "; ".join(reasons)


def _stage_and_run(
    plan: _Plan,
    image: ResolvedImage,
    ctx: FlashContext,
    runner: CommandRunner,
    label: str,
) -> CommandResult:
    """Stage the image for *plan*'s variant and run its flash command.

    Installed converters are tried in order; the next one is used when a
    conversion fails.  With none installed the image is converted in-process.

    Raises:
        ConversionFailed: If every converter failed.
    """
    if not plan.converts:
        return runner.run(plan.variant.build(plan.tool_path, ctx).argv)

    def flash_with(converter: Optional[str]) -> CommandResult:
        with transient_binary(image, runner, label, converter=converter) as flash_path:
            command = plan.variant.build(plan.tool_path, replace(ctx, image=flash_path, is_elf=False))
            return runner.run(command.argv)

    *fallbacks, last = plan.converters or (None,)
    for converter in fallbacks:
        try:
            return flash_with(converter)
        except ConversionFailed as e:
            logger.warning("%s, trying the next converter", e)
    return flash_with(last)


def attempt_backend(
    backend: Backend,
    image: ResolvedImage,
    request: DeploymentRequest,
    runner: CommandRunner,
) -> BackendAttempt:
    """Try one backend, converting the image for it if needed."""
    ctx = FlashContext(
        image=image.path,
        chip=request.chip,
        port=request.port,
        board=request.board,
        target=request.target,
        is_elf=image.is_elf,
    )

    plan, reason = _plan_backend(backend, image, ctx)
    if plan is None:
        logger.info("Skipping %s: %s", backend.label, reason)
        return BackendAttempt(backend=backend.kind, outcome=Outcome.UNAVAILABLE, reason=reason)

    for param, hint in backend.hints.items():
        if not getattr(ctx, param):
            logger.info(hint)

    logger.info("Flashing with %s", plan.variant.tool)
    first_command = len(runner.trace)
    converted = plan.converts and image.is_elf

    try:
        result = _stage_and_run(plan, image, ctx, runner, backend.name)
    except ConversionFailed as e:
        return BackendAttempt(
            backend=backend.kind,
            outcome=Outcome.FAILED,
            commands=runner.trace[first_command:],
            reason=str(e),
            tool=plan.tool_path,
            converted=converted,
        )

    if result.ok:
        outcome, reason = Outcome.SUCCESS, ""
    elif result.missing:
        outcome, reason = Outcome.UNAVAILABLE, result.describe()
    else:
        outcome, reason = Outcome.FAILED, result.describe()

    return BackendAttempt(
        backend=backend.kind,
        outcome=outcome,
        commands=runner.trace[first_command:],
        reason=reason,
        tool=plan.tool_path,
        converted=converted,
    )


def select_and_flash(
    request: DeploymentRequest,
    image: ResolvedImage,
    runner: CommandRunner,
) -> Selection:
    """Flash *image* with the requested backend, or the first that works.

    Raises:
        BackendUnavailable: Explicit method whose tool or parameter is missing.
        BackendFailed: Explicit method whose tool ran and failed.
        NoBackendSucceeded: Auto method with every backend exhausted.
    """
    if request.explicit:
        backend = get_backend(request.method.backend)
        if request.tool:
            backend = backend.with_tool(request.tool)
        attempt = attempt_backend(backend, image, request, runner)
        if attempt.outcome is Outcome.UNAVAILABLE:
            raise BackendUnavailable(f"{backend.name} method unavailable: {attempt.reason}", attempt)
        if attempt.outcome is Outcome.FAILED:
            raise BackendFailed(f"{backend.name} method failed: {attempt.reason}", attempt)
        return Selection(backend=backend, attempts=[attempt])

    attempts: list[BackendAttempt] = []
    for backend in BACKEND_ORDER:
        attempt = attempt_backend(backend, image, request, runner)
        attempts.append(attempt)
        if attempt.outcome is Outcome.SUCCESS:
            return Selection(backend=backend, attempts=attempts)
        if attempt.outcome is Outcome.FAILED:
            logger.warning("%s failed (%s), trying next backend", backend.label, attempt.reason)

    raise NoBackendSucceeded(
        "No supported flashing tool found or flashing failed. Install probe-rs-cli "
        "(recommended) or openocd/st-flash/esptool/dfu-util.",
        attempts,
    )
