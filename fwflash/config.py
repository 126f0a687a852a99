"""Configuration resolution for a flash run.

Merges command-line options with the optional ``fwflash.yaml`` project
file and inferred defaults into one immutable :class:`DeploymentRequest`.
Validation that can fail without touching any tool happens here, so a bad
flag combination is reported before a single command runs.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import yaml

from fwflash.backends import BackendKind
from fwflash.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "fwflash.yaml"

_CONFIG_KEYS = frozenset({"board", "port", "target", "method", "chip", "timeout"})

# Substring found in build metadata → hardware-float target triple
_TARGET_HINTS = (
    ("thumbv7em", "thumbv7em-none-eabihf"),
    ("thumbv8m.main", "thumbv8m.main-none-eabihf"),
)

_METADATA_FILES = ("Cargo.toml", os.path.join(".cargo", "config.toml"), os.path.join(".cargo", "config"))


class Method(enum.Enum):
    AUTO = "auto"
    PROBE = "probe"
    OPENOCD = "openocd"
    ESPTOOL = "esptool"
    DFU = "dfu"

    @property
    def backend(self) -> Optional[BackendKind]:
        """The single backend an explicit method names; None for auto."""
        if self is Method.AUTO:
            return None
        return BackendKind(self.value)

    @classmethod
    def parse(cls, value: str) -> "Method":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise InvalidConfiguration(f"Unknown method: {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class DeploymentRequest:
    """Everything one flash run needs, fixed once resolved."""

    board: Optional[str] = None
    port: Optional[str] = None
    target: Optional[str] = None
    image: Optional[str] = None
    method: Method = Method.AUTO
    chip: Optional[str] = None
    tool: Optional[str] = None
    skip_build: bool = False
    dry_run: bool = False
    project_dir: str = "."
    timeout: Optional[float] = None

    @property
    def explicit(self) -> bool:
        return self.method is not Method.AUTO


def load_config_file(path: str) -> dict[str, Any]:
    """Read a ``fwflash.yaml`` project file.

    Raises:
        InvalidConfiguration: If the file cannot be parsed, is not a
            mapping, or contains unknown keys.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise InvalidConfiguration(f"Cannot read config file {path}: {e.strerror}") from e
    except yaml.YAMLError as e:
        raise InvalidConfiguration(f"Malformed config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Config file {path} must contain a mapping")

    unknown = sorted(set(data) - _CONFIG_KEYS)
    if unknown:
        raise InvalidConfiguration(f"Unknown key(s) in {path}: {', '.join(unknown)}")
    return data


def infer_target(project_dir: str) -> Optional[str]:
    """Sniff build metadata for a known embedded target.

    Returns:
        The hardware-float triple for the first matching hint, or None so
        the build tool's default applies.
    """
    for rel in _METADATA_FILES:
        path = os.path.join(project_dir, rel)
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        except OSError:
            continue
        for needle, triple in _TARGET_HINTS:
            if needle in text:
                logger.debug("Inferred target %s from %s", triple, path)
                return triple
    return None


def _pick(cli_value: Any, file_values: dict[str, Any], key: str) -> Any:
    if cli_value is not None:
        return cli_value
    return file_values.get(key)


def _pick_str(cli_value: Optional[str], file_values: dict[str, Any], key: str) -> Optional[str]:
    value = _pick(cli_value, file_values, key)
    return None if value is None else str(value)


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"Invalid timeout: {value!r}") from None
    if timeout <= 0:
        raise InvalidConfiguration(f"Timeout must be positive, got {value!r}")
    return timeout


def resolve_request(
    *,
    board: Optional[str] = None,
    port: Optional[str] = None,
    target: Optional[str] = None,
    image: Optional[str] = None,
    method: Optional[str] = None,
    chip: Optional[str] = None,
    tool: Optional[str] = None,
    skip_build: bool = False,
    dry_run: bool = False,
    project_dir: Optional[str] = None,
    config_path: Optional[str] = None,
    timeout: Optional[float] = None,
) -> DeploymentRequest:
    """Build a validated :class:`DeploymentRequest` from raw inputs.

    Explicit arguments win over the project file; the target triple is
    inferred from build metadata when neither provides one.

    Raises:
        InvalidConfiguration: On an invalid option or combination.
    """
    project_dir = os.path.abspath(project_dir or os.getcwd())

    file_values: dict[str, Any] = {}
    if config_path is not None:
        file_values = load_config_file(config_path)
    else:
        default_path = os.path.join(project_dir, CONFIG_FILENAME)
        if os.path.isfile(default_path):
            logger.debug("Loading project config %s", default_path)
            file_values = load_config_file(default_path)

    method_value = _pick_str(method, file_values, "method") or Method.AUTO.value
    resolved_method = Method.parse(method_value)

    port = _pick_str(port, file_values, "port")
    target = _pick_str(target, file_values, "target") or infer_target(project_dir)

    if resolved_method is Method.ESPTOOL and not port:
        raise InvalidConfiguration("esptool requires --port")
    if tool and resolved_method is Method.AUTO:
        raise InvalidConfiguration("--tool requires an explicit --method")

    return DeploymentRequest(
        board=_pick_str(board, file_values, "board"),
        port=port,
        target=target,
        image=image,
        method=resolved_method,
        chip=_pick_str(chip, file_values, "chip"),
        tool=tool,
        skip_build=skip_build,
        dry_run=dry_run,
        project_dir=project_dir,
        timeout=_parse_timeout(_pick(timeout, file_values, "timeout")),
    )
