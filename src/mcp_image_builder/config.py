"""
Configuration loading (config/config.yaml).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .exceptions import ParseError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")
DEFAULT_IMAGE_PREFIX = "mcp"
DEFAULT_SKIP = ["everything"]


@dataclass
class ServerOverride:
    """Per-server changes to the generated client entry"""
    docker_args: Optional[list[str]] = None
    args: Optional[list[str]] = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class BuilderSettings:
    """Settings for the build run and the client config"""
    image_prefix: str = DEFAULT_IMAGE_PREFIX
    skip: list[str] = field(default_factory=lambda: list(DEFAULT_SKIP))
    only: list[str] = field(default_factory=list)
    keep_going: bool = False
    command_timeout: Optional[float] = None
    telemetry_log: Optional[str] = None
    servers: dict[str, ServerOverride] = field(default_factory=dict)

    def image_tag(self, server: str) -> str:
        return f"{self.image_prefix}/{server}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BuilderSettings":
        builder = data.get("builder") or {}
        servers = data.get("servers") or {}
        if not isinstance(builder, dict) or not isinstance(servers, dict):
            raise ParseError("configuration", reason="'builder' and 'servers' must be mappings")

        overrides = {}
        for name, raw in servers.items():
            raw = raw or {}
            if not isinstance(raw, dict):
                raise ParseError("configuration", reason=f"servers.{name} must be a mapping")
            env = raw.get("env") or {}
            if not isinstance(env, dict):
                raise ParseError("configuration", reason=f"servers.{name}.env must be a mapping")
            overrides[name] = ServerOverride(
                docker_args=_string_list(raw, "docker_args", f"servers.{name}.docker_args"),
                args=_string_list(raw, "args", f"servers.{name}.args"),
                env={k: str(v) for k, v in env.items()},
            )

        timeout = builder.get("command_timeout")
        if timeout is not None and (
            isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
        ):
            raise ParseError("configuration", reason="builder.command_timeout must be a positive number")

        prefix = builder.get("image_prefix") or DEFAULT_IMAGE_PREFIX
        if not isinstance(prefix, str):
            raise ParseError("configuration", reason="builder.image_prefix must be a string")

        telemetry_log = builder.get("telemetry_log")
        if telemetry_log is not None and not isinstance(telemetry_log, str):
            raise ParseError("configuration", reason="builder.telemetry_log must be a path")

        skip = _string_list(builder, "skip", "builder.skip")
        return cls(
            image_prefix=prefix,
            skip=list(DEFAULT_SKIP) if skip is None else skip,
            only=_string_list(builder, "only", "builder.only") or [],
            keep_going=bool(builder.get("keep_going", False)),
            command_timeout=timeout,
            telemetry_log=telemetry_log,
            servers=overrides,
        )


def _string_list(section: dict[str, Any], key: str, where: str) -> Optional[list[str]]:
    """A list of strings; null means unset and a bare string is one item"""
    value = section.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, (str, int, float)) for v in value):
        return [str(v) for v in value]
    raise ParseError("configuration", reason=f"{where} must be a string or a list of strings")


def load_settings(config_path: Optional[Path] = None) -> BuilderSettings:
    """
    Load settings from a YAML file.

    A missing file is not an error: a warning is logged and defaults are
    used. A file that exists but is not valid YAML, or holds values of the
    wrong type, raises ParseError.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Config file {path} not found, using defaults")
        return BuilderSettings()
    except yaml.YAMLError as e:
        raise ParseError(str(path), reason=str(e)) from e

    if not isinstance(data, dict):
        raise ParseError(str(path), reason="top level must be a mapping")
    return BuilderSettings.from_dict(data)
