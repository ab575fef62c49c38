"""Runner option models."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any


def parse_flag(value: Any) -> bool:
    """Read a boolean the way env vars and YAML strings spell it ("0", "false", "no")."""
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no", "off")
    return bool(value)


def _env_flag(name: str, default: str = "1") -> bool:
    return parse_flag(os.getenv(name, default))


@dataclass
class RunnerOptions:
    """Configuration for constructing a runner."""

    name: str = field(default_factory=lambda: os.getenv("SEQRUN_RUNNER_NAME", "runner"))
    log_tracebacks: bool = field(default_factory=lambda: _env_flag("SEQRUN_LOG_TRACEBACKS"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunnerOptions:
        """Create options from a mapping (e.g. the ``runner:`` section of a scenario)."""
        options = cls()
        if "name" in data:
            options.name = str(data["name"])
        if "log_tracebacks" in data:
            options.log_tracebacks = parse_flag(data["log_tracebacks"])
        return options
