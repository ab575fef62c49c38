"""YAML scenarios that replay a sequence of requests against one runner.

A scenario file looks like::

    name: switch-streams
    runner:
      name: player
    steps:
      - submit: A
        cleanup_delay: 0.2
      - sleep: 0.05
      - submit: B
        fail: setup
      - submit: C
      - shutdown: true

Each submitted task appends ``start:<label>`` when its setup finishes and
``cleanup:<label>`` when its cleanup finishes, so the resulting log shows
exactly which tasks ran and in what order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from time import monotonic
from typing import Any

import yaml

from .errors import ScenarioError
from .options import RunnerOptions, parse_flag
from .reporting import make_logging_sink
from .runner import SequentialTaskRunner
from .types import Cleanup, Task, TaskFailure

STEP_ACTIONS = ("submit", "shutdown", "sleep", "wait_idle")
FAIL_PHASES = ("setup", "cleanup")


class ScenarioTaskError(RuntimeError):
    """Failure injected by a scenario step's ``fail`` setting."""


@dataclass
class ScenarioStep:
    """One request in a scenario."""

    action: str  # "submit" | "shutdown" | "sleep" | "wait_idle"
    label: str | None = None
    seconds: float = 0.0
    setup_delay: float = 0.0
    cleanup_delay: float = 0.0
    fail: str | None = None  # "setup" | "cleanup"
    cleanup: bool = True

    @classmethod
    def from_dict(cls, data: Any, index: int) -> ScenarioStep:
        if not isinstance(data, dict):
            raise ScenarioError(f"step {index} must be a mapping, got {type(data).__name__}")
        actions = [key for key in STEP_ACTIONS if key in data]
        if len(actions) != 1:
            raise ScenarioError(
                f"step {index} must have exactly one of {', '.join(STEP_ACTIONS)}"
            )
        action = actions[0]

        if action == "submit":
            fail = data.get("fail")
            if fail is not None and fail not in FAIL_PHASES:
                raise ScenarioError(
                    f"step {index}: fail must be one of {', '.join(FAIL_PHASES)}, got {fail!r}"
                )
            return cls(
                action=action,
                label=str(data["submit"]),
                setup_delay=_seconds(data.get("setup_delay", 0.0), index),
                cleanup_delay=_seconds(data.get("cleanup_delay", 0.0), index),
                fail=fail,
                cleanup=parse_flag(data.get("cleanup", True)),
            )
        if action == "sleep":
            return cls(action=action, seconds=_seconds(data["sleep"], index))
        if data[action] is not True:
            raise ScenarioError(
                f"step {index}: {action} must be true, got {data[action]!r} (remove the step to skip it)"
            )
        return cls(action=action)


def _seconds(value: Any, index: int) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ScenarioError(f"step {index}: expected a number of seconds, got {value!r}") from None
    if seconds < 0:
        raise ScenarioError(f"step {index}: seconds must not be negative")
    return seconds


@dataclass
class Scenario:
    """A named list of steps plus the options for the runner that replays them."""

    name: str
    steps: list[ScenarioStep]
    runner: RunnerOptions = field(default_factory=RunnerOptions)

    @classmethod
    def from_dict(cls, data: Any) -> Scenario:
        if not isinstance(data, dict):
            raise ScenarioError("scenario must be a mapping with a 'steps' list")
        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ScenarioError("scenario needs a non-empty 'steps' list")
        runner_data = data.get("runner") or {}
        if not isinstance(runner_data, dict):
            raise ScenarioError("'runner' must be a mapping")
        return cls(
            name=str(data.get("name", "scenario")),
            steps=[ScenarioStep.from_dict(step, i) for i, step in enumerate(raw_steps, start=1)],
            runner=RunnerOptions.from_dict(runner_data),
        )


def load_scenario(path: str | Path) -> Scenario:
    """Load a scenario from a YAML file."""
    path = Path(path).expanduser()
    if not path.exists():
        raise ScenarioError(f"file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ScenarioError(f"invalid YAML in {path}: {exc}") from exc
    return Scenario.from_dict(data)


@dataclass
class TimelineEntry:
    elapsed: float
    event: str

    def to_dict(self) -> dict[str, Any]:
        return {"elapsed": round(self.elapsed, 4), "event": self.event}


@dataclass
class ScenarioResult:
    """What happened while a scenario was replayed."""

    name: str
    log: list[str] = field(default_factory=list)
    timeline: list[TimelineEntry] = field(default_factory=list)
    failures: list[TaskFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "log": list(self.log),
            "timeline": [entry.to_dict() for entry in self.timeline],
            "failures": [
                {"phase": f.phase.value, "runner": f.runner, "error": str(f.error)}
                for f in self.failures
            ],
        }


class _Recorder:
    def __init__(self, result: ScenarioResult) -> None:
        self.result = result
        self._started = monotonic()

    def note(self, event: str) -> None:
        self.result.timeline.append(TimelineEntry(monotonic() - self._started, event))

    def log(self, entry: str) -> None:
        self.result.log.append(entry)
        self.note(entry)

    def failure(self, failure: TaskFailure) -> None:
        self.result.failures.append(failure)
        self.note(f"error:{failure.phase.value}:{failure.error}")


def make_task(step: ScenarioStep, recorder: _Recorder) -> Task:
    """Build the task a ``submit`` step describes."""
    label = step.label

    async def cleanup() -> None:
        if step.cleanup_delay:
            await asyncio.sleep(step.cleanup_delay)
        if step.fail == "cleanup":
            raise ScenarioTaskError(f"cleanup of {label} failed")
        recorder.log(f"cleanup:{label}")

    async def setup() -> Cleanup | None:
        if step.setup_delay:
            await asyncio.sleep(step.setup_delay)
        if step.fail == "setup":
            raise ScenarioTaskError(f"setup of {label} failed")
        recorder.log(f"start:{label}")
        return cleanup if step.cleanup else None

    return setup


async def run_scenario(scenario: Scenario) -> ScenarioResult:
    """Replay every step against a fresh runner and wait for it to go idle."""
    result = ScenarioResult(name=scenario.name)
    recorder = _Recorder(result)
    log_failure = make_logging_sink(scenario.runner.log_tracebacks)

    def record_failure(failure: TaskFailure) -> None:
        recorder.failure(failure)
        log_failure(failure)

    runner = SequentialTaskRunner(scenario.runner, error_sink=record_failure)

    for step in scenario.steps:
        if step.action == "submit":
            recorder.note(f"submit:{step.label}")
            runner.submit(make_task(step, recorder))
        elif step.action == "shutdown":
            recorder.note("shutdown")
            runner.shutdown()
        elif step.action == "sleep":
            await asyncio.sleep(step.seconds)
        elif step.action == "wait_idle":
            await runner.wait_idle()

    await runner.wait_idle()
    return result
