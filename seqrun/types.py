"""Shared runner types."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from time import monotonic
from typing import Any, Union

Cleanup = Callable[[], Union[None, Awaitable[None]]]
Task = Callable[[], Union[Cleanup, None, Awaitable[Union[Cleanup, None]]]]


class RunnerPhase(str, Enum):
    """What the driver loop is doing right now."""

    IDLE = "idle"
    SETTING_UP = "setting_up"
    CLEANING_UP = "cleaning_up"


class FailurePhase(str, Enum):
    """Which half of a task's lifecycle raised."""

    SETUP = "setup"
    CLEANUP = "cleanup"


class SetupOutcomeKind(str, Enum):
    NO_CLEANUP = "no_cleanup"
    CLEANUP = "cleanup"
    FAILED = "failed"


@dataclass(frozen=True)
class SetupOutcome:
    """Result of invoking one task's setup.

    Exactly one of the three shapes is produced: the task finished without
    leaving anything to release, it returned a cleanup to run later, or it
    raised.
    """

    kind: SetupOutcomeKind
    cleanup: Cleanup | None = None
    error: BaseException | None = None

    @classmethod
    def no_cleanup(cls) -> SetupOutcome:
        return cls(kind=SetupOutcomeKind.NO_CLEANUP)

    @classmethod
    def with_cleanup(cls, cleanup: Cleanup) -> SetupOutcome:
        return cls(kind=SetupOutcomeKind.CLEANUP, cleanup=cleanup)

    @classmethod
    def failed(cls, error: BaseException) -> SetupOutcome:
        return cls(kind=SetupOutcomeKind.FAILED, error=error)


@dataclass(frozen=True)
class TaskFailure:
    """A setup or cleanup that raised, as handed to the error sink."""

    phase: FailurePhase
    error: BaseException
    runner: str

    def describe(self) -> str:
        return f"{self.runner}: {self.phase.value} failed: {self.error!r}"


@dataclass
class RunnerEvent:
    """Lifecycle notification emitted by the driver loop."""

    type: str  # "setup_started" | "setup_completed" | "cleanup_started" | "cleanup_completed" | "failure" | "idle"
    runner: str
    failure: TaskFailure | None = None
    timestamp: float = field(default_factory=monotonic)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "runner": self.runner}
        if self.failure is not None:
            data["phase"] = self.failure.phase.value
            data["error"] = repr(self.failure.error)
        return data


ErrorSink = Callable[[TaskFailure], None]
EventHandler = Callable[[RunnerEvent], None]
