"""seqrun: a single-slot sequential task runner for asyncio."""

__version__ = "0.1.0"

from .effect import SequentialEffect
from .errors import RunnerNotBoundError, ScenarioError, SeqrunError
from .options import RunnerOptions
from .runner import SequentialTaskRunner
from .types import (
    Cleanup,
    ErrorSink,
    EventHandler,
    FailurePhase,
    RunnerEvent,
    RunnerPhase,
    SetupOutcome,
    SetupOutcomeKind,
    Task,
    TaskFailure,
)

__all__ = [
    "__version__",
    "Cleanup",
    "ErrorSink",
    "EventHandler",
    "FailurePhase",
    "RunnerEvent",
    "RunnerNotBoundError",
    "RunnerOptions",
    "RunnerPhase",
    "ScenarioError",
    "SeqrunError",
    "SequentialEffect",
    "SequentialTaskRunner",
    "SetupOutcome",
    "SetupOutcomeKind",
    "Task",
    "TaskFailure",
]
