"""Error types raised by seqrun itself (never by submitted tasks)."""


class SeqrunError(Exception):
    """Base class for seqrun usage errors."""


class RunnerNotBoundError(SeqrunError, RuntimeError):
    """Raised when a runner is driven with no event loop to run on."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Runner '{name}' has no event loop. Call submit()/shutdown() from a "
            "running event loop first, or pass loop= when constructing it."
        )


class ScenarioError(SeqrunError, ValueError):
    """Raised when a scenario file cannot be loaded."""

    def __init__(self, details: str) -> None:
        super().__init__(f"Scenario error: {details}")
