"""Single-slot sequential task runner."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from .errors import RunnerNotBoundError
from .options import RunnerOptions
from .reporting import emit_event, make_logging_sink, report_failure
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

logger = logging.getLogger(__name__)


class SequentialTaskRunner:
    """Run setup/cleanup tasks one at a time, newest submission wins.

    ``submit`` and ``shutdown`` only record the request and make sure the
    driver loop is running. Task bodies always execute on the driver, which
    alternates two phases:

    - run the cleanup left by the previously settled task, if any;
    - run the setup of the most recently submitted task, keeping the cleanup
      it returns for the next round.

    A task replaced before it started is dropped without running. Setup and
    cleanup failures go to the error sink and never reach the caller.

    Usage::

        runner = SequentialTaskRunner()
        runner.submit(open_stream)
        ...
        runner.submit(open_other_stream)  # closes the first stream, then opens
        await runner.aclose()
    """

    def __init__(
        self,
        options: RunnerOptions | None = None,
        *,
        error_sink: ErrorSink | None = None,
        on_event: EventHandler | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.options = options or RunnerOptions()
        self._error_sink = error_sink or make_logging_sink(self.options.log_tracebacks)
        self._on_event = on_event
        self._loop = loop

        self._pending_task: Task | None = None
        self._shutdown_requested = False
        self._active_cleanup: Cleanup | None = None
        self._loop_active = False
        self._phase = RunnerPhase.IDLE
        self._driver: asyncio.Task[None] | None = None

    @property
    def name(self) -> str:
        return self.options.name

    @property
    def phase(self) -> RunnerPhase:
        """The operation the driver is currently awaiting."""
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._loop_active

    @property
    def has_active_cleanup(self) -> bool:
        return self._active_cleanup is not None

    def submit(self, task: Task) -> None:
        """Make ``task`` the next one to start, replacing any not-yet-started task."""
        self._dispatch(self._request_task, task)

    def shutdown(self) -> None:
        """Drop any not-yet-started task and release the settled one.

        The runner goes idle afterwards and can be reused by a later ``submit``.
        """
        self._dispatch(self._request_shutdown)

    async def wait_idle(self) -> None:
        """Wait until the driver loop has nothing left to do."""
        while self._driver is not None and not self._driver.done():
            await asyncio.wait({self._driver})

    async def aclose(self) -> None:
        """Shut down and wait for the settled task's cleanup to finish."""
        self.shutdown()
        await self.wait_idle()

    async def __aenter__(self) -> SequentialTaskRunner:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _dispatch(self, apply: Callable[..., None], *args: Any) -> None:
        """Apply a request on the runner's event loop thread."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is None:
            if running is None:
                raise RunnerNotBoundError(self.name)
            self._loop = running
        elif running is not None and running is not self._loop and self._loop_is_finished():
            # An idle runner follows its caller onto a new event loop.
            self._loop = running

        if running is self._loop:
            apply(*args)
        else:
            self._loop.call_soon_threadsafe(apply, *args)

    def _loop_is_finished(self) -> bool:
        assert self._loop is not None
        if self._loop_active:
            return False
        return self._loop.is_closed() or not self._loop.is_running()

    def _driver_cancelling(self) -> bool:
        """Whether the driver task itself, not a task body's inner await, is being cancelled."""
        current = asyncio.current_task()
        return current is not None and current.cancelling() > 0

    def _request_task(self, task: Task) -> None:
        self._pending_task = task
        self._shutdown_requested = False
        self._ensure_loop()

    def _request_shutdown(self) -> None:
        self._pending_task = None
        self._shutdown_requested = True
        self._ensure_loop()

    def _has_pending_work(self) -> bool:
        return self._shutdown_requested or self._pending_task is not None

    def _ensure_loop(self) -> None:
        if self._loop_active:
            return
        assert self._loop is not None
        self._loop_active = True
        self._driver = self._loop.create_task(self._drive(), name=f"seqrun:{self.name}")

    async def _drive(self) -> None:
        try:
            while self._has_pending_work():
                stop = self._shutdown_requested
                task = self._pending_task
                self._shutdown_requested = False
                self._pending_task = None

                if self._active_cleanup is not None:
                    cleanup = self._active_cleanup
                    self._active_cleanup = None
                    await self._run_cleanup(cleanup)
                    # A request that landed during cleanup replaces the snapshot.
                    if self._has_pending_work():
                        continue

                if stop or task is None:
                    continue

                outcome = await self._run_setup(task)
                if outcome.kind is SetupOutcomeKind.CLEANUP:
                    self._active_cleanup = outcome.cleanup
        finally:
            # Cleared in the same step as the last pending-work check.
            self._loop_active = False
            self._phase = RunnerPhase.IDLE
            # Only reachable with work pending when the driver was cancelled.
            if self._has_pending_work() and self._loop is not None and not self._loop.is_closed():
                self._ensure_loop()

        logger.debug("Runner %s idle", self.name)
        self._emit("idle")

    async def _run_setup(self, task: Task) -> SetupOutcome:
        self._phase = RunnerPhase.SETTING_UP
        self._emit("setup_started")
        try:
            result = task()
            if inspect.isawaitable(result):
                result = await result
        except (Exception, asyncio.CancelledError) as exc:
            if isinstance(exc, asyncio.CancelledError) and self._driver_cancelling():
                raise
            self._fail(FailurePhase.SETUP, exc)
            return SetupOutcome.failed(exc)

        self._emit("setup_completed")
        if result is None:
            return SetupOutcome.no_cleanup()
        if not callable(result):
            logger.debug(
                "Runner %s: setup returned non-callable %r, no cleanup registered",
                self.name,
                type(result).__name__,
            )
            return SetupOutcome.no_cleanup()
        return SetupOutcome.with_cleanup(result)

    async def _run_cleanup(self, cleanup: Cleanup) -> None:
        self._phase = RunnerPhase.CLEANING_UP
        self._emit("cleanup_started")
        try:
            result = cleanup()
            if inspect.isawaitable(result):
                await result
        except (Exception, asyncio.CancelledError) as exc:
            if isinstance(exc, asyncio.CancelledError) and self._driver_cancelling():
                raise
            self._fail(FailurePhase.CLEANUP, exc)
            return
        self._emit("cleanup_completed")

    def _fail(self, phase: FailurePhase, error: BaseException) -> None:
        failure = TaskFailure(phase=phase, error=error, runner=self.name)
        report_failure(self._error_sink, failure)
        self._emit("failure", failure)

    def _emit(self, event_type: str, failure: TaskFailure | None = None) -> None:
        logger.debug("Runner %s: %s", self.name, event_type)
        emit_event(self._on_event, RunnerEvent(type=event_type, runner=self.name, failure=failure))
