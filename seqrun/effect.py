"""Dependency-tracked effect slot built on the sequential runner."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .options import RunnerOptions
from .runner import SequentialTaskRunner
from .types import Task

_UNSET: Any = object()


class SequentialEffect:
    """One host-owned slot that re-runs an effect when its dependencies change.

    Changing dependencies skips any older effect that has not started yet,
    and the next effect starts only after the current one's cleanup finished.
    ``unmount`` releases the current effect.

    Usage::

        slot = SequentialEffect()
        slot.update(connect, deps=[url])   # connects
        slot.update(connect, deps=[url])   # same deps, nothing happens
        slot.update(connect2, deps=[url2]) # disconnects, then connects again
        await slot.aclose()
    """

    def __init__(
        self,
        runner: SequentialTaskRunner | None = None,
        *,
        options: RunnerOptions | None = None,
    ) -> None:
        self.runner = runner or SequentialTaskRunner(options)
        self._deps: tuple[Any, ...] | None = _UNSET

    def update(self, effect: Task, deps: Sequence[Any] | None = None) -> bool:
        """Submit ``effect`` unless ``deps`` equal the previous call's.

        With ``deps=None`` the effect is submitted on every call. Returns
        True when a submit happened.
        """
        if deps is not None:
            new_deps = tuple(deps)
            if self._deps is not _UNSET and self._deps is not None and new_deps == self._deps:
                return False
            self._deps = new_deps
        else:
            self._deps = None
        self.runner.submit(effect)
        return True

    def unmount(self) -> None:
        self._deps = _UNSET
        self.runner.shutdown()

    async def aclose(self) -> None:
        self.unmount()
        await self.runner.wait_idle()

    async def __aenter__(self) -> SequentialEffect:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
