"""Control object handed to every step of a run.

Step authors only ever see this object. It has the five control
operations; everything else is free for steps to use as shared
per-run storage (``flow.visited = [1]`` in one step is visible to
the next).
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from stepflow.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable

    from stepflow.engine.runner import StepRunner


class StepControl:
    """Capability surface shared by all steps of one run."""

    def __init__(self, runner: StepRunner) -> None:
        self._runner = runner

    def next(self) -> Callable[..., None]:
        """Wait for the returned handle before running the next step.

        The handle's arguments become the next step's arguments.
        Only its first invocation counts.
        """
        return self._runner.request_next()

    def skip(self, *args: object) -> None:
        """Jump to the last step, passing it ``args``."""
        self._runner.request_skip(args)

    def done(
        self,
        callback: Callable[..., object] | None = None,
        *args: object,
    ) -> None:
        """End the run once the current step returns.

        A callable ``callback`` is called with ``args``; anything else
        in its place is ignored.
        """
        if callback is None and not args:
            self._runner.request_done(())
        else:
            self._runner.request_done((callback, *args))

    def parallel(self) -> Callable[..., None]:
        """Register a callback; the next step gets (err, v1, ..., vN)."""
        return self._runner.request_fan_out(Action.PARALLEL)

    def group(self) -> Callable[..., None]:
        """Register a callback; the next step gets (err, [v1, ..., vN])."""
        return self._runner.request_fan_out(Action.GROUP)
