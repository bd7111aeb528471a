"""Step runner -- the per-run control-flow state machine.

Steps run one at a time. After a step returns, the runner reads the
action it requested and either advances synchronously (no action, skip,
a fan-out that already resolved), waits for a handle (next, pending
fan-out) or ends the run (done, past the last step).

A handle invoked while its own step is still executing does not
re-enter: the resumption is captured and handed to the scheduler, so a
step body always returns before the next one starts.
"""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from stepflow import io_ops
from stepflow.engine.aggregate import collect, group_args, parallel_args
from stepflow.engine.control import StepControl
from stepflow.engine.scheduler import Scheduler, make_scheduler
from stepflow.errors import ActionConflictError, StepControlError
from stepflow.types import (
    NO_ACTION,
    Action,
    CallbackArgs,
    DoneAction,
    FanOut,
    NextAction,
    NoAction,
    PendingAction,
    RunOptions,
    SkipAction,
    StepEvent,
    StepFunction,
)


@dataclass
class RunState:
    """Mutable state of one run. Never shared between runs."""

    steps: tuple[StepFunction, ...]
    cursor: int = -1
    pending: PendingAction = NO_ACTION
    fan_out: FanOut | None = None
    executing: bool = False
    deferred: bool = False
    deferred_args: CallbackArgs = field(default_factory=tuple)
    finished: bool = False
    halted: bool = False

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    @property
    def inert(self) -> bool:
        return self.finished or self.halted


def _step_name(step_fn: StepFunction) -> str:
    return getattr(step_fn, "__name__", repr(step_fn))


class StepRunner:
    """Run an ordered sequence of steps once.

    Create one runner per run and call start(). Usage errors from the
    control operations and exceptions raised by steps propagate to
    whoever entered the runner: start() for the first step, the handle
    call or the event loop for later ones.
    """

    def __init__(
        self,
        steps: Sequence[StepFunction],
        options: RunOptions | None = None,
    ) -> None:
        not_callable = [
            i for i, step_fn in enumerate(steps) if not callable(step_fn)
        ]
        if not_callable:
            msg = f"Steps at positions {not_callable} are not callable"
            raise TypeError(msg)

        self._options = options or RunOptions()
        self._state = RunState(steps=tuple(steps))
        self._control = StepControl(self)
        self._scheduler: Scheduler | None = None
        self._run_id = self._options.run_id or io_ops.new_run_id()
        self._started = False

    @property
    def control(self) -> StepControl:
        return self._control

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def run_id(self) -> str:
        return self._run_id

    def start(self) -> None:
        """Run the first step; later steps follow as handles resolve.

        Raises:
            RuntimeError: The runner was already started.
            SchedulerError: defer_mode="loop" without a running loop.
        """
        if self._started:
            msg = "StepRunner instances run once; create a new runner"
            raise RuntimeError(msg)
        self._started = True

        self._scheduler = make_scheduler(self._options.defer_mode)
        if not self._state.steps:
            return

        self._emit("run_started", steps=len(self._state.steps))
        self._scheduler.enter(self._advance)

    # --- Control operations (called through StepControl) ---

    def request_next(self) -> Callable[..., None]:
        self._require_idle(Action.NEXT)
        state = self._state
        state.pending = NextAction()
        step_index = state.cursor
        fired = False

        def resume(*args: object) -> None:
            nonlocal fired
            if (
                fired
                or state.inert
                or state.cursor != step_index
            ):
                return
            fired = True
            self._enter(lambda: self._advance(*args))

        return resume

    def request_skip(self, args: CallbackArgs) -> None:
        self._require_idle(Action.SKIP)
        self._state.pending = SkipAction(args=args)

    def request_done(self, args: CallbackArgs) -> None:
        self._require_idle(Action.DONE)
        self._state.pending = DoneAction(args=args)

    def request_fan_out(self, mode: Action) -> Callable[..., None]:
        self._require_active(mode)
        state = self._state
        current = state.pending
        if isinstance(current, FanOut) and current.mode is mode:
            fan_out = current
            slot = fan_out.add_slot()
        else:
            self._require_idle(mode)
            fan_out = FanOut(mode=mode)
            state.pending = fan_out
            state.fan_out = fan_out
            slot = 0

        def resolve(*args: object) -> None:
            if (
                state.inert
                or fan_out.consumed
                or state.fan_out is not fan_out
                or fan_out.slots[slot] is not None
            ):
                return
            fan_out.slots[slot] = args
            fan_out.resolved += 1
            # While the step runs, post-step dispatch picks it up.
            if fan_out.complete and isinstance(state.pending, NoAction):
                self._enter(
                    lambda: self._advance(*self._take_fan_out(fan_out)),
                )

        return resolve

    def _require_active(self, requested: Action) -> None:
        if not self._state.executing:
            raise StepControlError(requested)

    def _require_idle(self, requested: Action) -> None:
        self._require_active(requested)
        pending = self._state.pending
        if pending.action is not Action.NONE:
            raise ActionConflictError(requested, pending.action)

    # --- Driver ---

    def _enter(self, callback: Callable[[], None]) -> None:
        assert self._scheduler is not None  # noqa: S101
        self._scheduler.enter(callback)

    def _advance(self, *args: object) -> None:
        next_args: CallbackArgs | None = args
        while next_args is not None:
            next_args = self._step_once(next_args)

    def _step_once(self, args: CallbackArgs) -> CallbackArgs | None:
        """Run one step; return args to continue with, or None to wait."""
        state = self._state
        if state.inert:
            return None

        if state.pending.action is not Action.NONE:
            self._defer(args)
            return None

        state.cursor += 1
        if state.cursor > state.last_index:
            self._finish("exhausted")
            return None

        step_fn = state.steps[state.cursor]
        self._emit("step_started", step=_step_name(step_fn))
        state.executing = True
        try:
            step_fn(self._control, *args)
        except BaseException as exc:
            state.halted = True
            self._emit("step_raised", exception=type(exc).__name__)
            raise
        finally:
            state.executing = False

        requested = state.pending
        state.pending = NO_ACTION
        self._emit("step_returned", action=requested.action.value)
        return self._dispatch(requested)

    def _dispatch(self, requested: PendingAction) -> CallbackArgs | None:
        state = self._state

        if isinstance(requested, NoAction):
            return ()

        if isinstance(requested, NextAction):
            return None

        if isinstance(requested, SkipAction):
            if state.cursor < state.last_index:
                state.cursor = state.last_index - 1
                return requested.args
            self._finish("skipped_to_end")
            return None

        if isinstance(requested, DoneAction):
            self._finish("done")
            if requested.args and callable(requested.args[0]):
                callback, *rest = requested.args
                callback(*rest)
            return None

        if requested.complete:
            return self._take_fan_out(requested)
        return None

    def _take_fan_out(self, fan_out: FanOut) -> CallbackArgs:
        fan_out.consumed = True
        self._state.fan_out = None
        self._emit(
            "fan_out_resolved",
            mode=fan_out.mode.value,
            callbacks=fan_out.total,
        )
        outcome = collect(fan_out.slots)
        if fan_out.mode is Action.PARALLEL:
            return parallel_args(outcome)
        return group_args(outcome)

    def _defer(self, args: CallbackArgs) -> None:
        state = self._state
        if state.deferred:
            return
        state.deferred = True
        state.deferred_args = args
        self._emit("resumption_deferred")
        assert self._scheduler is not None  # noqa: S101
        self._scheduler.schedule(self._resume_deferred)

    def _resume_deferred(self) -> None:
        state = self._state
        args = state.deferred_args
        state.deferred = False
        state.deferred_args = ()
        self._advance(*args)

    def _finish(self, reason: str) -> None:
        self._state.finished = True
        self._emit("run_finished", reason=reason)

    def _emit(self, event_type: str, **payload: object) -> None:
        if not self._options.trace:
            return
        event = StepEvent(
            timestamp=io_ops.utc_now_iso(),
            event_type=event_type,
            run_id=self._run_id,
            step_index=self._state.cursor,
            payload=payload,
        )
        # Fail-open: a lost trace line never affects the run.
        io_ops.write_stderr(event.to_jsonl() + "\n")


def run_steps(
    *steps: StepFunction | Sequence[StepFunction],
    options: RunOptions | None = None,
) -> None:
    """Run steps in order; accepts one list/tuple or separate callables.

    Each step is called as ``step(flow, *args)`` where ``flow`` is the
    run's StepControl and ``args`` come from the previous step's
    resolution (none for the first step). An empty input does nothing.
    """
    if len(steps) == 1 and isinstance(steps[0], (list, tuple)):
        step_list = list(steps[0])
    else:
        step_list = list(steps)
    StepRunner(step_list, options).start()
