"""Shared type definitions for the stepflow runner."""
from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

DeferMode = Literal["auto", "loop", "trampoline"]

CallbackArgs = tuple[object, ...]

StepFunction = Callable[..., object]


class Action(Enum):
    """Action a step requested during its turn.

    Values are the control operation names, used in error messages.
    """

    NONE = "none"
    NEXT = "next"
    SKIP = "skip"
    DONE = "done"
    PARALLEL = "parallel"
    GROUP = "group"


@dataclass(frozen=True)
class NoAction:
    """Nothing requested: the runner advances synchronously."""

    action: Action = field(default=Action.NONE, init=False)


@dataclass(frozen=True)
class NextAction:
    """A next() handle was handed out; wait for it."""

    action: Action = field(default=Action.NEXT, init=False)


@dataclass(frozen=True)
class SkipAction:
    """Jump to the last step with the captured arguments."""

    args: CallbackArgs = ()
    action: Action = field(default=Action.SKIP, init=False)


@dataclass(frozen=True)
class DoneAction:
    """End the run, optionally calling args[0] with args[1:]."""

    args: CallbackArgs = ()
    action: Action = field(default=Action.DONE, init=False)


@dataclass
class FanOut:
    """Callback slots registered by parallel() or group() in one step.

    Slots are indexed by registration order and hold None until the
    matching handle resolves. ``consumed`` flips once the aggregated
    arguments were handed to the next step.
    """

    mode: Literal[Action.PARALLEL, Action.GROUP]
    slots: list[CallbackArgs | None] = field(
        default_factory=lambda: [None],
    )
    resolved: int = 0
    consumed: bool = False

    @property
    def action(self) -> Action:
        return self.mode

    @property
    def total(self) -> int:
        return len(self.slots)

    @property
    def complete(self) -> bool:
        return self.resolved == self.total

    def add_slot(self) -> int:
        """Register one more callback slot and return its index."""
        self.slots.append(None)
        return len(self.slots) - 1


PendingAction = Union[NoAction, NextAction, SkipAction, DoneAction, FanOut]

NO_ACTION = NoAction()


@dataclass(frozen=True)
class StepEvent:
    """Structured runner event for JSONL trace output."""

    timestamp: str
    event_type: str
    run_id: str
    step_index: int
    payload: dict[str, object] = field(
        default_factory=dict,
    )

    def to_jsonl(self) -> str:
        """Serialize to single-line JSON for JSONL format."""
        return json.dumps(
            asdict(self), separators=(",", ":"), default=str,
        )


class RunOptions(BaseModel):
    """Per-run configuration for the step runner."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    defer_mode: DeferMode = "auto"
    trace: bool = False
    run_id: str | None = None
