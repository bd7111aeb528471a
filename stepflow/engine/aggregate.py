"""Fan-out aggregation -- pure functions over resolved callback slots.

Callbacks follow the error-first convention: the first argument is an
optional error, the second the value. collect() folds the slots into a
Result; parallel_args() and group_args() turn that Result back into the
positional arguments the next step receives. Steps never see the Result.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from returns.result import Failure, Result, Success

from stepflow.types import CallbackArgs


@dataclass(frozen=True)
class FanOutFailure:
    """First truthy error of a fan-out plus every callback value."""

    error: object
    values: list[object] = field(default_factory=list)


def _arg(args: CallbackArgs | None, position: int) -> object:
    if args is None or len(args) <= position:
        return None
    return args[position]


def collect(
    slots: Sequence[CallbackArgs | None],
) -> Result[list[object], FanOutFailure]:
    """Fold callback slots in registration order.

    The error is the first truthy first argument scanning slots in
    registration order, not resolution order.
    """
    error: object = None
    values: list[object] = []
    for args in slots:
        candidate = _arg(args, 0)
        if error is None and candidate:
            error = candidate
        values.append(_arg(args, 1))

    if error is None:
        return Success(values)
    return Failure(FanOutFailure(error=error, values=values))


def _split(
    outcome: Result[list[object], FanOutFailure],
) -> tuple[object, list[object]]:
    if isinstance(outcome, Success):
        return None, outcome.unwrap()
    failure = outcome.failure()
    return failure.error, failure.values


def parallel_args(
    outcome: Result[list[object], FanOutFailure],
) -> tuple[object, ...]:
    """Spread values: (error, v1, ..., vN)."""
    error, values = _split(outcome)
    return (error, *values)


def group_args(
    outcome: Result[list[object], FanOutFailure],
) -> tuple[object, list[object]]:
    """Keep values together: (error, [v1, ..., vN])."""
    return _split(outcome)
