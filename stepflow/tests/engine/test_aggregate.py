"""Tests for fan-out aggregation (collect, parallel_args, group_args)."""
from __future__ import annotations

from returns.result import Failure, Success

from stepflow.engine.aggregate import (
    FanOutFailure,
    collect,
    group_args,
    parallel_args,
)


class TestCollect:
    """Tests for collect."""

    def test_no_errors_is_success(self) -> None:
        """Slots without truthy errors fold into Success(values)."""
        outcome = collect([(None, 1), (None, 2)])
        assert outcome == Success([1, 2])

    def test_first_truthy_error_in_registration_order(self) -> None:
        """The earliest registered truthy error wins."""
        outcome = collect([
            (None, "v1"),
            (None, "v2"),
            ("E3", "v3"),
            ("E4", "v4"),
        ])
        assert outcome == Failure(
            FanOutFailure(error="E3", values=["v1", "v2", "v3", "v4"]),
        )

    def test_falsy_errors_are_not_errors(self) -> None:
        """0, empty string and False do not count as errors."""
        outcome = collect([(0, "a"), ("", "b"), (False, "c")])
        assert outcome == Success(["a", "b", "c"])

    def test_missing_positions_read_as_none(self) -> None:
        """Callbacks invoked with fewer than two args contribute None."""
        outcome = collect([(), ("E",), None])
        assert outcome == Failure(
            FanOutFailure(error="E", values=[None, None, None]),
        )

    def test_extra_arguments_are_ignored(self) -> None:
        """Only the second argument of each callback is kept."""
        outcome = collect([(None, 1, 2, 3)])
        assert outcome == Success([1])


class TestParallelArgs:
    """Tests for parallel_args."""

    def test_success_spreads_values_after_none(self) -> None:
        """Success becomes (None, v1, ..., vN)."""
        assert parallel_args(Success([1, 2, 3])) == (None, 1, 2, 3)

    def test_failure_spreads_values_after_error(self) -> None:
        """Failure becomes (error, v1, ..., vN)."""
        outcome = Failure(FanOutFailure(error="E", values=[1, 2]))
        assert parallel_args(outcome) == ("E", 1, 2)


class TestGroupArgs:
    """Tests for group_args."""

    def test_success_keeps_values_in_one_list(self) -> None:
        """Success becomes exactly (None, [v1, ..., vN])."""
        assert group_args(Success([1, 2, 3])) == (None, [1, 2, 3])

    def test_failure_keeps_values_in_one_list(self) -> None:
        """Failure becomes exactly (error, [v1, ..., vN])."""
        outcome = Failure(FanOutFailure(error="E", values=[1, 2]))
        assert group_args(outcome) == ("E", [1, 2])
