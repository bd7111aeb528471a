"""Tests for FlowError and runner usage errors."""
import dataclasses

import pytest

from stepflow.errors import (
    ActionConflictError,
    FlowError,
    SchedulerError,
    StepControlError,
)
from stepflow.types import Action


def test_flow_error_construction() -> None:
    """FlowError stores all fields correctly."""
    error = FlowError(
        operation="io_ops.write_stderr",
        error_type="StderrWriteError",
        message="broken pipe",
        context={"key": "value"},
    )
    assert error.operation == "io_ops.write_stderr"
    assert error.error_type == "StderrWriteError"
    assert error.message == "broken pipe"
    assert error.context == {"key": "value"}


def test_flow_error_default_context() -> None:
    """FlowError defaults context to empty dict."""
    error = FlowError(operation="op", error_type="Error", message="msg")
    assert error.context == {}


def test_flow_error_is_frozen() -> None:
    """FlowError is an immutable frozen dataclass."""
    error = FlowError(operation="op", error_type="Error", message="msg")
    assert dataclasses.is_dataclass(error)
    with pytest.raises(dataclasses.FrozenInstanceError):
        error.message = "changed"  # type: ignore[misc]


def test_flow_error_to_dict_makes_context_safe() -> None:
    """Non-serializable context values become strings."""
    error = FlowError(
        operation="op",
        error_type="Error",
        message="msg",
        context={"loop": object, "items": (1, "a"), 2: None},
    )
    result = error.to_dict()
    assert result["operation"] == "op"
    assert result["context"] == {
        "loop": str(object),
        "items": [1, "a"],
        "2": None,
    }


def test_flow_error_str_truncates_long_context() -> None:
    """__str__ includes context but truncates it to 500 chars."""
    error = FlowError(
        operation="op",
        error_type="Error",
        message="msg",
        context={"blob": "x" * 1000},
    )
    text = str(error)
    assert text.startswith("FlowError[op] Error: msg | context=")
    assert text.endswith("...")
    assert len(text) < 600


def test_flow_error_str_without_context() -> None:
    """__str__ omits the context part when context is empty."""
    error = FlowError(operation="op", error_type="Error", message="msg")
    assert str(error) == "FlowError[op] Error: msg"


def test_action_conflict_error_names_both_actions() -> None:
    """Message names the attempted and the pending action."""
    error = ActionConflictError(Action.SKIP, Action.NEXT)
    assert error.requested is Action.SKIP
    assert error.pending is Action.NEXT
    assert str(error) == (
        "skip() cannot be used because next() was already invoked."
    )
    assert isinstance(error, RuntimeError)


def test_step_control_error_message() -> None:
    """StepControlError names the operation used out of turn."""
    error = StepControlError(Action.GROUP)
    assert error.requested is Action.GROUP
    assert "group()" in str(error)


def test_scheduler_error_is_runtime_error() -> None:
    """SchedulerError is a RuntimeError subclass."""
    assert issubclass(SchedulerError, RuntimeError)


def test_scheduler_error_carries_flow_error_details() -> None:
    """SchedulerError keeps the FlowError and its JSON-safe form."""
    flow_error = FlowError(
        operation="io_ops.get_running_loop",
        error_type="NoRunningLoopError",
        message="No asyncio event loop is running",
        context={"mode": ("loop",)},
    )
    error = SchedulerError(flow_error)
    assert error.error is flow_error
    assert error.details["context"] == {"mode": ["loop"]}
    assert str(error) == str(flow_error)
