"""Error types for the stepflow runner."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepflow.types import Action


@dataclass(frozen=True)
class FlowError:
    """Structured error for failures at the I/O boundary."""

    operation: str
    error_type: str
    message: str
    context: dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        """Return plain dict suitable for JSON serialization.

        Non-serializable context values are converted to string representations.
        """
        data = asdict(self)

        def make_safe(obj: object) -> object:
            if isinstance(obj, (str, int, float, bool, type(None))):
                return obj
            if isinstance(obj, (list, tuple)):
                return [make_safe(x) for x in obj]
            if isinstance(obj, dict):
                return {str(k): make_safe(v) for k, v in obj.items()}
            return str(obj)

        data["context"] = make_safe(self.context)
        return data

    def __str__(self) -> str:
        """Human-readable error representation for trace output."""
        max_len = 500
        base = f"FlowError[{self.operation}] {self.error_type}: {self.message}"
        if self.context:
            ctx_str = str(self.context)
            if len(ctx_str) > max_len:
                ctx_str = ctx_str[: max_len - 3] + "..."
            base += f" | context={ctx_str}"
        return base


class ActionConflictError(RuntimeError):
    """A step requested an action while another one is pending."""

    def __init__(self, requested: Action, pending: Action) -> None:
        self.requested = requested
        self.pending = pending
        super().__init__(
            f"{requested.value}() cannot be used because"
            f" {pending.value}() was already invoked."
        )


class SchedulerError(RuntimeError):
    """The requested deferral primitive is unavailable.

    ``details`` is the JSON-safe form of the underlying FlowError.
    """

    def __init__(self, error: FlowError) -> None:
        self.error = error
        self.details = error.to_dict()
        super().__init__(str(error))


class StepControlError(RuntimeError):
    """A control operation was used while no step is executing."""

    def __init__(self, requested: Action) -> None:
        self.requested = requested
        super().__init__(
            f"{requested.value}() can only be used while a step is running."
        )
