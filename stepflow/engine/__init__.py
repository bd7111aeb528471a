"""Engine package -- sequential step execution with callback fan-out."""
from stepflow.engine.control import StepControl
from stepflow.engine.runner import StepRunner, run_steps

__all__ = [
    "StepControl",
    "StepRunner",
    "run_steps",
]
