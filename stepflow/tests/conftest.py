"""Shared test fixtures for stepflow test suite."""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stepflow.types import RunOptions

if TYPE_CHECKING:
    from unittest.mock import MagicMock


@pytest.fixture
def trace_options() -> RunOptions:
    """Return RunOptions with tracing on and a fixed run id."""
    return RunOptions(trace=True, run_id="run-test")


@pytest.fixture
def mock_write_stderr(mocker: MagicMock) -> MagicMock:
    """Return a mocked io_ops.write_stderr for trace assertions."""
    return mocker.patch("stepflow.io_ops.write_stderr")  # type: ignore[no-any-return]
