"""I/O boundary module -- ALL external I/O goes through here.

This is the single mock point for the test suite. The runner
never touches stderr, the clock or the event loop directly.
"""
from __future__ import annotations

import asyncio
import secrets
import sys
from datetime import UTC, datetime

from returns.io import IOFailure, IOResult, IOSuccess

from stepflow.errors import FlowError


def write_stderr(
    message: str,
) -> IOResult[None, FlowError]:
    """Write message to stderr (fail-open trace output).

    Returns IOSuccess(None) or IOFailure on error.
    """
    try:
        sys.stderr.write(message)
    except (OSError, ValueError) as exc:
        return IOFailure(
            FlowError(
                operation="io_ops.write_stderr",
                error_type="StderrWriteError",
                message=(
                    f"Failed to write to stderr: {exc}"
                ),
                context={
                    "original_message": message,
                },
            ),
        )
    return IOSuccess(None)


def get_running_loop() -> IOResult[asyncio.AbstractEventLoop, FlowError]:
    """Return the running asyncio loop. Returns IOResult, never raises."""
    try:
        return IOSuccess(asyncio.get_running_loop())
    except RuntimeError:
        return IOFailure(
            FlowError(
                operation="io_ops.get_running_loop",
                error_type="NoRunningLoopError",
                message="No asyncio event loop is running",
            ),
        )


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(tz=UTC).isoformat()


def new_run_id() -> str:
    """Generate a run identifier for trace records."""
    ts = datetime.now(tz=UTC).strftime("%Y%m%d%H%M%S")
    return f"run-{ts}-{secrets.token_hex(4)}"
