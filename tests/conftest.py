"""
Pytest fixtures for the guard kernel test suite.

Provides:
- Structured logging configuration and log capture
- The reference status state machine used across domain tests:

    status_a -> {status_b}   success callback on status_b, error callback
    status_b -> {status_c}   no callbacks
"""

import json
import logging
from io import StringIO
from unittest import mock

import pytest

from guard_kernel.domain import Changeset, FieldStateMachine, TransitionRule
from guard_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture guard_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, status_machine):
            status_machine.validate("status_a", "status_b", Changeset())
            logs = captured_logs()
            assert any(r["message"] == "transition_validated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("guard_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# State machine fixtures
# =============================================================================


@pytest.fixture
def success_callback():
    return mock.Mock(name="status_b_callback")


@pytest.fixture
def error_callback():
    return mock.Mock(name="state_machine_error_callback")


@pytest.fixture
def status_rules(success_callback, error_callback):
    return [
        TransitionRule(
            from_state="status_a",
            to_states=frozenset({"status_b"}),
            on_success={"status_b": success_callback},
            on_error=error_callback,
        ),
        TransitionRule(from_state="status_b", to_states=frozenset({"status_c"})),
    ]


@pytest.fixture
def status_machine(status_rules):
    return FieldStateMachine("status", status_rules)


@pytest.fixture
def make_changeset():
    """Factory mirroring ``Changeset.cast(record, params, ["status", "name"])``."""

    def _make(data: dict, params: dict) -> Changeset:
        return Changeset.cast(data, params, ["status", "name"])

    return _make
