"""
Pure domain layer.

This package contains the transition rules, the compiled transition
table, the changeset validation context and the validator, with NO
dependencies on:
- ORM (SQLAlchemy)
- Configuration files (YAML)
- I/O

Rules and tables are immutable and deterministic.
"""

from guard_kernel.domain.changeset import INVALID_TRANSITION, Changeset, FieldError
from guard_kernel.domain.table import (
    TransitionTable,
    allowed_destinations,
    build_table,
)
from guard_kernel.domain.transition import (
    CALLBACK_SUFFIX,
    ERROR_CALLBACK_KEY,
    Callback,
    State,
    TransitionRule,
    callback_key,
    is_hashable,
    state_label,
)
from guard_kernel.domain.validator import (
    NO_ARG,
    FieldStateMachine,
    invalid_transition_message,
    validate_transition,
)

__all__ = [
    "CALLBACK_SUFFIX",
    "Callback",
    "Changeset",
    "ERROR_CALLBACK_KEY",
    "FieldError",
    "FieldStateMachine",
    "INVALID_TRANSITION",
    "NO_ARG",
    "State",
    "TransitionRule",
    "TransitionTable",
    "allowed_destinations",
    "build_table",
    "callback_key",
    "is_hashable",
    "invalid_transition_message",
    "state_label",
    "validate_transition",
]
