"""
Transition validator (``guard_kernel.domain.validator``).

Responsibility
--------------
Decides whether a proposed change of one field is a legal transition,
dispatches at most one callback, and annotates the caller's changeset
with a ``FieldError`` when the change is rejected.

Architecture position
---------------------
**Kernel domain layer**.  ``validate_transition`` receives already-resolved
``from`` / ``to`` values and never inspects a record.
``FieldStateMachine.validate_update`` is the single seam that reads the
values out of a ``Changeset``.

Invariants enforced
-------------------
* ``to_state is None`` (no change requested) is always legal and runs no
  callback.
* Legality is set membership of ``to_state`` in the allowed set of
  ``from_state``; an unknown ``from_state`` allows nothing.
* Exactly one of {success callback, error callback} runs, at most once.
* An invalid transition appends exactly one error to the changeset; it is
  reported data, never an exception.
* Callback exceptions propagate unmodified.

Failure modes
-------------
* Callback raises -> the exception reaches the caller; for an invalid
  transition the error is NOT appended (the callback runs first).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from guard_kernel.domain.changeset import INVALID_TRANSITION, Changeset
from guard_kernel.domain.table import TransitionTable, build_table
from guard_kernel.domain.transition import (
    ERROR_CALLBACK_KEY,
    Callback,
    State,
    TransitionRule,
    callback_key,
    state_label,
)
from guard_kernel.logging_config import get_logger

logger = get_logger("domain.validator")

ContextT = TypeVar("ContextT")

OUTCOME_NO_CHANGE = "no_change"
OUTCOME_VALID = "valid"
OUTCOME_INVALID = "invalid"


class _NoArg:
    """Marker type for "no extra callback argument supplied"."""

    _instance: _NoArg | None = None

    def __new__(cls) -> _NoArg:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_ARG"

    def __bool__(self) -> bool:
        return False


NO_ARG = _NoArg()


def invalid_transition_message(field: str, from_state: State, to_state: State) -> str:
    return (
        f"Invalid update for {field}. Wanted to transition from "
        f"{state_label(from_state)} to {state_label(to_state)} for the field {field}."
    )


def _invoke(callback: Callback | None, context: Any, arg: Any) -> None:
    if callback is None:
        return
    if arg is NO_ARG:
        callback(context)
    else:
        callback(context, arg)


def _emit_trace(
    field: str,
    from_state: State,
    to_state: State | None,
    outcome: str,
    callback_name: str | None,
) -> None:
    level = {
        OUTCOME_NO_CHANGE: logging.DEBUG,
        OUTCOME_VALID: logging.INFO,
        OUTCOME_INVALID: logging.WARNING,
    }[outcome]
    logger.log(
        level,
        "transition_validated",
        extra={
            "field": field,
            "from_state": state_label(from_state),
            "to_state": state_label(to_state) if to_state is not None else None,
            "outcome": outcome,
            "callback": callback_name,
        },
    )


def validate_transition(
    table: TransitionTable | Iterable[TransitionRule],
    field: str,
    from_state: State,
    to_state: State | None,
    context: ContextT,
    arg: Any = NO_ARG,
) -> ContextT:
    """Validate ``from_state -> to_state`` for ``field`` and annotate ``context``.

    ``table`` should be built once and reused; a plain rule sequence is
    accepted and compiled on every call.  ``context`` must provide
    ``add_error(field, message, *, code, details)`` (``Changeset`` does).
    ``arg``, when supplied, is passed to the selected callback as its
    second positional argument; ``None`` is a valid ``arg``.

    Returns ``context`` itself.
    """
    if to_state is None:
        _emit_trace(field, from_state, None, OUTCOME_NO_CHANGE, None)
        return context

    if not isinstance(table, TransitionTable):
        table = build_table(table)

    rule = table.rule_for(from_state)

    if table.is_allowed(from_state, to_state):
        callback = rule.success_callback(to_state) if rule is not None else None
        _emit_trace(
            field,
            from_state,
            to_state,
            OUTCOME_VALID,
            callback_key(to_state) if callback is not None else None,
        )
        _invoke(callback, context, arg)
        return context

    callback = rule.callback_for(ERROR_CALLBACK_KEY) if rule is not None else None
    _emit_trace(
        field,
        from_state,
        to_state,
        OUTCOME_INVALID,
        ERROR_CALLBACK_KEY if callback is not None else None,
    )
    _invoke(callback, context, arg)
    context.add_error(
        field,
        invalid_transition_message(field, from_state, to_state),
        code=INVALID_TRANSITION,
        details={
            "from_state": state_label(from_state),
            "to_state": state_label(to_state),
        },
    )
    return context


class FieldStateMachine:
    """State machine guarding updates of one field.

    Built once per governed field (at import or application start-up) and
    reused for every update::

        STATUS_MACHINE = FieldStateMachine("status", [
            TransitionRule("draft", {"submitted"}, on_success={"submitted": notify}),
            TransitionRule("submitted", {"approved", "rejected"}, on_error=alert),
        ])

        changeset = Changeset.cast(invoice, params, ["status", "name"])
        STATUS_MACHINE.validate_update(changeset)
        if not changeset.is_valid:
            ...

    Raises ``DuplicateTransitionSourceError`` at construction if two rules
    share a source state.
    """

    def __init__(self, field: str, rules: Iterable[TransitionRule]) -> None:
        self._field = field
        self._table = build_table(rules)

    @classmethod
    def from_declarations(
        cls,
        field: str,
        declarations: Iterable[Mapping[str, Any]],
    ) -> FieldStateMachine:
        """Build from ``{"from": ..., "to": [...], "<to>_callback": fn}`` maps."""
        return cls(field, [TransitionRule.from_declaration(d) for d in declarations])

    @property
    def field(self) -> str:
        return self._field

    @property
    def table(self) -> TransitionTable:
        return self._table

    def allowed_destinations(self, from_state: State) -> frozenset:
        return self._table.allowed_destinations(from_state)

    def validate(
        self,
        from_state: State,
        to_state: State | None,
        context: ContextT,
        arg: Any = NO_ARG,
    ) -> ContextT:
        return validate_transition(
            self._table, self._field, from_state, to_state, context, arg
        )

    def validate_update(self, changeset: Changeset, arg: Any = NO_ARG) -> Changeset:
        """Validate the change of this machine's field carried by ``changeset``."""
        return self.validate(
            changeset.current(self._field),
            changeset.get_change(self._field),
            changeset,
            arg,
        )

    def __repr__(self) -> str:
        return f"FieldStateMachine(field={self._field!r}, rules={len(self._table)})"
