"""
Transition rule types (``guard_kernel.domain.transition``).

Responsibility
--------------
Pure value objects for a single-field state machine: the declarative
``TransitionRule`` and the helpers that turn a state into its display
label and its callback lookup key.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``guard_config``, ``guard_services`` or third-party libraries.

Invariants enforced
-------------------
* State identity (equality, set membership) always uses the raw state.
* Callback keys are ``callback_key(state)``: the lower-cased label.
  ``"Status_B"`` and ``status_b_callback`` both resolve to ``status_b``.
* ``on_success`` keys are normalized at construction and read-only; two
  keys that normalize to the same callback key are rejected.
* Unhashable values are never states: ``allows`` answers False for them.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from guard_kernel.exceptions import InvalidTransitionRuleError

State = Hashable
Callback = Callable[..., Any]

ERROR_CALLBACK_KEY = "state_machine_error"
CALLBACK_SUFFIX = "_callback"


def state_label(state: Any) -> str:
    """Human-readable form of a state.

    Enum members render as their string value, or their name when the
    value is not a string.  Everything else renders with ``str()``.
    """
    if isinstance(state, Enum):
        return state.value if isinstance(state.value, str) else state.name
    return str(state)


def is_hashable(value: Any) -> bool:
    """True if ``value`` can be a state (set member / mapping key)."""
    try:
        hash(value)
    except TypeError:
        return False
    return True


def callback_key(state: Any) -> str:
    """Normalized key under which callbacks for ``state`` are registered."""
    return state_label(state).lower()


@dataclass(frozen=True)
class TransitionRule:
    """All legal destinations from one source state, plus its callbacks.

    Contract: frozen.  ``to_states`` is a frozenset; empty sets and
    self-transitions are permitted.  ``on_success`` maps a destination's
    callback key to the callable run when that destination is reached.
    ``on_error`` runs when a change away from ``from_state`` is rejected.
    Non-goals: does not check that destinations are declared elsewhere.
    """

    from_state: State
    to_states: frozenset = frozenset()
    on_success: Mapping[str, Callback] = field(default_factory=dict, hash=False)
    on_error: Callback | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.to_states, frozenset):
            object.__setattr__(self, "to_states", frozenset(self.to_states))
        normalized: dict[str, Callback] = {}
        for key, callback in self.on_success.items():
            normalized_key = callback_key(key)
            if normalized_key in normalized:
                raise InvalidTransitionRuleError(
                    f"success callbacks {key!r} and another key both "
                    f"normalize to {normalized_key!r}"
                )
            normalized[normalized_key] = callback
        object.__setattr__(self, "on_success", MappingProxyType(normalized))

    def allows(self, to_state: State) -> bool:
        return is_hashable(to_state) and to_state in self.to_states

    def success_callback(self, to_state: State) -> Callback | None:
        return self.on_success.get(callback_key(to_state))

    def callback_for(self, key: Any) -> Callback | None:
        """Look up a callback by destination or by ``ERROR_CALLBACK_KEY``."""
        normalized = callback_key(key)
        if normalized == ERROR_CALLBACK_KEY:
            return self.on_error
        return self.on_success.get(normalized)

    @classmethod
    def from_declaration(cls, declaration: Mapping[str, Any]) -> TransitionRule:
        """Build a rule from the declarative keyword form.

        Example::

            TransitionRule.from_declaration({
                "from": "status_a",
                "to": ["status_b"],
                "status_b_callback": notify_b,
                "state_machine_error_callback": alert,
            })

        Every ``<destination>_callback`` key registers a success callback;
        ``state_machine_error_callback`` registers the error callback.

        Raises:
            InvalidTransitionRuleError: ``from``/``to`` missing, ``to`` not
                iterable, a callback is not callable, or an unknown key.
        """
        if "from" not in declaration:
            raise InvalidTransitionRuleError("missing 'from'", declaration)
        if "to" not in declaration:
            raise InvalidTransitionRuleError("missing 'to'", declaration)

        to_states = declaration["to"]
        if isinstance(to_states, (str, bytes)) or not isinstance(to_states, Iterable):
            raise InvalidTransitionRuleError(
                f"'to' must be a collection of states, got {to_states!r}",
                declaration,
            )

        on_success: dict[str, Callback] = {}
        on_error: Callback | None = None
        for key, value in declaration.items():
            if key in ("from", "to"):
                continue
            if not isinstance(key, str) or not key.endswith(CALLBACK_SUFFIX):
                raise InvalidTransitionRuleError(f"unknown key {key!r}", declaration)
            if not callable(value):
                raise InvalidTransitionRuleError(
                    f"{key!r} is not callable: {value!r}", declaration
                )
            target = key[: -len(CALLBACK_SUFFIX)]
            if callback_key(target) == ERROR_CALLBACK_KEY:
                on_error = value
            else:
                on_success[target] = value

        return cls(
            from_state=declaration["from"],
            to_states=frozenset(to_states),
            on_success=on_success,
            on_error=on_error,
        )
