"""
Typed Exception Hierarchy for the Guard Kernel.

===============================================================================
WHAT IS (AND IS NOT) AN EXCEPTION
===============================================================================

An invalid transition is NOT an exception. It is an expected outcome and is
reported as data: a ``FieldError`` appended to the caller's changeset.

Exceptions are reserved for configuration faults, detected when a state
machine is declared or loaded, long before any record is validated:

    try:
        machine = FieldStateMachine("status", rules)
    except DuplicateTransitionSourceError as e:
        log.error(f"status declared twice from {e.from_state!r}")

Faults raised by user callbacks are not translated. They propagate to the
caller exactly as raised.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TransitionGuardError (base)
    |
    +-- ConfigurationError
        +-- DuplicateTransitionSourceError
        +-- InvalidTransitionRuleError
        +-- CallbackResolutionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                          | When Raised
------------------------------|------------------------------------------------
DUPLICATE_TRANSITION_SOURCE   | Two rules share the same ``from`` state
INVALID_TRANSITION_RULE       | Declaration missing ``from``/``to`` or has an
                              | unknown key
CALLBACK_RESOLUTION_FAILED    | ``module:attr`` callback reference cannot be
                              | imported or is not callable
INVALID_TRANSITION            | (not raised) code carried by the FieldError
                              | attached to a changeset
"""

from typing import Any


class TransitionGuardError(Exception):
    """
    Base exception for all guard kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TRANSITION_GUARD_ERROR"


class ConfigurationError(TransitionGuardError):
    """Base exception for state machine declaration errors."""

    code: str = "CONFIGURATION_ERROR"


class DuplicateTransitionSourceError(ConfigurationError):
    """
    More than one rule declares the same ``from`` state.

    All destinations for a source must be declared in a single rule.
    """

    code: str = "DUPLICATE_TRANSITION_SOURCE"

    def __init__(self, from_state: Any, first_index: int, duplicate_index: int):
        self.from_state = from_state
        self.first_index = first_index
        self.duplicate_index = duplicate_index
        super().__init__(
            f"Duplicate transition source {from_state!r}: declared by rule "
            f"{first_index} and again by rule {duplicate_index}"
        )


class InvalidTransitionRuleError(ConfigurationError):
    """A rule declaration is structurally malformed."""

    code: str = "INVALID_TRANSITION_RULE"

    def __init__(self, reason: str, declaration: Any = None):
        self.reason = reason
        self.declaration = declaration
        super().__init__(f"Invalid transition rule: {reason}")


class CallbackResolutionError(ConfigurationError):
    """A callback reference could not be resolved to a callable."""

    code: str = "CALLBACK_RESOLUTION_FAILED"

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Cannot resolve callback {reference!r}: {reason}")
