"""
Validation context (``guard_kernel.domain.changeset``).

A ``Changeset`` pairs the current state of a record with the changes
proposed for it and accumulates field-level errors.  It is created by the
caller for one update attempt, passed through validation, and handed back;
nothing in the kernel keeps a reference to it afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

INVALID_TRANSITION = "INVALID_TRANSITION"


@dataclass(frozen=True)
class FieldError:
    """
    A single error attached to a field of a changeset.

    Contract:
        Carries the field name, a human-readable message, a machine-readable
        code and optional structured details.

    Guarantees:
        - Immutable (frozen dataclass)
        - code is always present

    Non-goals:
        - Does NOT raise exceptions -- it IS the error representation.
    """

    field: str
    message: str
    code: str = INVALID_TRANSITION
    details: dict[str, Any] | None = None


def _get_attr(data: Any, key: str, default: Any = None) -> Any:
    """Get a value from the record (mapping or object)."""
    if data is None:
        return default
    if isinstance(data, Mapping):
        return data.get(key, default)
    return getattr(data, key, default)


@dataclass
class Changeset:
    """Current record data, proposed changes, and accumulated errors."""

    data: Any = None
    changes: dict[str, Any] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @classmethod
    def cast(
        cls,
        data: Any,
        params: Mapping[str, Any],
        permitted: Iterable[str],
    ) -> Changeset:
        """Build a changeset from raw params, keeping only real changes.

        A permitted key becomes a change only when it is present in
        ``params`` and its value differs from the record's current value.
        """
        changes: dict[str, Any] = {}
        for key in permitted:
            if key not in params:
                continue
            value = params[key]
            if value != _get_attr(data, key):
                changes[key] = value
        return cls(data=data, changes=changes)

    def current(self, field_name: str, default: Any = None) -> Any:
        """Value of ``field_name`` on the record before this update."""
        return _get_attr(self.data, field_name, default)

    def get_change(self, field_name: str, default: Any = None) -> Any:
        return self.changes.get(field_name, default)

    def add_error(
        self,
        field_name: str,
        message: str,
        *,
        code: str = INVALID_TRANSITION,
        details: dict[str, Any] | None = None,
    ) -> Changeset:
        """Append an error for ``field_name``; returns self for chaining."""
        self.errors.append(
            FieldError(field=field_name, message=message, code=code, details=details)
        )
        return self

    def errors_for(self, field_name: str) -> list[FieldError]:
        return [e for e in self.errors if e.field == field_name]

    @property
    def is_valid(self) -> bool:
        return not self.errors
