"""
SQLAlchemy changeset adapter.

Responsibility
--------------
Supply the host-record coupling for SQLAlchemy-mapped instances: read the
governed attribute's committed value and its pending value from the
attribute history and package them as a kernel ``Changeset``.  The
kernel validator never touches the ORM instance.

Architecture position
---------------------
**Services layer** -- depends on ``guard_kernel`` and SQLAlchemy.

Invariants enforced
-------------------
* Current value: ``history.deleted[0]`` when the attribute changed,
  otherwise ``history.unchanged[0]``, otherwise ``None`` (new instance).
* Proposed value: ``history.added[0]`` only when the attribute has
  changes; re-assigning the committed value is "no change".
* The instance is never modified and no flush hooks are installed.
* While ``validate_instance`` runs, ``LogContext`` carries the instance's
  class name and primary key; the previous context is restored after.

Failure modes
-------------
* Expired attributes: if the committed value was never loaded before
  assignment, SQLAlchemy does not record it and the current value reads
  as ``None``.  Load the attribute first, keep ``expire_on_commit=False``,
  or map the column with ``active_history=True``.
* ``sqlalchemy.exc.NoInspectionAvailable`` if ``instance`` is not mapped.
"""

from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm.attributes import get_history

from guard_kernel.domain.changeset import Changeset
from guard_kernel.domain.validator import NO_ARG, FieldStateMachine
from guard_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.orm")


def changeset_from_instance(instance: Any, field: str) -> Changeset:
    """Build a ``Changeset`` for ``field`` from the instance's pending state."""
    # history.deleted = committed value being replaced
    # history.added = value assigned since the last flush
    # history.unchanged = committed value when not reassigned
    history = get_history(instance, field)

    if history.deleted:
        current = history.deleted[0]
    elif history.unchanged:
        current = history.unchanged[0]
    else:
        current = None

    changes: dict[str, Any] = {}
    if history.has_changes() and history.added:
        changes[field] = history.added[0]

    return Changeset(data={field: current}, changes=changes)


def record_identity(instance: Any) -> str | None:
    """Primary key of a persistent instance as text; ``None`` before flush."""
    identity = inspect(instance).identity
    if identity is None:
        return None
    return ",".join(str(part) for part in identity)


def validate_instance(
    machine: FieldStateMachine,
    instance: Any,
    arg: Any = NO_ARG,
) -> Changeset:
    """Validate the pending change of ``machine.field`` on an ORM instance.

    Log records emitted while validating carry the instance's
    ``record_type`` and ``record_id``.  Returns the changeset so the
    caller can inspect ``is_valid`` and ``errors`` before flushing.
    """
    with LogContext.bind(
        record_type=type(instance).__name__,
        record_id=record_identity(instance),
    ):
        changeset = changeset_from_instance(instance, machine.field)
        machine.validate_update(changeset, arg)
        if not changeset.is_valid:
            logger.info(
                "orm_transition_rejected",
                extra={
                    "field": machine.field,
                    "error_count": len(changeset.errors),
                },
            )
    return changeset
