"""
Transition table (``guard_kernel.domain.table``).

Responsibility
--------------
Compiles an ordered sequence of ``TransitionRule`` into an immutable
lookup structure: source state -> allowed destinations, and source
state -> the rule that declared it (for callback lookup).

Architecture position
---------------------
**Kernel domain layer**.  ZERO I/O apart from a DEBUG log line on build.

Invariants enforced
-------------------
* One rule per source state.  A repeated ``from`` raises
  ``DuplicateTransitionSourceError`` at build time.
* The table's keys are exactly the rules' ``from`` states, each mapped to
  exactly that rule's ``to_states``.
* An unknown or unhashable source has an empty allowed set, and an
  unhashable destination is never allowed.
* Destination sets are not validated: empty sets, self-transitions and
  destinations that are never a source are all accepted.

Thread safety
-------------
A built table is never mutated; it may be shared by any number of
concurrent callers without locking.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from guard_kernel.domain.transition import State, TransitionRule, is_hashable
from guard_kernel.exceptions import DuplicateTransitionSourceError
from guard_kernel.logging_config import get_logger

logger = get_logger("domain.table")

_NO_DESTINATIONS: frozenset = frozenset()


@dataclass(frozen=True)
class TransitionTable:
    """Compiled, read-only transition lookup for one governed field."""

    rules: tuple[TransitionRule, ...]
    destinations: Mapping[State, frozenset] = field(repr=False, compare=False)
    _by_source: Mapping[State, TransitionRule] = field(repr=False, compare=False)

    @property
    def sources(self) -> tuple[State, ...]:
        return tuple(rule.from_state for rule in self.rules)

    def allowed_destinations(self, from_state: State) -> frozenset:
        if not is_hashable(from_state):
            return _NO_DESTINATIONS
        return self.destinations.get(from_state, _NO_DESTINATIONS)

    def rule_for(self, from_state: State) -> TransitionRule | None:
        if not is_hashable(from_state):
            return None
        return self._by_source.get(from_state)

    def is_allowed(self, from_state: State, to_state: State) -> bool:
        return is_hashable(to_state) and to_state in self.allowed_destinations(from_state)

    def __contains__(self, from_state: object) -> bool:
        return is_hashable(from_state) and from_state in self._by_source

    def __len__(self) -> int:
        return len(self.rules)


def build_table(rules: Iterable[TransitionRule]) -> TransitionTable:
    """Compile rules into a ``TransitionTable``.

    Preconditions:
        - Each rule's ``from_state`` is hashable and unique.
    Postconditions:
        - ``table.allowed_destinations(r.from_state) == r.to_states`` for
          every rule ``r``.
    Raises:
        DuplicateTransitionSourceError: two rules share a ``from_state``.
    """
    ordered = tuple(rules)
    by_source: dict[State, TransitionRule] = {}
    first_index: dict[State, int] = {}

    for index, rule in enumerate(ordered):
        if rule.from_state in by_source:
            raise DuplicateTransitionSourceError(
                rule.from_state, first_index[rule.from_state], index
            )
        by_source[rule.from_state] = rule
        first_index[rule.from_state] = index

    destinations = {source: rule.to_states for source, rule in by_source.items()}

    logger.debug(
        "transition_table_built",
        extra={"rule_count": len(ordered)},
    )

    return TransitionTable(
        rules=ordered,
        destinations=MappingProxyType(destinations),
        _by_source=MappingProxyType(by_source),
    )


def allowed_destinations(table: TransitionTable, from_state: State) -> frozenset:
    """Allowed ``to`` states for ``from_state``; empty when it has no rule."""
    return table.allowed_destinations(from_state)
