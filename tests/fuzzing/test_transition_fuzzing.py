"""
Hypothesis properties for the transition table and validator.

Generates arbitrary rule sets over a small state alphabet and checks:
- Table keys are exactly the declared sources
- Any present, disallowed ``to`` yields exactly one error naming both states
- Any allowed ``to`` yields no error
- An absent ``to`` leaves the changeset identical to its input
- Repeated calls on fresh changesets agree (no hidden state)
- Exactly one callback fires per call, never both
"""

from __future__ import annotations

import copy
from unittest import mock

from hypothesis import given, settings
from hypothesis import strategies as st

from guard_kernel.domain import Changeset, TransitionRule, build_table, validate_transition

STATES = ("draft", "Open", "closed", "ARCHIVED", "void")

states = st.sampled_from(STATES)
rule_maps = st.dictionaries(keys=states, values=st.frozensets(states), max_size=len(STATES))


def _rules(rule_map: dict[str, frozenset]) -> list[TransitionRule]:
    return [TransitionRule(src, dests) for src, dests in rule_map.items()]


@settings(max_examples=200, deadline=None)
@given(rule_map=rule_maps)
def test_table_keys_are_exactly_the_sources(rule_map):
    table = build_table(_rules(rule_map))
    assert set(table.destinations) == set(rule_map)
    for src, dests in rule_map.items():
        assert table.allowed_destinations(src) == dests


@settings(max_examples=300, deadline=None)
@given(rule_map=rule_maps, from_state=states, to_state=states)
def test_legality_is_set_membership(rule_map, from_state, to_state):
    table = build_table(_rules(rule_map))
    cs = validate_transition(table, "status", from_state, to_state, Changeset())

    if to_state in rule_map.get(from_state, frozenset()):
        assert cs.is_valid
    else:
        assert len(cs.errors) == 1
        assert cs.errors[0].field == "status"
        assert from_state in cs.errors[0].message
        assert to_state in cs.errors[0].message


@settings(max_examples=200, deadline=None)
@given(rule_map=rule_maps, from_state=states, data=st.dictionaries(st.text(max_size=5), st.integers()))
def test_absent_to_leaves_changeset_unchanged(rule_map, from_state, data):
    table = build_table(_rules(rule_map))
    cs = Changeset(data={"status": from_state, **data}, changes={"other": 1})
    before = copy.deepcopy(cs)
    result = validate_transition(table, "status", from_state, None, cs)
    assert result is cs
    assert cs == before


@settings(max_examples=200, deadline=None)
@given(rule_map=rule_maps, from_state=states, to_state=states)
def test_validation_is_idempotent(rule_map, from_state, to_state):
    table = build_table(_rules(rule_map))
    first = validate_transition(table, "status", from_state, to_state, Changeset())
    second = validate_transition(table, "status", from_state, to_state, Changeset())
    assert first == second


@settings(max_examples=200, deadline=None)
@given(rule_map=rule_maps, from_state=states, to_state=states)
def test_at_most_one_callback_fires(rule_map, from_state, to_state):
    success = mock.Mock()
    error = mock.Mock()
    rules = [
        TransitionRule(src, dests, on_success={d: success for d in dests}, on_error=error)
        for src, dests in rule_map.items()
    ]
    cs = validate_transition(build_table(rules), "status", from_state, to_state, Changeset())

    assert success.call_count + error.call_count <= 1
    if cs.is_valid:
        assert error.call_count == 0
        assert success.call_count == 1
    elif from_state in rule_map:
        assert error.call_count == 1
    else:
        assert error.call_count == 0
