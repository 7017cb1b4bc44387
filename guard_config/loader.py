"""
Declaration Loader (``guard_config.loader``).

Responsibility
--------------
Loads YAML state machine declarations and parses them into kernel
``TransitionRule`` / ``FieldStateMachine`` instances, resolving callback
references of the form ``"package.module:attribute"`` to callables.

Architecture position
---------------------
**Config layer**.  Depends on ``guard_kernel``; the kernel never imports
this package.  The public entry point is
``guard_config.load_state_machine()``.

Declaration format
------------------
::

    field: status
    transitions:
      - from: draft
        to: [submitted]
        submitted_callback: myapp.hooks:on_submitted
        state_machine_error_callback: myapp.hooks:on_rejected_change
      - from: submitted
        to: [approved, rejected]

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``field`` key  -> ``KeyError`` propagates.
* Unresolvable callback  -> ``CallbackResolutionError``.
* Malformed rule, or a state YAML read as a boolean or null
  -> ``InvalidTransitionRuleError``.
* Repeated ``from``  -> ``DuplicateTransitionSourceError``.
"""

from __future__ import annotations

import hashlib
import importlib
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from guard_kernel.domain.transition import CALLBACK_SUFFIX, TransitionRule
from guard_kernel.domain.validator import FieldStateMachine
from guard_kernel.exceptions import CallbackResolutionError, InvalidTransitionRuleError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (possibly empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def resolve_callback(reference: Any) -> Callable[..., Any]:
    """
    Resolve ``"package.module:attr.path"`` to the callable it names.

    Callables are returned unchanged so declarations built in Python can
    mix references and functions.

    Raises:
        CallbackResolutionError: malformed reference, import failure,
            missing attribute, or target not callable.
    """
    if callable(reference):
        return reference
    if not isinstance(reference, str) or ":" not in reference:
        raise CallbackResolutionError(
            str(reference), "expected 'package.module:attribute'"
        )

    module_name, _, attr_path = reference.partition(":")
    if not module_name or not attr_path:
        raise CallbackResolutionError(
            reference, "expected 'package.module:attribute'"
        )

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise CallbackResolutionError(reference, f"cannot import {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise CallbackResolutionError(
                reference, f"{part!r} not found in {module_name!r}"
            ) from e

    if not callable(target):
        raise CallbackResolutionError(reference, "target is not callable")
    return target


def _check_yaml_state(value: Any, where: str, data: dict[str, Any]) -> None:
    # YAML 1.1 reads bare on/off/yes/no/null as booleans or null
    if value is None or isinstance(value, bool):
        raise InvalidTransitionRuleError(
            f"{where} parsed as {value!r}; quote states such as "
            f"'on', 'off', 'yes', 'no' and 'null' in YAML",
            data,
        )


def parse_rule(data: dict[str, Any]) -> TransitionRule:
    """
    Parse one ``TransitionRule`` from a declaration dict.

    Every ``*_callback`` value is resolved with ``resolve_callback``;
    the result is handed to ``TransitionRule.from_declaration``.

    Raises:
        InvalidTransitionRuleError: ``data`` is not a mapping, or a
            ``from`` / ``to`` state loaded as a boolean or null.
    """
    if not isinstance(data, dict):
        raise InvalidTransitionRuleError(
            f"expected a mapping, got {type(data).__name__}", data
        )
    if "from" in data:
        _check_yaml_state(data["from"], "'from'", data)
    if isinstance(data.get("to"), list):
        for state in data["to"]:
            _check_yaml_state(state, "'to' entry", data)

    resolved = {
        key: (
            resolve_callback(value)
            if isinstance(key, str) and key.endswith(CALLBACK_SUFFIX)
            else value
        )
        for key, value in data.items()
    }
    return TransitionRule.from_declaration(resolved)


def parse_state_machine(data: dict[str, Any]) -> FieldStateMachine:
    """
    Parse a ``FieldStateMachine`` from a declaration dict.

    Preconditions:
        - ``data`` contains ``field``; ``transitions`` defaults to empty.
    Postconditions:
        - Rules keep their declaration order.
    Raises:
        KeyError: if ``field`` is missing.
    """
    field_name = data["field"]
    rules = [parse_rule(item) for item in data.get("transitions") or ()]
    return FieldStateMachine(field_name, rules)


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
