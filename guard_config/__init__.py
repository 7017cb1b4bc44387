"""
guard_config -- YAML declarations for field state machines.

Responsibility:
    Turns a YAML declaration file into a ready ``FieldStateMachine``
    through ``load_state_machine()``.  State machines can equally be
    declared in Python with ``guard_kernel.domain``; this package only
    adds the file format and callback reference resolution.

Architecture position:
    Configuration layer above ``guard_kernel``.  The kernel MUST NEVER
    import from ``guard_config``.

Failure modes:
    - ``FileNotFoundError`` / ``yaml.YAMLError`` -- unreadable file.
    - ``KeyError`` -- declaration has no ``field``.
    - ``ConfigurationError`` subclasses -- malformed rules, duplicate
      sources, unresolvable callbacks.

Audit relevance:
    Every successful load emits a ``state_machine_loaded`` log entry with
    the source path, field, rule count and the declaration checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from guard_config.loader import compute_checksum, load_yaml_file, parse_state_machine
from guard_kernel.domain.validator import FieldStateMachine

_logger = logging.getLogger("guard_kernel.config")


def load_state_machine(path: Path | str) -> FieldStateMachine:
    """Load a ``FieldStateMachine`` from a YAML declaration file.

    Contract:
        Load once at start-up and keep the returned machine; it is
        immutable and safe to share.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        KeyError: If the declaration has no ``field``.
        ConfigurationError: If a rule is malformed, a source is declared
            twice, or a callback cannot be resolved.
    """
    path = Path(path)
    data = load_yaml_file(path)
    machine = parse_state_machine(data)

    _logger.info(
        "state_machine_loaded",
        extra={
            "source": str(path),
            "field": machine.field,
            "rule_count": len(machine.table),
            "checksum": compute_checksum(data),
        },
    )
    return machine


__all__ = ["load_state_machine"]
