"""
Guard Kernel

A declarative transition guard for a single field of a mutable record:
- Transition tables compiled once from declarative rules
- Validate-and-annotate semantics (invalid transitions become field errors)
- Success / error callback dispatch per destination
- Structured JSON logging
"""

__version__ = "0.1.0"
