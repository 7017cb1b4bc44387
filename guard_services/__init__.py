"""
guard_services -- Integrations between the guard kernel and host records.

Responsibility:
    Adapters that extract the current and proposed value of a governed
    field from a host record and hand them to the kernel as a
    ``Changeset``.

Architecture position:
    Services -- depends on guard_kernel and SQLAlchemy.

    Dependency direction (enforced by tests/architecture/test_import_boundaries.py):
        guard_services/ -> guard_kernel/   (allowed)
        guard_kernel/   -> guard_services/ (FORBIDDEN)
"""

from guard_services.orm import changeset_from_instance, record_identity, validate_instance

__all__ = [
    "changeset_from_instance",
    "record_identity",
    "validate_instance",
]
