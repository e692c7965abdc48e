"""
Typed Exception Hierarchy for the Fee Kernel.

===============================================================================
SCOPE
===============================================================================

The pure fee engines do NOT raise for recoverable data problems: an empty
fee-scale table, a missing bracket, a NaN cost or an unknown discipline are
all recovered locally and logged.  The exceptions below belong to the edges
of the system:

  - reading a snapshot whose shape is wrong (service boundary)
  - building reference tables that violate their ordering invariants
  - applying proposal commands to ids that do not exist
  - loading configuration sets and importing fee-scale spreadsheets

Every exception carries a class-level ``code`` (machine-readable) and keeps
its context as attributes so it survives structured logging.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FeeKernelError (base)
    |
    +-- SnapshotError
    |   +-- MalformedSnapshotError
    |
    +-- ReferenceTableError
    |   +-- FeeScaleOrderError
    |   +-- InvalidDuplicateRateError
    |
    +-- ProposalCommandError
    |   +-- StructureNotFoundError
    |   +-- ServiceNotFoundError
    |   +-- SpaceNotFoundError
    |   +-- DuplicateRenameError
    |
    +-- ConfigurationError
    |   +-- ReferenceSetNotFoundError
    |
    +-- IngestionError
        +-- FeeScaleImportError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Snapshot        | MALFORMED_SNAPSHOT          | Payload does not have the expected shape
----------------|-----------------------------|-----------------------------------------
Reference       | FEE_SCALE_ORDER             | Thresholds unsorted or repeated
                | INVALID_DUPLICATE_RATE      | Rate id outside 1..10 or repeated
----------------|-----------------------------|-----------------------------------------
Command         | STRUCTURE_NOT_FOUND         | Structure id not in snapshot
                | SERVICE_NOT_FOUND           | Tracked service id not in snapshot
                | SPACE_NOT_FOUND             | Level or space id not in structure
                | DUPLICATE_RENAME            | Renaming a duplicate directly
----------------|-----------------------------|-----------------------------------------
Configuration   | REFERENCE_SET_NOT_FOUND     | No config set directory with that name
----------------|-----------------------------|-----------------------------------------
Ingestion       | FEE_SCALE_IMPORT            | Imported rows failed validation
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class FeeKernelError(Exception):
    """
    Base exception for all fee kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "FEE_KERNEL_ERROR"


# Snapshot exceptions


class SnapshotError(FeeKernelError):
    """Base exception for snapshot-shape errors."""

    code: str = "SNAPSHOT_ERROR"


class MalformedSnapshotError(SnapshotError):
    """A snapshot payload could not be read into domain objects."""

    code: str = "MALFORMED_SNAPSHOT"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Malformed snapshot at {path}: {reason}")


# Reference table exceptions


class ReferenceTableError(FeeKernelError):
    """Base exception for reference-table invariant violations."""

    code: str = "REFERENCE_TABLE_ERROR"


class FeeScaleOrderError(ReferenceTableError):
    """Fee-scale thresholds are not strictly ascending."""

    code: str = "FEE_SCALE_ORDER"

    def __init__(self, index: int, previous: Decimal, current: Decimal):
        self.index = index
        self.previous = previous
        self.current = current
        super().__init__(
            f"Fee scale thresholds must be strictly ascending: "
            f"bracket {index} has {current} after {previous}"
        )


class InvalidDuplicateRateError(ReferenceTableError):
    """Duplicate-structure rate entry is out of range or repeated."""

    code: str = "INVALID_DUPLICATE_RATE"

    def __init__(self, rate_id: int, reason: str):
        self.rate_id = rate_id
        self.reason = reason
        super().__init__(f"Invalid duplicate rate id {rate_id}: {reason}")


# Proposal command exceptions


class ProposalCommandError(FeeKernelError):
    """Base exception for proposal editing commands."""

    code: str = "PROPOSAL_COMMAND_ERROR"


class StructureNotFoundError(ProposalCommandError):
    """Structure with given ID was not found in the snapshot."""

    code: str = "STRUCTURE_NOT_FOUND"

    def __init__(self, structure_id: str):
        self.structure_id = structure_id
        super().__init__(f"Structure not found: {structure_id}")


class ServiceNotFoundError(ProposalCommandError):
    """Tracked service with given ID was not found in the snapshot."""

    code: str = "SERVICE_NOT_FOUND"

    def __init__(self, service_id: str):
        self.service_id = service_id
        super().__init__(f"Tracked service not found: {service_id}")


class SpaceNotFoundError(ProposalCommandError):
    """Level or space with given ID was not found in the structure."""

    code: str = "SPACE_NOT_FOUND"

    def __init__(self, structure_id: str, level_id: str, space_id: str | None = None):
        self.structure_id = structure_id
        self.level_id = level_id
        self.space_id = space_id
        super().__init__(
            f"Space not found: structure={structure_id} level={level_id} space={space_id}"
        )


class DuplicateRenameError(ProposalCommandError):
    """Duplicates take their name from the parent structure."""

    code: str = "DUPLICATE_RENAME"

    def __init__(self, structure_id: str, parent_id: str):
        self.structure_id = structure_id
        self.parent_id = parent_id
        super().__init__(
            f"Structure {structure_id} is a duplicate of {parent_id}; "
            f"rename the parent instead"
        )


# Configuration exceptions


class ConfigurationError(FeeKernelError):
    """Base exception for configuration loading."""

    code: str = "CONFIGURATION_ERROR"


class ReferenceSetNotFoundError(ConfigurationError):
    """No reference-set directory with the requested name."""

    code: str = "REFERENCE_SET_NOT_FOUND"

    def __init__(self, set_name: str, config_dir: str):
        self.set_name = set_name
        self.config_dir = config_dir
        super().__init__(f"Reference set {set_name!r} not found in {config_dir}")


# Ingestion exceptions


class IngestionError(FeeKernelError):
    """Base exception for reference-data imports."""

    code: str = "INGESTION_ERROR"


class FeeScaleImportError(IngestionError):
    """One or more imported fee-scale rows failed validation."""

    code: str = "FEE_SCALE_IMPORT"

    def __init__(self, errors: list[Any]):
        self.errors = errors
        super().__init__(f"Fee scale import failed: {len(errors)} error(s)")
