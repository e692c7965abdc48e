"""
Duplicate-structure lineage -- pure functions.

A duplicate is a structure cloned from a parent and billed at a reduced
rate.  Its ordinal (1 = first duplicate, 2 = second, ...) selects the
multiplier in the duplicate-rate table; the original structure has
ordinal 0.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from decimal import Decimal

from fee_kernel.domain.proposal import Structure
from fee_kernel.domain.reference import MAX_DUPLICATE_RATE_ID

DUPLICATE_DECAY = Decimal("0.75")

_DUPLICATE_SUFFIX = re.compile(r"\s*\(Duplicate (\d+)\)\s*$")


def duplicate_name(base_name: str, number: int) -> str:
    return f"{base_name} (Duplicate {number})"


def base_name(name: str) -> str:
    """Structure name without a trailing ``(Duplicate N)`` suffix."""
    return _DUPLICATE_SUFFIX.sub("", name)


def name_duplicate_number(name: str) -> int | None:
    match = _DUPLICATE_SUFFIX.search(name or "")
    return int(match.group(1)) if match else None


def duplicate_ordinal(
    structure: Structure,
    structures: Sequence[Structure] | None = None,
) -> int:
    """
    Ordinal of a structure among the duplicates of its parent.

    Resolution order: no parent -> 0; explicit ``duplicate_number``; the
    ``(Duplicate N)`` name suffix; position among the parent's duplicates
    that follow the parent in ``structures``; otherwise 1.
    """
    if structure.parent_id is None:
        return 0
    if structure.duplicate_number is not None and structure.duplicate_number > 0:
        return structure.duplicate_number
    from_name = name_duplicate_number(structure.name)
    if from_name is not None and from_name > 0:
        return from_name
    if structures:
        ids = [s.id for s in structures]
        if structure.id in ids:
            start = ids.index(structure.parent_id) + 1 if structure.parent_id in ids else 0
            end = ids.index(structure.id)
            before = sum(
                1 for s in structures[start:end] if s.parent_id == structure.parent_id
            )
            return before + 1
        # Not yet in the list: it will be the next duplicate
        return sum(1 for s in structures if s.parent_id == structure.parent_id) + 1
    return 1


def duplicate_rate_id(ordinal: int) -> int:
    """Rate-table id for an ordinal: ``min(ordinal + 1, 10)``."""
    return min(ordinal + 1, MAX_DUPLICATE_RATE_ID)


def default_duplicate_rate(number: int) -> Decimal:
    """Stored rate for the n-th duplicate: 1.0, 0.75, 0.5625, ..."""
    if number <= 1:
        return Decimal("1")
    return DUPLICATE_DECAY ** (number - 1)
