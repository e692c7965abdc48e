"""Engineering disciplines and fee phases."""

from __future__ import annotations

from enum import Enum


class Discipline(str, Enum):
    """Engineering specialty with its own cost and fee line."""

    CIVIL = "Civil"
    ELECTRICAL = "Electrical"
    MECHANICAL = "Mechanical"
    PLUMBING = "Plumbing"
    STRUCTURAL = "Structural"


class Phase(str, Enum):
    """Stage a fee is billed against."""

    DESIGN = "design"
    CONSTRUCTION = "construction"


# Summary ordering (alphabetical, as displayed)
SUMMARY_DISCIPLINES: tuple[Discipline, ...] = (
    Discipline.CIVIL,
    Discipline.ELECTRICAL,
    Discipline.MECHANICAL,
    Discipline.PLUMBING,
    Discipline.STRUCTURAL,
)

# Roll-up cost type carried on spaces for display; never a fee discipline
TOTAL_COST_TYPE = "Total"

_BY_LOWER = {d.value.lower(): d for d in Discipline}


def parse_discipline(name: str | Discipline) -> Discipline | None:
    """Case-insensitive lookup; ``None`` for names outside the five known."""
    if isinstance(name, Discipline):
        return name
    return _BY_LOWER.get(str(name).strip().lower())


def discipline_key(name: str | Discipline) -> str:
    """Canonical comparison key for a discipline name."""
    if isinstance(name, Discipline):
        return name.value.lower()
    return str(name).strip().lower()


def discipline_name(name: str | Discipline) -> str:
    """Display spelling: the enum value for known disciplines, else the input."""
    if isinstance(name, Discipline):
        return name.value
    return str(name).strip()


def same_discipline(a: str | Discipline, b: str | Discipline) -> bool:
    return discipline_key(a) == discipline_key(b)


def parse_phase(value: str | Phase) -> Phase:
    """
    Read a phase name.

    Raises:
        ValueError: if the value is neither ``design`` nor ``construction``.
    """
    if isinstance(value, Phase):
        return value
    return Phase(str(value).strip().lower())
