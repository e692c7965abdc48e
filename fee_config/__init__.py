"""
fee_config -- single public entrypoint for fee reference data.

Responsibility:
    Provides the way to obtain reference data at runtime through
    ``get_active_config()``.  Returns a ``ReferenceSet`` holding the fee
    scale, duplicate-structure rates, cost indices, standard services and
    the building-type cost catalog.  YAML loading is internal.

Architecture position:
    Configuration -- YAML-driven reference data.
    This package sits above ``fee_kernel`` and below ``fee_services``.
    The kernel and the engines MUST NEVER import from ``fee_config``.

Invariants enforced:
    - Single entrypoint: runtime reference data flows through
      ``get_active_config()``.
    - Deterministic: the same YAML files always produce the same
      ``ReferenceSet`` and checksum.

Failure modes:
    - ``ReferenceSetNotFoundError`` -- no set directory with that name.
    - ``FeeScaleOrderError`` / ``InvalidDuplicateRateError`` -- reference
      tables violate their ordering rules.
    - ``KeyError`` / ``ValueError`` -- missing or malformed fields.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``FEE_CONFIG_TRACE`` log entry with the set id, version, checksum and
    table sizes, tying every computed fee back to the reference data that
    produced it.
"""

from __future__ import annotations

from pathlib import Path

from fee_config.loader import REFERENCE_FILE, load_reference_set
from fee_config.schema import ProjectConstructionType, ReferenceSet, StateCostIndex
from fee_kernel.exceptions import ReferenceSetNotFoundError
from fee_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default reference sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> ReferenceSet:
    """The public reference-data entrypoint.

    Guarantees:
        - The returned ``ReferenceSet`` has a strictly ascending fee scale
          and valid duplicate-rate ids.
        - A ``FEE_CONFIG_TRACE`` log entry is emitted on every successful
          call.

    Non-goals:
        - No caching across calls; callers hold the returned set for the
          lifetime of a ``CalculationContext``.

    Args:
        set_name: Name of the set directory under ``config_dir``.
        config_dir: Override path to the sets directory.  Defaults to
            ``fee_config/sets/``.

    Returns:
        ReferenceSet

    Raises:
        ReferenceSetNotFoundError: If the set directory or its
            ``reference.yaml`` does not exist.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    directory = sets_dir / set_name
    if not (directory / REFERENCE_FILE).is_file():
        raise ReferenceSetNotFoundError(set_name, str(sets_dir))

    reference = load_reference_set(directory)

    _logger.info(
        "FEE_CONFIG_TRACE",
        extra={
            "trace_type": "FEE_CONFIG_TRACE",
            "config_set_id": reference.set_id,
            "config_set_version": reference.version,
            "checksum": reference.checksum,
            "currency": reference.currency,
            "fee_scale_brackets": len(reference.fee_scale),
            "duplicate_rates": len(reference.duplicate_rates),
            "service_templates": len(reference.service_templates),
        },
    )
    return reference


__all__ = [
    "ProjectConstructionType",
    "ReferenceSet",
    "StateCostIndex",
    "get_active_config",
]
