"""
fee_services.calculation_service -- Memoized fee calculations over a snapshot.

Responsibility:
    Entry point the UI layer calls: compute discipline fees, service fees,
    discipline totals and the project summary for a ``ProposalSnapshot``
    under a ``CalculationContext``, caching results between calls, and
    turn any boundary failure into an error outcome instead of an
    exception.

Architecture position:
    Services -- stateful orchestration over the pure engines.  The engines
    stay pure; the cache lives here and nowhere else.

Invariants enforced:
    - Cache keys are content fingerprints (SHA-256 over the canonical form
      of the reference tables, the snapshot and the call arguments), never
      object identity, so a copied or re-parsed snapshot with the same
      content hits and any edited content misses.
    - The cache holds at most ``max_entries`` results and evicts the least
      recently used one first.
    - ``invalidate()`` empties the cache; replacing the context also
      empties it.
    - ``evaluate()`` never raises for bad input: kernel errors and
      arithmetic failures come back as a ``CalculationOutcome`` carrying
      the error code and message.

Failure modes:
    - ``StructureNotFoundError`` / ``ServiceNotFoundError`` from the
      per-item methods for unknown ids.

Audit relevance:
    ``evaluate`` binds the proposal and reference-set ids into
    ``LogContext`` so every engine trace emitted during the pass carries
    them.

Usage:
    from fee_services import CalculationContext, FeeCalculationService

    service = FeeCalculationService(CalculationContext.from_config())
    outcome = service.evaluate(payload)
    if outcome.ok:
        outcome.summary.project_total
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from fee_engines.discipline_fee import DisciplineFee, calculate_discipline_fee
from fee_engines.service_fee import ServiceFee, calculate_service_fee
from fee_engines.totals import DisciplineTotal, ProjectSummary, discipline_total, project_summary
from fee_engines.tracer import fingerprint
from fee_kernel.domain.disciplines import Phase, discipline_name, parse_phase
from fee_kernel.domain.proposal import ProposalSnapshot, Structure, TrackedService
from fee_kernel.exceptions import (
    FeeKernelError,
    ServiceNotFoundError,
    StructureNotFoundError,
)
from fee_kernel.logging_config import LogContext, get_logger
from fee_services.context import CalculationContext
from fee_services.snapshot import parse_snapshot

logger = get_logger("services.calculation")

T = TypeVar("T")

DEFAULT_MAX_ENTRIES = 512
CALCULATION_ERROR = "CALCULATION_ERROR"


@dataclass(frozen=True)
class CalculationOutcome:
    """
    Result of evaluating a proposal payload.

    Exactly one of ``summary`` or ``error_code`` is set.
    """

    summary: ProjectSummary | None = None
    snapshot: ProposalSnapshot | None = None
    error_code: str | None = None
    error_message: str | None = None
    currency: str = "USD"

    @property
    def ok(self) -> bool:
        return self.error_code is None

    def to_dict(self) -> dict[str, Any]:
        if not self.ok:
            return {
                "ok": False,
                "error": {"code": self.error_code, "message": self.error_message},
            }
        return {"ok": True, "summary": self.summary.to_dict(self.currency)}


class FeeCalculationService:
    """
    Memoizing facade over the fee engines.

    Contract:
        Receives a CalculationContext via constructor injection.  Every
        method takes the snapshot explicitly; the service holds no
        proposal state besides its cache.
    Guarantees:
        - Results are identical to calling the engines directly.
        - Cache hits are decided by content, not identity.
        - Memory is bounded: old entries are evicted as edits produce new
          snapshots.
    Non-goals:
        - No persistence or cross-process caching.
    """

    def __init__(
        self,
        context: CalculationContext | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self._context = context or CalculationContext()
        self._context_key = self._context.fingerprint
        self._max_entries = max_entries
        self._cache: OrderedDict[str, Any] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @property
    def context(self) -> CalculationContext:
        return self._context

    @context.setter
    def context(self, context: CalculationContext) -> None:
        self._context = context
        self._context_key = context.fingerprint
        self.invalidate()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def invalidate(self) -> None:
        """Drop every cached result."""
        if self._cache:
            logger.debug("calculation_cache_invalidated", extra={
                "entries": len(self._cache),
            })
        self._cache.clear()

    def _memo(self, kind: str, parts: tuple[Any, ...], compute: Callable[[], T]) -> T:
        key = fingerprint(kind, self._context_key, *parts)
        if key in self._cache:
            self.hits += 1
            self._cache.move_to_end(key)
            return self._cache[key]
        self.misses += 1
        result = compute()
        self._cache[key] = result
        if len(self._cache) > self._max_entries:
            self._cache.popitem(last=False)
        return result

    def _structure(self, snapshot: ProposalSnapshot, structure_id: str) -> Structure:
        structure = snapshot.structure(structure_id)
        if structure is None:
            raise StructureNotFoundError(structure_id)
        return structure

    def _service(self, snapshot: ProposalSnapshot, service_id: str) -> TrackedService:
        service = snapshot.service(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    # ------------------------------------------------------------------
    # Calculations
    # ------------------------------------------------------------------

    def discipline_fee(
        self,
        snapshot: ProposalSnapshot,
        structure_id: str,
        discipline: str,
        phase: Phase | str,
    ) -> DisciplineFee:
        structure = self._structure(snapshot, structure_id)
        phase = parse_phase(phase)
        return self._memo(
            "discipline_fee",
            (snapshot.structures, structure_id, discipline_name(discipline), phase),
            lambda: calculate_discipline_fee(
                structure, discipline, phase,
                self._context.fee_scale, self._context.duplicate_rates,
                snapshot.structures,
            ),
        )

    def service_fee(self, snapshot: ProposalSnapshot, service_id: str) -> ServiceFee:
        service = self._service(snapshot, service_id)
        structure = self._structure(snapshot, service.structure_id)
        return self._memo(
            "service_fee",
            (snapshot.structures, service),
            lambda: calculate_service_fee(
                service, service.discipline, structure,
                self._context.fee_scale, self._context.duplicate_rates,
                snapshot.structures,
            ),
        )

    def discipline_total(
        self,
        snapshot: ProposalSnapshot,
        structure_id: str,
        discipline: str,
        phase: Phase | str,
    ) -> DisciplineTotal:
        structure = self._structure(snapshot, structure_id)
        phase = parse_phase(phase)
        return self._memo(
            "discipline_total",
            (snapshot, structure_id, discipline_name(discipline), phase),
            lambda: discipline_total(
                structure, discipline, phase, snapshot.tracked_services,
                self._context.fee_scale, self._context.duplicate_rates,
                snapshot.structures,
            ),
        )

    def project_summary(self, snapshot: ProposalSnapshot) -> ProjectSummary:
        return self._memo(
            "project_summary",
            (snapshot,),
            lambda: project_summary(
                snapshot.structures, snapshot.tracked_services,
                self._context.fee_scale, self._context.duplicate_rates,
            ),
        )

    # ------------------------------------------------------------------
    # Boundary
    # ------------------------------------------------------------------

    def evaluate(self, payload: Any) -> CalculationOutcome:
        """
        Parse a payload (or take a snapshot) and compute its summary.

        Shape errors, other kernel errors and arithmetic failures on
        extreme input are returned as an error outcome, never raised.
        """
        if isinstance(payload, ProposalSnapshot):
            proposal_id = payload.proposal_id
        elif isinstance(payload, dict):
            proposal_id = payload.get("proposal_id")
        else:
            proposal_id = None
        with LogContext.bind(
            proposal_id=None if proposal_id is None else str(proposal_id),
            reference_set_id=self._context.reference_set_id,
        ):
            try:
                snapshot = (
                    payload if isinstance(payload, ProposalSnapshot)
                    else parse_snapshot(payload)
                )
                summary = self.project_summary(snapshot)
            except FeeKernelError as e:
                logger.warning("calculation_failed", extra={
                    "error_code": e.code,
                    "error_message": str(e),
                })
                return CalculationOutcome(
                    error_code=e.code,
                    error_message=str(e),
                    currency=self._context.currency,
                )
            except (ArithmeticError, ValueError) as e:
                logger.error("calculation_failed", extra={
                    "error_code": CALCULATION_ERROR,
                    "error_message": str(e),
                }, exc_info=True)
                return CalculationOutcome(
                    error_code=CALCULATION_ERROR,
                    error_message=f"{type(e).__name__}: {e}",
                    currency=self._context.currency,
                )

        return CalculationOutcome(
            summary=summary,
            snapshot=snapshot,
            currency=snapshot.currency or self._context.currency,
        )
