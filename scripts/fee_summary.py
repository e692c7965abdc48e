#!/usr/bin/env python3
"""
Print the fee summary of a proposal file.

Usage:
    python -m scripts.fee_summary proposal.json
    python -m scripts.fee_summary proposal.yaml --format json
    python -m scripts.fee_summary proposal.json --fee-scale scale.xlsx

The script:
  1. Loads a reference set (``fee_config/sets/default`` unless --set or
     --config-dir say otherwise)
  2. Optionally replaces its fee scale with one imported from CSV/XLSX
  3. Parses the proposal snapshot
  4. Prints design, construction and grand totals per discipline

Exit status is 0 on success, 1 when the proposal or reference data could
not be read.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from fee_engines.totals import ProjectSummary
from fee_ingestion import load_fee_scale_file
from fee_kernel.domain.values import format_currency
from fee_kernel.exceptions import FeeKernelError
from fee_kernel.logging_config import configure_logging
from fee_services import CalculationContext, FeeCalculationService, load_snapshot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fee-summary",
        description="Compute engineering fee totals for a proposal file.",
    )
    parser.add_argument("proposal", type=Path, help="Proposal snapshot (.json or .yaml)")
    parser.add_argument("--set", dest="set_name", default="default",
                        help="Reference set name (default: default)")
    parser.add_argument("--config-dir", type=Path, default=None,
                        help="Directory holding reference sets")
    parser.add_argument("--fee-scale", type=Path, default=None,
                        help="CSV or XLSX fee scale replacing the set's table")
    parser.add_argument("--sheet", default=None,
                        help="Worksheet name for an XLSX fee scale")
    parser.add_argument("--format", choices=("table", "json"), default="table")
    parser.add_argument("--log-level", default="WARNING",
                        choices=("DEBUG", "INFO", "WARNING", "ERROR"))
    return parser


def render_table(summary: ProjectSummary, currency: str) -> str:
    """Discipline rows with design, construction and total columns."""
    header = f"{'Discipline':<14}{'Design':>16}{'Construction':>16}{'Total':>16}"
    lines = [header, "-" * len(header)]
    for name, grand in summary.grand_totals.items():
        lines.append(
            f"{name:<14}"
            f"{format_currency(summary.design_totals[name], currency):>16}"
            f"{format_currency(summary.construction_totals[name], currency):>16}"
            f"{format_currency(grand, currency):>16}"
        )
    lines.append("-" * len(header))
    lines.append(
        f"{'Project total':<46}{format_currency(summary.project_total, currency):>16}"
    )
    if len(summary.structures) > 1:
        lines.append("")
        for s in summary.structures:
            lines.append(f"  {s.name or s.structure_id:<44}{format_currency(s.total, currency):>16}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=getattr(logging, args.log_level))

    try:
        context = CalculationContext.from_config(args.set_name, args.config_dir)
        if args.fee_scale is not None:
            options = {"sheet": args.sheet} if args.sheet else {}
            imported = load_fee_scale_file(args.fee_scale, options)
            context = context.with_fee_scale(imported.table)
        snapshot = load_snapshot(args.proposal)
    except FeeKernelError as e:
        print(f"Error [{e.code}]: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    outcome = FeeCalculationService(context).evaluate(snapshot)
    if not outcome.ok:
        print(f"Error [{outcome.error_code}]: {outcome.error_message}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(outcome.to_dict(), indent=2))
    else:
        print(render_table(outcome.summary, outcome.currency))
    return 0


if __name__ == "__main__":
    sys.exit(main())
