"""Tallies of the records the engine deliberately leaves out."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from .normalizer import EXPENSE_SKIP_REASONS, FLOW_SKIPPED, SKIP_REASONS, NormalizedStream

SAMPLE_SIZE = 5


def tally_skipped(stream: NormalizedStream) -> Dict[str, Dict[str, Any]]:
    """``{reason: {count, total, samples}}`` for every skip reason.

    Totals are absolute amounts so inflow and outflow tags read the same way.
    """
    skipped = stream.of_flow(FLOW_SKIPPED)
    tallies: Dict[str, Dict[str, Any]] = {}
    for reason in SKIP_REASONS:
        rows = skipped[skipped['skip_reason'] == reason]
        tallies[reason] = {
            'count': int(len(rows)),
            'total': float(rows['amount'].abs().sum()),
            'samples': [
                {
                    'payee': row.payee,
                    'date': row.date.date().isoformat(),
                    'amount': float(row.amount),
                }
                for row in rows.head(SAMPLE_SIZE).itertuples(index=False)
            ],
        }
    return tallies


def skipped_expense_total(tallies: Mapping[str, Mapping[str, Any]]) -> float:
    return float(sum(tallies[reason]['total'] for reason in EXPENSE_SKIP_REASONS if reason in tallies))


def skipped_income_total(tallies: Mapping[str, Mapping[str, Any]], reason: str) -> float:
    entry = tallies.get(reason)
    return float(entry['total']) if entry else 0.0
