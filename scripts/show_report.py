#!/usr/bin/env python3
"""Print a spending plan summary for an exported budget."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spending_plan.config import LOG_LEVEL
from spending_plan.engine import compute
from spending_plan.logging_setup import configure_logging
from spending_plan.money import format_currency
from spending_plan.periods import ALLOWED_PERIODS
from spending_plan.settings_store import SettingsStore


def main(export_path: Path, period: int, user_id: str | None = None) -> None:
    with export_path.open('r', encoding='utf-8') as handle:
        payload = json.load(handle)
    settings = SettingsStore().get(user_id) if user_id else None
    report = compute(payload, settings, period)

    print(f"Period: {report['period']['start']} to {report['period']['end']} ({report['period']['period_length']} months)")
    print(f"Monthly income: {format_currency(report['monthly_income'])}")
    for bucket, data in report['buckets'].items():
        marker = 'ok' if data['is_on_target'] else '!!'
        print(f"  [{marker}] {bucket:<12} {format_currency(data['monthly_amount']):>14}/mo  {data['percentage']:>4}%")
    print(f"Score: {report['score']}/100")
    for suggestion in report['suggestions']:
        print(f"  - {suggestion['message']}")

    gap = report['diagnostics']['income_reconciliation']
    print(f"\nUnexplained income gap: {format_currency(gap['unexplained_gap'])} (explained: {gap['is_explained']})")
    expense_gap = report['diagnostics']['expense_reconciliation']
    print(f"Unexplained expense gap: {format_currency(expense_gap['unexplained_gap'])}")


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show the spending plan for a budget export (JSON).')
    parser.add_argument('export', type=Path, help='JSON file with transactions, categories, accounts, months, scheduled_transactions')
    parser.add_argument('--period', type=int, default=6, choices=ALLOWED_PERIODS, help='Months to analyse')
    parser.add_argument('--user', default=None, help='Apply the saved settings of this user')
    parser.add_argument('--log-level', default=LOG_LEVEL, help='Logging level')
    args = parser.parse_args()
    configure_logging(args.log_level)
    main(args.export, args.period, user_id=args.user)
