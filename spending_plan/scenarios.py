"""Future-goal drafts and persisted named scenarios.

A :class:`GoalsDraft` starts from a computed report (monthly income and
monthly bucket amounts) and lets callers edit income and bucket amounts to
see the projected percentages, score and deltas against the actual plan.
Scenarios are stored per user as a JSON collection by :class:`ScenarioStore`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import time
from typing import Any, Dict, List, Mapping, Optional
import uuid

from .classifier import BUCKETS, GUILT_FREE
from .config import scenarios_dir
from .files import document_lock, read_json_document, safe_filename, write_json_document
from .logging_setup import get_logger
from .scoring import bucket_percentage, calculate_score, is_bucket_on_target
from .scoring import is_on_track as plan_is_on_track

logger = get_logger(__name__)


class ScenarioNotFound(KeyError):
    """Raised when a scenario id is not stored for the user."""


def auto_balance(income: float, bucket_amounts: Mapping[str, float]) -> Dict[str, float]:
    """Give guilt-free spending whatever income the other buckets leave.

    When the other buckets alone exceed income they are scaled down
    proportionally to sum to income and guilt-free becomes 0.
    """
    others = {bucket: float(bucket_amounts.get(bucket, 0.0) or 0.0) for bucket in BUCKETS if bucket != GUILT_FREE}
    committed = sum(others.values())
    if committed > income and committed > 0:
        ratio = max(income, 0.0) / committed
        balanced = {bucket: amount * ratio for bucket, amount in others.items()}
        balanced[GUILT_FREE] = 0.0
    else:
        balanced = dict(others)
        balanced[GUILT_FREE] = max(0.0, income - committed)
    return {bucket: balanced[bucket] for bucket in BUCKETS}


def project(income: float, bucket_amounts: Mapping[str, float]) -> Dict[str, Any]:
    """Percentages, target flags and score for an income/bucket combination."""
    percentages = {bucket: bucket_percentage(bucket_amounts.get(bucket, 0.0), income) for bucket in BUCKETS}
    return {
        'income': income,
        'buckets': {bucket: float(bucket_amounts.get(bucket, 0.0)) for bucket in BUCKETS},
        'percentages': percentages,
        'is_on_target': {bucket: is_bucket_on_target(bucket, percentages[bucket]) for bucket in BUCKETS},
        'score': calculate_score(percentages),
        'is_on_track': plan_is_on_track(percentages),
    }


class GoalsDraft:
    """Editable what-if copy of a report's monthly figures."""

    def __init__(self, report: Mapping[str, Any]):
        buckets = report.get('buckets') or {}
        self.actual_income = float(report.get('monthly_income') or 0.0)
        self.actual_buckets = {
            bucket: float((buckets.get(bucket) or {}).get('monthly_amount', 0.0)) for bucket in BUCKETS
        }
        self.actual = project(self.actual_income, self.actual_buckets)
        self.income: Optional[float] = None
        self.bucket_amounts: Dict[str, float] = {}
        self.active_scenario_id: Optional[str] = None

    @property
    def effective_income(self) -> float:
        return self.actual_income if self.income is None else self.income

    @property
    def effective_buckets(self) -> Dict[str, float]:
        return {bucket: self.bucket_amounts.get(bucket, self.actual_buckets[bucket]) for bucket in BUCKETS}

    @property
    def has_changes(self) -> bool:
        return self.income is not None or bool(self.bucket_amounts)

    def set_income(self, income: float) -> None:
        self.income = float(income)

    def set_bucket_amount(self, bucket: str, amount: float) -> None:
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown bucket {bucket!r}")
        self.bucket_amounts[bucket] = float(amount)

    def auto_balance(self) -> Dict[str, float]:
        self.bucket_amounts = auto_balance(self.effective_income, self.effective_buckets)
        return dict(self.bucket_amounts)

    def reset(self) -> None:
        self.income = None
        self.bucket_amounts = {}
        self.active_scenario_id = None

    def load(self, scenario: Mapping[str, Any]) -> None:
        """Replace the draft with a stored scenario."""
        self.income = float(scenario.get('target_income') or 0.0)
        amounts = scenario.get('bucket_amounts') or {}
        self.bucket_amounts = {bucket: float(amounts[bucket]) for bucket in BUCKETS if bucket in amounts}
        self.active_scenario_id = scenario.get('id')

    def projection(self) -> Dict[str, Any]:
        projected = project(self.effective_income, self.effective_buckets)
        projected['deltas'] = {
            'income': projected['income'] - self.actual['income'],
            'buckets': {b: projected['buckets'][b] - self.actual['buckets'][b] for b in BUCKETS},
            'percentages': {b: projected['percentages'][b] - self.actual['percentages'][b] for b in BUCKETS},
            'score': projected['score'] - self.actual['score'],
        }
        return projected


def _new_scenario_id() -> str:
    return f"scenario_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_bucket_amounts(bucket_amounts: Mapping[str, Any]) -> Dict[str, float]:
    unknown = set(bucket_amounts) - set(BUCKETS)
    if unknown:
        raise ValueError(f"Unknown bucket ids: {sorted(unknown)}")
    return {bucket: float(bucket_amounts.get(bucket, 0.0) or 0.0) for bucket in BUCKETS}


class ScenarioStore:
    """Named scenarios kept as one JSON collection per user."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else scenarios_dir()

    def get_path(self, user_id: str) -> Path:
        if not user_id or not str(user_id).strip():
            raise ValueError("user_id is required")
        return self.directory / f"{safe_filename(str(user_id), default='user')}.json"

    def list(self, user_id: str) -> List[Dict[str, Any]]:
        scenarios = read_json_document(self.get_path(user_id)).get('scenarios') or []
        return [item for item in scenarios if isinstance(item, dict) and item.get('id')]

    def get(self, user_id: str, scenario_id: str) -> Dict[str, Any]:
        for scenario in self.list(user_id):
            if scenario['id'] == scenario_id:
                return scenario
        raise ScenarioNotFound(scenario_id)

    def _lock(self, user_id: str):
        return document_lock(self.get_path(user_id))

    def _write(self, user_id: str, scenarios: List[Dict[str, Any]]) -> None:
        write_json_document(self.get_path(user_id), {'scenarios': scenarios, 'updated_at': _now()})

    def save(
        self,
        user_id: str,
        name: str,
        target_income: float,
        bucket_amounts: Mapping[str, Any],
    ) -> Dict[str, Any]:
        if not name or not name.strip():
            raise ValueError("Please enter a scenario name")
        scenario = {
            'id': _new_scenario_id(),
            'name': name.strip(),
            'target_income': float(target_income),
            'bucket_amounts': _clean_bucket_amounts(bucket_amounts),
            'created_at': _now(),
        }
        with self._lock(user_id):
            scenarios = self.list(user_id)
            scenarios.append(scenario)
            self._write(user_id, scenarios)
        logger.info("Saved scenario %s for %s", scenario['id'], user_id)
        return scenario

    def save_draft(self, user_id: str, name: str, draft: GoalsDraft) -> Dict[str, Any]:
        scenario = self.save(user_id, name, draft.effective_income, draft.effective_buckets)
        draft.active_scenario_id = scenario['id']
        return scenario

    def update(self, user_id: str, scenario_id: str, **changes: Any) -> Dict[str, Any]:
        """Change ``name``, ``target_income`` or ``bucket_amounts`` of a scenario."""
        allowed = {'name', 'target_income', 'bucket_amounts'}
        unexpected = set(changes) - allowed
        if unexpected:
            raise ValueError(f"Cannot update fields: {sorted(unexpected)}")
        with self._lock(user_id):
            scenarios = self.list(user_id)
            for scenario in scenarios:
                if scenario['id'] != scenario_id:
                    continue
                if 'name' in changes:
                    if not changes['name'] or not str(changes['name']).strip():
                        raise ValueError("Please enter a scenario name")
                    scenario['name'] = str(changes['name']).strip()
                if 'target_income' in changes:
                    scenario['target_income'] = float(changes['target_income'])
                if 'bucket_amounts' in changes:
                    scenario['bucket_amounts'] = _clean_bucket_amounts(changes['bucket_amounts'])
                scenario['updated_at'] = _now()
                self._write(user_id, scenarios)
                return scenario
        raise ScenarioNotFound(scenario_id)

    def delete(self, user_id: str, scenario_id: str) -> bool:
        with self._lock(user_id):
            scenarios = self.list(user_id)
            remaining = [scenario for scenario in scenarios if scenario['id'] != scenario_id]
            if len(remaining) == len(scenarios):
                return False
            self._write(user_id, remaining)
        logger.info("Deleted scenario %s for %s", scenario_id, user_id)
        return True
