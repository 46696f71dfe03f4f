"""Per-user spending plan settings: exclusions and bucket overrides.

Each user has one JSON document::

    {
      "excluded_payees": [...],
      "excluded_income_categories": [...],
      "excluded_expense_categories": [...],
      "category_mappings": {"<category id>": "fixed_costs" | "investments" | "savings" | "guilt_free"}
    }

A missing document reads as an empty one. Writes merge a single field into
the stored document and leave every other field untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from .classifier import BUCKETS
from .config import settings_dir
from .files import document_lock, read_json_document, safe_filename, write_json_document
from .logging_setup import get_logger

logger = get_logger(__name__)

EXCLUSION_FIELDS = ('excluded_payees', 'excluded_income_categories', 'excluded_expense_categories')
MAPPINGS_FIELD = 'category_mappings'


@dataclass
class SpendingPlanSettings:
    excluded_payees: Set[str] = field(default_factory=set)
    excluded_income_categories: Set[str] = field(default_factory=set)
    excluded_expense_categories: Set[str] = field(default_factory=set)
    category_mappings: Dict[str, str] = field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return {
            'excluded_payees': sorted(self.excluded_payees),
            'excluded_income_categories': sorted(self.excluded_income_categories),
            'excluded_expense_categories': sorted(self.excluded_expense_categories),
            MAPPINGS_FIELD: dict(sorted(self.category_mappings.items())),
        }

    @classmethod
    def from_document(cls, document: Optional[Mapping[str, Any]]) -> 'SpendingPlanSettings':
        settings, _ = sanitize_settings(document)
        return settings


def _clean_exclusions(value: Any) -> Tuple[Set[str], int]:
    if value is None:
        return set(), 0
    if not isinstance(value, (list, tuple, set, frozenset)):
        return set(), 1
    kept = {item for item in value if isinstance(item, str)}
    return kept, sum(1 for item in value if not isinstance(item, str))


def _clean_mappings(value: Any) -> Tuple[Dict[str, str], int]:
    if value is None:
        return {}, 0
    if not isinstance(value, Mapping):
        return {}, 1
    kept = {str(key): bucket for key, bucket in value.items() if bucket in BUCKETS}
    return kept, len(value) - len(kept)


def sanitize_settings(document: Any) -> Tuple[SpendingPlanSettings, int]:
    """Coerce a persisted (or caller-supplied) document into settings.

    Returns the settings plus the number of entries dropped because they
    violated the document schema: unknown bucket ids in ``category_mappings``,
    exclusion fields that are not arrays, and non-string exclusion members.
    Accepts an existing :class:`SpendingPlanSettings` unchanged.
    """
    if isinstance(document, SpendingPlanSettings):
        return document, 0
    if document is None:
        return SpendingPlanSettings(), 0
    if not isinstance(document, Mapping):
        logger.warning("Settings document is not an object; using empty settings")
        return SpendingPlanSettings(), 1

    dropped = 0
    exclusions: Dict[str, Set[str]] = {}
    for name in EXCLUSION_FIELDS:
        exclusions[name], bad = _clean_exclusions(document.get(name))
        dropped += bad
    mappings, bad = _clean_mappings(document.get(MAPPINGS_FIELD))
    dropped += bad
    if dropped:
        logger.warning("Dropped %d invalid settings entries", dropped)
    return SpendingPlanSettings(category_mappings=mappings, **exclusions), dropped


class SettingsStore:
    """JSON-file backed settings documents, one file per user."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else settings_dir()

    def get_path(self, user_id: str) -> Path:
        if not user_id or not str(user_id).strip():
            raise ValueError("user_id is required")
        return self.directory / f"{safe_filename(str(user_id), default='user')}.json"

    def get(self, user_id: str) -> SpendingPlanSettings:
        return SpendingPlanSettings.from_document(read_json_document(self.get_path(user_id)))

    def _lock(self, user_id: str):
        return document_lock(self.get_path(user_id))

    def _merge(self, user_id: str, updates: Dict[str, Any]) -> SpendingPlanSettings:
        """Overwrite the given top-level fields, keeping every other field on disk."""
        path = self.get_path(user_id)
        with self._lock(user_id):
            document = read_json_document(path)
            document.update(updates)
            write_json_document(path, document)
        logger.info("Updated settings for %s: %s", user_id, ', '.join(sorted(updates)))
        return SpendingPlanSettings.from_document(document)

    def _toggle(self, user_id: str, field_name: str, value: str) -> SpendingPlanSettings:
        with self._lock(user_id):
            updated = set(getattr(self.get(user_id), field_name))
            if value in updated:
                updated.remove(value)
            else:
                updated.add(value)
            return self._merge(user_id, {field_name: sorted(updated)})

    def toggle_payee(self, user_id: str, name: str) -> SpendingPlanSettings:
        return self._toggle(user_id, 'excluded_payees', name)

    def toggle_income_category(self, user_id: str, category_id: str) -> SpendingPlanSettings:
        return self._toggle(user_id, 'excluded_income_categories', category_id)

    def toggle_expense_category(self, user_id: str, category_id: str) -> SpendingPlanSettings:
        return self._toggle(user_id, 'excluded_expense_categories', category_id)

    def set_category_bucket(self, user_id: str, category_id: str, bucket: str) -> SpendingPlanSettings:
        if bucket not in BUCKETS:
            raise ValueError(f"Unknown bucket {bucket!r}; expected one of {BUCKETS}")
        with self._lock(user_id):
            mappings = dict(self.get(user_id).category_mappings)
            mappings[category_id] = bucket
            return self._merge(user_id, {MAPPINGS_FIELD: mappings})

    def clear_category_bucket(self, user_id: str, category_id: str) -> SpendingPlanSettings:
        with self._lock(user_id):
            mappings = dict(self.get(user_id).category_mappings)
            mappings.pop(category_id, None)
            return self._merge(user_id, {MAPPINGS_FIELD: mappings})

    def clear_all_category_buckets(self, user_id: str) -> SpendingPlanSettings:
        return self._merge(user_id, {MAPPINGS_FIELD: {}})

    def clear_payee_exclusions(self, user_id: str) -> SpendingPlanSettings:
        return self._merge(user_id, {'excluded_payees': []})

    def clear_income_category_exclusions(self, user_id: str) -> SpendingPlanSettings:
        return self._merge(user_id, {'excluded_income_categories': []})

    def clear_expense_category_exclusions(self, user_id: str) -> SpendingPlanSettings:
        return self._merge(user_id, {'excluded_expense_categories': []})

    def delete(self, user_id: str) -> bool:
        """Remove the user's document; returns whether one existed."""
        path = self.get_path(user_id)
        with self._lock(user_id):
            if not path.exists():
                return False
            path.unlink()
        logger.info("Deleted settings for %s", user_id)
        return True
