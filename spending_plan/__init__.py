"""Top-level package for the Conscious Spending Plan engine.

The primary modules are:

* ``engine`` – ``compute(inputs, settings, period)`` builds the report
* ``settings_store`` – per-user exclusions and bucket overrides
* ``scenarios`` – future-goal drafts and saved scenarios
* ``visualization`` – Plotly figures for a report

To print a report for an exported budget from the command line:

```bash
python scripts/show_report.py path/to/export.json --period 6
```
"""

from .engine import compute  # noqa: F401  # re-exported for convenience
from .periods import InvalidPeriod  # noqa: F401
from .scenarios import GoalsDraft, ScenarioNotFound, ScenarioStore  # noqa: F401
from .settings_store import SettingsStore, SpendingPlanSettings  # noqa: F401

__all__ = [
    "compute",
    "InvalidPeriod",
    "GoalsDraft",
    "ScenarioNotFound",
    "ScenarioStore",
    "SettingsStore",
    "SpendingPlanSettings",
]
