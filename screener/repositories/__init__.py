"""Data access layer repositories.

Each repository module provides async functions over the ORM models in
`screener.database.orm` using the `get_session()` context manager.

- alert_rules_orm: alert rule CRUD
- alerts_orm: delivered-alert log
- price_history_orm: daily candles
- scan_results_orm: scan runs, per-ticker results, forward returns and accuracy
"""

from . import alert_rules_orm
from . import alerts_orm
from . import price_history_orm
from . import scan_results_orm

__all__ = [
    "alert_rules_orm",
    "alerts_orm",
    "price_history_orm",
    "scan_results_orm",
]
