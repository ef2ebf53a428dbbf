"""API route modules."""

from . import alert_rules, backtest, health


__all__ = ["alert_rules", "backtest", "health"]
