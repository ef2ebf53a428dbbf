"""Alert delivery: channels, rule evaluation and summaries."""

from .channels import AppriseChannel, NotificationChannel, build_channels
from .evaluator import (
    AlertRecorder,
    DefaultEvaluation,
    RuleBasedEvaluation,
    RuleEvaluationStrategy,
    build_payload,
    conditions_hold,
    dispatch_to_channels,
    select_strategy,
    send_scan_summary,
    test_notification_channels,
)


__all__ = [
    "AlertRecorder",
    "AppriseChannel",
    "DefaultEvaluation",
    "NotificationChannel",
    "RuleBasedEvaluation",
    "RuleEvaluationStrategy",
    "build_channels",
    "build_payload",
    "conditions_hold",
    "dispatch_to_channels",
    "select_strategy",
    "send_scan_summary",
    "test_notification_channels",
]
