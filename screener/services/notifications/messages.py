"""Plain-text rendering of alerts and scan summaries."""

from __future__ import annotations

from screener.domain import AlertPayload, ScanSummary


MAX_CASE_LENGTH = 250


def _truncate(text: str, limit: int = MAX_CASE_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _relative(value: float, price: float) -> str:
    return f"{(value - price) / price * 100:+.1f}%"


def alert_title(payload: AlertPayload, channel: str | None = None) -> str:
    if channel == "email":
        return f"Stock Alert: {payload.ticker} - {payload.classification.upper()}"
    return f"{payload.ticker} - {payload.alert_type.upper()} Alert"


def alert_body(payload: AlertPayload) -> str:
    scores = payload.scores
    lines = [
        f"Price: ${payload.price:.2f}",
        f"Classification: {payload.classification.upper()}",
        f"Attention: {scores.attention}/100 | Momentum: {scores.momentum}/100 | "
        f"Fundamentals: {scores.fundamentals}/100 | Risk: {scores.risk}/100",
    ]
    if payload.target_price:
        lines.append(
            f"Target Price: ${payload.target_price:.2f} "
            f"({_relative(payload.target_price, payload.price)})"
        )
    if payload.stop_loss:
        lines.append(
            f"Stop Loss: ${payload.stop_loss:.2f} "
            f"({_relative(payload.stop_loss, payload.price)})"
        )
    if payload.technical_signal:
        lines.append(f"Technical Signal: {payload.technical_signal.upper()}")
    lines.append("")
    lines.append(f"Bull Case: {_truncate(payload.bull_case)}")
    lines.append(f"Bear Case: {_truncate(payload.bear_case)}")
    return "\n".join(lines)


def summary_title(summary: ScanSummary) -> str:
    return f"Scan Complete: {summary.total_scanned} tickers"


def summary_body(summary: ScanSummary) -> str:
    lines = [
        f"Runners: {summary.runners}",
        f"Value plays: {summary.value_plays}",
        f"Alerts sent: {summary.alerts}",
    ]
    if summary.top_picks:
        lines.append("")
        lines.append("Top picks:")
        for pick in summary.top_picks:
            lines.append(
                f"- {pick.get('ticker')} ({str(pick.get('classification', '')).upper()}) "
                f"attention {pick.get('attention')}"
            )
    return "\n".join(lines)
