"""Delivered-alert log repository."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

from screener.core.logging import get_logger
from screener.database.connection import get_session
from screener.database.orm import Alert
from screener.domain import AlertEvent


logger = get_logger("repositories.alerts_orm")


async def record_alert(event: AlertEvent) -> bool:
    try:
        async with get_session() as session:
            session.add(
                Alert(
                    scan_result_id=event.scan_result_id,
                    ticker=event.ticker,
                    alert_type=event.alert_type,
                    scores=event.scores.model_dump(),
                    classification=event.classification,
                    message=event.message,
                    sent_to=list(event.sent_to),
                )
            )
            await session.commit()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Failed to record alert for {event.ticker}: {e}")
        return False


class AlertLog:
    """Adapter exposing the repository as an alert recorder."""

    async def record_alert(self, event: AlertEvent) -> bool:
        return await record_alert(event)
