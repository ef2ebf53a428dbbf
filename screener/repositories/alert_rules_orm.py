"""Alert rules repository using SQLAlchemy ORM.

Usage:
    from screener.repositories import alert_rules_orm as rules_repo

    rules = await rules_repo.load_enabled_rules()
    rule = await rules_repo.create_rule(AlertRuleCreate(...))
"""

from __future__ import annotations

from datetime import UTC, datetime

from typing import Iterable

from pydantic import ValidationError
from sqlalchemy import delete, select

from screener.core.logging import get_logger
from screener.database.connection import get_session
from screener.database.orm import AlertRule as AlertRuleRow
from screener.domain import AlertRule, AlertRuleCreate, AlertRuleUpdate


logger = get_logger("repositories.alert_rules_orm")


def _to_model(row: AlertRuleRow) -> AlertRule:
    return AlertRule.model_validate(row)


def valid_rules(rows: Iterable[AlertRuleRow]) -> list[AlertRule]:
    """Rows converted to rules; a row that fails validation is logged and skipped."""
    rules = []
    for row in rows:
        try:
            rules.append(_to_model(row))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid alert rule {row.id} ({row.name}): "
                f"{e.error_count()} validation errors"
            )
    return rules


async def list_rules(enabled_only: bool = False) -> list[AlertRule]:
    async with get_session() as session:
        stmt = select(AlertRuleRow).order_by(AlertRuleRow.id)
        if enabled_only:
            stmt = stmt.where(AlertRuleRow.enabled.is_(True))
        result = await session.execute(stmt)
        return valid_rules(result.scalars().all())


async def load_enabled_rules() -> list[AlertRule]:
    """Enabled rules ordered by id; empty when the rules cannot be read."""
    try:
        return await list_rules(enabled_only=True)
    except Exception as e:
        logger.error(f"Failed to load alert rules: {e}")
        return []


async def get_rule(rule_id: int) -> AlertRule | None:
    async with get_session() as session:
        row = await session.get(AlertRuleRow, rule_id)
        return _to_model(row) if row else None


async def create_rule(data: AlertRuleCreate) -> AlertRule:
    async with get_session() as session:
        row = AlertRuleRow(
            name=data.name,
            description=data.description,
            enabled=data.enabled,
            alert_type=data.alert_type,
            conditions=data.conditions.model_dump(exclude_none=True),
            channels=data.channels,
        )
        session.add(row)
        await session.commit()
        await session.refresh(row)
        logger.info(f"Created alert rule {row.id} ({row.name})")
        return _to_model(row)


async def update_rule(rule_id: int, data: AlertRuleUpdate) -> AlertRule | None:
    """Apply the fields set on ``data``. Returns None if the rule is missing."""
    async with get_session() as session:
        row = await session.get(AlertRuleRow, rule_id)
        if row is None:
            return None

        changes = data.model_dump(exclude_unset=True)
        if "conditions" in changes and data.conditions is not None:
            changes["conditions"] = data.conditions.model_dump(exclude_none=True)
        for field, value in changes.items():
            if value is not None or field == "description":
                setattr(row, field, value)
        row.updated_at = datetime.now(UTC)

        await session.commit()
        await session.refresh(row)
        return _to_model(row)


async def delete_rule(rule_id: int) -> bool:
    async with get_session() as session:
        result = await session.execute(
            delete(AlertRuleRow).where(AlertRuleRow.id == rule_id)
        )
        await session.commit()
        return result.rowcount > 0
