"""Alert rule management routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from screener.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from screener.domain import AlertRule, AlertRuleCreate, AlertRuleUpdate
from screener.repositories import alert_rules_orm as rules_repo
from screener.services.notifications import build_channels
from screener.services.notifications import evaluator


router = APIRouter()


def get_channels():
    """Notification channels built from settings."""
    return build_channels()


@router.get(
    "",
    response_model=list[AlertRule],
    summary="List alert rules",
)
async def list_rules(
    enabled_only: bool = Query(False, description="Only return enabled rules"),
) -> list[AlertRule]:
    return await rules_repo.list_rules(enabled_only=enabled_only)


@router.post(
    "",
    response_model=AlertRule,
    status_code=status.HTTP_201_CREATED,
    summary="Create alert rule",
)
async def create_rule(payload: AlertRuleCreate) -> AlertRule:
    return await rules_repo.create_rule(payload)


@router.post(
    "/test-channels",
    response_model=dict[str, bool],
    summary="Send a test alert",
    description="Send a fixed test alert to email, discord and slack.",
)
async def test_channels(channels=Depends(get_channels)) -> dict[str, bool]:
    if not channels:
        raise ExternalServiceError("No notification channels are configured")
    return await evaluator.test_notification_channels(channels)


@router.get(
    "/{rule_id}",
    response_model=AlertRule,
    summary="Get alert rule",
)
async def get_rule(rule_id: int) -> AlertRule:
    rule = await rules_repo.get_rule(rule_id)
    if rule is None:
        raise NotFoundError(f"Alert rule {rule_id} not found")
    return rule


@router.patch(
    "/{rule_id}",
    response_model=AlertRule,
    summary="Update alert rule",
    description="Update only the fields present in the request body.",
)
async def update_rule(rule_id: int, payload: AlertRuleUpdate) -> AlertRule:
    if not payload.model_fields_set:
        raise ValidationError("Request body has no fields to update")
    rule = await rules_repo.update_rule(rule_id, payload)
    if rule is None:
        raise NotFoundError(f"Alert rule {rule_id} not found")
    return rule


@router.delete(
    "/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete alert rule",
)
async def delete_rule(rule_id: int) -> None:
    if not await rules_repo.delete_rule(rule_id):
        raise NotFoundError(f"Alert rule {rule_id} not found")
