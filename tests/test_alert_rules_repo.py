"""
Tests for loading stored alert rules.
"""

from __future__ import annotations

import pytest

from screener.database.orm import AlertRule as AlertRuleRow
from screener.repositories import alert_rules_orm as rules_repo


def row(rule_id: int, conditions=None, channels=("discord",), **overrides) -> AlertRuleRow:
    values = dict(
        id=rule_id,
        name=f"Rule {rule_id}",
        description=None,
        enabled=True,
        alert_type="runner",
        conditions=conditions if conditions is not None else {"attention_min": 70},
        channels=list(channels),
    )
    values.update(overrides)
    return AlertRuleRow(**values)


class TestValidRules:
    """Tests for valid_rules."""

    def test_converts_rows(self):
        rules = rules_repo.valid_rules([row(1), row(2, {"classification": ["value"]})])

        assert [r.id for r in rules] == [1, 2]
        assert rules[0].conditions.attention_min == 70
        assert rules[1].conditions.classification == ["value"]

    def test_skips_legacy_camel_case_conditions(self):
        rules = rules_repo.valid_rules([row(1, {"attentionMin": 70}), row(2)])
        assert [r.id for r in rules] == [2]

    def test_skips_rule_without_channels(self):
        rules = rules_repo.valid_rules([row(1, channels=()), row(2)])
        assert [r.id for r in rules] == [2]


class TestLoadEnabledRules:
    """Tests for load_enabled_rules."""

    @pytest.mark.asyncio
    async def test_returns_enabled_rules(self, monkeypatch):
        seen = {}

        async def fake_list(enabled_only=False):
            seen["enabled_only"] = enabled_only
            return rules_repo.valid_rules([row(4)])

        monkeypatch.setattr(rules_repo, "list_rules", fake_list)

        rules = await rules_repo.load_enabled_rules()

        assert [r.id for r in rules] == [4]
        assert seen["enabled_only"] is True

    @pytest.mark.asyncio
    async def test_unreadable_rules_load_as_empty(self, monkeypatch):
        async def fake_list(enabled_only=False):
            raise ConnectionRefusedError("database is down")

        monkeypatch.setattr(rules_repo, "list_rules", fake_list)

        assert await rules_repo.load_enabled_rules() == []
