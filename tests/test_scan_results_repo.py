"""
Tests for the forward-return queries of the scan results repository.

Statements are captured by a fake session and compiled for PostgreSQL.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
from sqlalchemy.dialects import postgresql

from screener.domain import ReturnRecord
from screener.repositories import scan_results_orm as scan_repo


class FakeResult:
    def all(self):
        return []


class FakeSession:
    def __init__(self):
        self.statements = []
        self.commits = 0

    async def execute(self, statement):
        self.statements.append(statement)
        return FakeResult()

    async def commit(self):
        self.commits += 1


@pytest.fixture
def session(monkeypatch) -> FakeSession:
    fake = FakeSession()

    @asynccontextmanager
    async def get_session():
        yield fake

    monkeypatch.setattr(scan_repo, "get_session", get_session)
    return fake


def compiled(statement):
    return statement.compile(dialect=postgresql.dialect())


class TestPendingPicks:
    """Tests for get_pending_picks."""

    @pytest.mark.asyncio
    async def test_selects_picks_not_marked_complete(self, session):
        assert await scan_repo.get_pending_picks(limit=25) == []

        sql = str(compiled(session.statements[0]))
        assert "scan_results.returns_complete IS false" in sql
        assert "return_1d IS NULL" not in sql


class TestUpdateReturns:
    """Tests for update_returns."""

    @pytest.mark.asyncio
    async def test_partial_window_overwrites_and_stays_pending(self, session):
        record = ReturnRecord(
            scan_result_id=7,
            return_1d=5.0,
            max_gain_5d=6.0,
            max_drawdown_5d=5.0,
        )

        assert await scan_repo.update_returns(record) is True

        statement = compiled(session.statements[0])
        assert "coalesce" not in str(statement).lower()
        params = statement.params
        assert params["return_1d"] == 5.0
        assert params["max_gain_5d"] == 6.0
        assert params["hit_target"] is False
        assert params["returns_complete"] is False
        assert "return_3d" not in params
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_closed_window_marks_complete(self, session):
        record = ReturnRecord(
            scan_result_id=7,
            return_1d=5.0,
            return_3d=-2.0,
            return_5d=10.0,
            max_gain_5d=12.0,
            max_drawdown_5d=5.0,
            hit_target=True,
            window_closed=True,
        )

        assert await scan_repo.update_returns(record) is True

        params = compiled(session.statements[0]).params
        assert params["return_5d"] == 10.0
        assert params["hit_target"] is True
        assert params["returns_complete"] is True
