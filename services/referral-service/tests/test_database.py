from __future__ import annotations

from dataclasses import replace

import pytest
from psycopg import IsolationLevel

from referral import database
from referral.config import get_settings


class FakePool:
    max_size = 1

    def __init__(self) -> None:
        self.opened = 0
        self.closed = 0

    def open(self) -> None:
        self.opened += 1

    def close(self) -> None:
        self.closed += 1


@pytest.fixture
def fake_pools(monkeypatch):
    created: list[FakePool] = []

    def build(settings):
        pool = FakePool()
        created.append(pool)
        return pool

    monkeypatch.setattr(database, "build_pool", build)
    monkeypatch.setattr(database, "_pool", None)
    return created


def test_pool_is_opened_lazily_once(fake_pools):
    assert fake_pools == []

    first = database.get_pool()
    second = database.get_pool()

    assert first is second
    assert len(fake_pools) == 1
    assert first.opened == 1


def test_close_pool_tears_down_and_allows_reopen(fake_pools):
    pool = database.get_pool()

    database.close_pool()
    database.close_pool()

    assert pool.closed == 1
    assert database.get_pool() is not pool


def test_isolation_level_from_settings():
    settings = replace(get_settings(), ledger_isolation_level="serializable")

    assert database._isolation_level(settings) is IsolationLevel.SERIALIZABLE
    assert database._isolation_level(replace(settings, ledger_isolation_level="")) is None


def test_unknown_isolation_level_rejected():
    settings = replace(get_settings(), ledger_isolation_level="chaos")

    with pytest.raises(ValueError):
        database._isolation_level(settings)
