"""Shared fixtures: fixed reference time, fake clocks and sample records."""

from datetime import datetime, timedelta

import pytest

from finchat.services.storage import InMemoryFinancialDataSource


# A Wednesday
NOW = datetime(2026, 3, 18, 12, 0, 0)


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def now():
    return NOW


def days_ago(days: int) -> str:
    return (NOW - timedelta(days=days)).isoformat()


@pytest.fixture
def source():
    """A user with one account, some income and categorised expenses."""
    data = InMemoryFinancialDataSource()
    data.add("user-1", "accounts", [
        {"id": "acc-1", "name": "Checking", "type": "bank", "balance": 500, "currency": "USD"},
    ])
    data.add("user-1", "transactions", [
        {"account_id": "acc-1", "description": "Salary", "amount": 1000, "type": "income",
         "category": "Salary", "created_at": days_ago(2)},
        {"account_id": "acc-1", "description": "Groceries", "amount": -300, "type": "expense",
         "category": "Food", "created_at": days_ago(3)},
        {"account_id": "acc-1", "description": "Bus pass", "amount": -100, "type": "expense",
         "category": "Transport", "created_at": days_ago(10)},
    ])
    data.add("user-1", "categories", [
        {"name": "Food", "monthly_budget": 250},
    ])
    return data
