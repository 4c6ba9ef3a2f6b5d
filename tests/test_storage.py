"""Tests for the data sources (no real Supabase project)."""

import pytest

from finchat.services.storage import (
    InMemoryFinancialDataSource,
    StorageError,
    SupabaseFinancialDataSource,
)


class FakeSupabaseClient:
    """Stands in for SupabaseClient.select_for_user."""

    def __init__(self, tables=None, error=None):
        self.tables = tables or {}
        self.error = error
        self.calls = []

    def select_for_user(self, table, user_id, order_by=None):
        self.calls.append((table, user_id, order_by))
        if self.error:
            raise self.error
        return self.tables.get(table, [])


class TestSupabaseFinancialDataSource:

    @pytest.mark.asyncio
    async def test_rows_parsed_into_records(self):
        client = FakeSupabaseClient({
            "accounts": [{"id": 1, "name": "Checking", "balance": "500", "currency": "USD", "user_id": "u"}],
        })
        source = SupabaseFinancialDataSource(client)

        (account,) = await source.get_accounts("u")

        assert account.name == "Checking"
        assert account.balance == 500.0
        assert client.calls == [("accounts", "u", None)]

    @pytest.mark.asyncio
    async def test_transactions_ordered_newest_first(self):
        client = FakeSupabaseClient()
        source = SupabaseFinancialDataSource(client)

        assert await source.get_transactions("u") == []
        assert client.calls == [("transactions", "u", "created_at")]

    @pytest.mark.asyncio
    async def test_client_failure_becomes_storage_error(self):
        source = SupabaseFinancialDataSource(FakeSupabaseClient(error=RuntimeError("timeout")))
        with pytest.raises(StorageError):
            await source.get_categories("u")

    @pytest.mark.asyncio
    async def test_malformed_row_becomes_storage_error(self):
        source = SupabaseFinancialDataSource(FakeSupabaseClient({"savings_goals": ["not a row"]}))
        with pytest.raises(StorageError):
            await source.get_savings_goals("u")


class TestInMemoryFinancialDataSource:

    @pytest.mark.asyncio
    async def test_empty_for_unknown_user(self):
        source = InMemoryFinancialDataSource()
        assert await source.get_accounts("nobody") == []
        assert await source.get_investment_assets("nobody") == []

    @pytest.mark.asyncio
    async def test_transactions_sorted_newest_first(self, source):
        transactions = await source.get_transactions("user-1")
        stamps = [t.occurred_at for t in transactions]
        assert stamps == sorted(stamps, reverse=True)

    @pytest.mark.asyncio
    async def test_fail_with(self):
        source = InMemoryFinancialDataSource()
        source.fail_with = StorageError("down")
        with pytest.raises(StorageError):
            await source.get_purchases("u")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
