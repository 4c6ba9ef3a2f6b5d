"""
In-Memory Data Source

Holds records in plain dictionaries keyed by user id.
Used for offline mode (no Supabase configured) and throughout the tests.
"""

from typing import Any, Iterable, Optional

from finchat.models.records import (
    AccountRecord,
    CategoryRecord,
    InvestmentAssetRecord,
    LendBorrowRecord,
    PurchaseRecord,
    SavingsGoalRecord,
    TransactionRecord,
)
from finchat.services.storage.interface import FinancialDataSource, StorageError


class InMemoryFinancialDataSource(FinancialDataSource):
    """
    Dictionary-backed implementation of the Data Access collaborator.

    Rows may be given as record models or as raw dicts shaped like the
    hosted tables; dicts are parsed with the same record models.
    Setting `fail_with` makes every read raise, which is how tests
    simulate an unreachable store.
    """

    def __init__(self):
        self._rows: dict[str, dict[str, list[Any]]] = {}
        self.fail_with: Optional[Exception] = None

    def add(self, user_id: str, kind: str, rows: Iterable[Any]) -> None:
        """Append rows of one kind (e.g. "accounts") for a user."""
        self._rows.setdefault(user_id, {}).setdefault(kind, []).extend(rows)

    def _get(self, user_id: str, kind: str, model: type) -> list:
        if self.fail_with is not None:
            raise self.fail_with
        rows = self._rows.get(user_id, {}).get(kind, [])
        try:
            return [
                row if isinstance(row, model) else model.model_validate(row)
                for row in rows
            ]
        except ValueError as e:
            raise StorageError(f"Malformed {kind} row: {e}")

    async def get_accounts(self, user_id: str) -> list[AccountRecord]:
        return self._get(user_id, "accounts", AccountRecord)

    async def get_transactions(self, user_id: str) -> list[TransactionRecord]:
        transactions = self._get(user_id, "transactions", TransactionRecord)
        return sorted(transactions, key=lambda t: t.occurred_at, reverse=True)

    async def get_purchases(self, user_id: str) -> list[PurchaseRecord]:
        return self._get(user_id, "purchases", PurchaseRecord)

    async def get_lend_borrow(self, user_id: str) -> list[LendBorrowRecord]:
        return self._get(user_id, "lend_borrow", LendBorrowRecord)

    async def get_savings_goals(self, user_id: str) -> list[SavingsGoalRecord]:
        return self._get(user_id, "savings_goals", SavingsGoalRecord)

    async def get_categories(self, user_id: str) -> list[CategoryRecord]:
        return self._get(user_id, "categories", CategoryRecord)

    async def get_investment_assets(self, user_id: str) -> list[InvestmentAssetRecord]:
        return self._get(user_id, "investment_assets", InvestmentAssetRecord)
