"""
Supabase Data Source Implementation

DESIGN DECISION: The dashboard already keeps every record in Supabase,
so the query engine reads the same tables directly:
1. No second copy of the user's data
2. Row-level filtering by user_id on every query
3. Same source of truth as the dashboard screens

TRADEOFFS:
- The supabase-py client is synchronous; calls run in worker threads
- Whole tables are read per user (fine for personal-finance volumes)
- Aggregation happens in Python, not in SQL

The implementation follows the abstract interface, so the aggregator
never sees a Supabase type.
"""

import asyncio
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError
from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from finchat.config import SupabaseSettings, get_settings
from finchat.models.records import (
    AccountRecord,
    CategoryRecord,
    InvestmentAssetRecord,
    LendBorrowRecord,
    PurchaseRecord,
    SavingsGoalRecord,
    TransactionRecord,
)
from finchat.services.storage.interface import (
    ConnectionError,
    FinancialDataSource,
    StorageError,
)


RecordT = TypeVar("RecordT", bound=BaseModel)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Handles connection setup and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings or get_settings().supabase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Client:
        """Establish the Supabase client (once)."""
        if self._client is None:
            try:
                self._client = create_client(
                    self._settings.url,
                    self._settings.service_key,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")

        return self._client

    def select_for_user(
        self,
        table: str,
        user_id: str,
        order_by: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Read every row of `table` belonging to `user_id`."""
        query = self.connect().table(table).select("*").eq("user_id", user_id)
        if order_by:
            query = query.order(order_by, desc=True)
        response = query.execute()
        return response.data or []


class SupabaseFinancialDataSource(FinancialDataSource):
    """
    Supabase implementation of the Data Access collaborator.

    One table per record kind, all keyed by `user_id`.
    Transactions and purchases come back newest first.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def _fetch(
        self,
        table: str,
        user_id: str,
        model: type[RecordT],
        order_by: Optional[str] = None,
    ) -> list[RecordT]:
        """Fetch rows in a worker thread and parse them into records."""
        try:
            rows = await asyncio.to_thread(
                self._client.select_for_user, table, user_id, order_by
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {table}: {e}")

        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StorageError(f"Malformed rows in {table}: {e}")

    async def get_accounts(self, user_id: str) -> list[AccountRecord]:
        return await self._fetch("accounts", user_id, AccountRecord)

    async def get_transactions(self, user_id: str) -> list[TransactionRecord]:
        return await self._fetch(
            "transactions", user_id, TransactionRecord, order_by="created_at"
        )

    async def get_purchases(self, user_id: str) -> list[PurchaseRecord]:
        return await self._fetch(
            "purchases", user_id, PurchaseRecord, order_by="created_at"
        )

    async def get_lend_borrow(self, user_id: str) -> list[LendBorrowRecord]:
        return await self._fetch("lend_borrow", user_id, LendBorrowRecord)

    async def get_savings_goals(self, user_id: str) -> list[SavingsGoalRecord]:
        return await self._fetch("savings_goals", user_id, SavingsGoalRecord)

    async def get_categories(self, user_id: str) -> list[CategoryRecord]:
        return await self._fetch("categories", user_id, CategoryRecord)

    async def get_investment_assets(self, user_id: str) -> list[InvestmentAssetRecord]:
        return await self._fetch("investment_assets", user_id, InvestmentAssetRecord)
