"""
Abstract Financial Data Source

DESIGN DECISION: We define an abstract interface for reading a user's
financial records. This allows us to:
1. Read from the hosted Supabase database in production
2. Use in-memory records for offline mode and testing
3. Keep the aggregator decoupled from how rows are fetched

The interface is read-only. The query engine never writes financial data.
"""

from abc import ABC, abstractmethod

from finchat.models.records import (
    AccountRecord,
    CategoryRecord,
    InvestmentAssetRecord,
    LendBorrowRecord,
    PurchaseRecord,
    SavingsGoalRecord,
    TransactionRecord,
)


class FinancialDataSource(ABC):
    """
    Abstract interface for the Data Access collaborator.

    Every method returns an empty list when the user has no rows,
    and raises StorageError when the rows cannot be fetched.
    """

    @abstractmethod
    async def get_accounts(self, user_id: str) -> list[AccountRecord]:
        """
        Get all accounts of a user.

        Args:
            user_id: The user's identifier

        Returns:
            List of accounts (possibly empty)

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get_transactions(self, user_id: str) -> list[TransactionRecord]:
        """
        Get all transactions of a user, newest first.

        Args:
            user_id: The user's identifier

        Returns:
            List of transactions ordered by creation time, descending

        Raises:
            StorageError: If the fetch fails
        """
        pass

    @abstractmethod
    async def get_purchases(self, user_id: str) -> list[PurchaseRecord]:
        """Get planned and completed purchases."""
        pass

    @abstractmethod
    async def get_lend_borrow(self, user_id: str) -> list[LendBorrowRecord]:
        """Get money lent to and borrowed from other people."""
        pass

    @abstractmethod
    async def get_savings_goals(self, user_id: str) -> list[SavingsGoalRecord]:
        """Get savings goals."""
        pass

    @abstractmethod
    async def get_categories(self, user_id: str) -> list[CategoryRecord]:
        """Get spending categories with their monthly budgets."""
        pass

    @abstractmethod
    async def get_investment_assets(self, user_id: str) -> list[InvestmentAssetRecord]:
        """Get investment holdings."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
