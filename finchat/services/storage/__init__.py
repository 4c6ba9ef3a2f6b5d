"""
Storage Services Package

Provides the abstract Data Access interface and concrete implementations.
Supabase is the production backend; the in-memory source serves offline
mode and tests.
"""

from finchat.services.storage.interface import (
    ConnectionError,
    FinancialDataSource,
    StorageError,
)
from finchat.services.storage.memory import InMemoryFinancialDataSource
from finchat.services.storage.supabase_source import (
    SupabaseClient,
    SupabaseFinancialDataSource,
)

__all__ = [
    # Interface
    "FinancialDataSource",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "InMemoryFinancialDataSource",
    "SupabaseClient",
    "SupabaseFinancialDataSource",
]
