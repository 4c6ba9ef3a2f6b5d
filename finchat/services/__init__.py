"""Services package."""

from finchat.services.remote import (
    RemoteGenerationClient,
    RemoteGenerationError,
    RemoteRequestError,
    RemoteTransportError,
    RemoteValidationError,
)
from finchat.services.storage import (
    ConnectionError,
    FinancialDataSource,
    InMemoryFinancialDataSource,
    StorageError,
    SupabaseClient,
    SupabaseFinancialDataSource,
)

__all__ = [
    # Remote generation
    "RemoteGenerationClient",
    "RemoteGenerationError",
    "RemoteRequestError",
    "RemoteTransportError",
    "RemoteValidationError",
    # Storage services
    "ConnectionError",
    "FinancialDataSource",
    "InMemoryFinancialDataSource",
    "StorageError",
    "SupabaseClient",
    "SupabaseFinancialDataSource",
]
