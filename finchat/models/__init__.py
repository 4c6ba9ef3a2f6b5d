"""
Data Models Package

This package contains all Pydantic models used in the Finchat engine.
Records coming from the store, the derived snapshot and the audit trail
must all conform to these schemas.
"""

from finchat.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finchat.models.context import (
    AccountSummary,
    BudgetStatus,
    CategoryAnomaly,
    ConversationMessage,
    CurrencyBreakdown,
    DateRange,
    FinancialContext,
    FinancialSummary,
    InvestmentSummary,
    LendBorrowSummary,
    MessageRole,
    MonthlySpending,
    PurchaseSummary,
    SavingsGoalProgress,
    SpendingAnalytics,
    TransactionSummary,
)
from finchat.models.records import (
    AccountRecord,
    CategoryRecord,
    InvestmentAssetRecord,
    LendBorrowRecord,
    PurchaseRecord,
    SavingsGoalRecord,
    TransactionRecord,
)

__all__ = [
    # Store records
    "AccountRecord",
    "CategoryRecord",
    "InvestmentAssetRecord",
    "LendBorrowRecord",
    "PurchaseRecord",
    "SavingsGoalRecord",
    "TransactionRecord",
    # Snapshot
    "AccountSummary",
    "BudgetStatus",
    "CategoryAnomaly",
    "CurrencyBreakdown",
    "FinancialContext",
    "FinancialSummary",
    "InvestmentSummary",
    "LendBorrowSummary",
    "MonthlySpending",
    "PurchaseSummary",
    "SavingsGoalProgress",
    "SpendingAnalytics",
    "TransactionSummary",
    # Conversation and queries
    "ConversationMessage",
    "DateRange",
    "MessageRole",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
