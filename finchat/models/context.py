"""
Financial Context Snapshot Models

The snapshot is what every answer is computed from.
It is produced by the aggregator, cached per user, and handed
read-only to the response generator.

DESIGN DECISION: The snapshot is PURELY DERIVED.
It is built from the store's records at aggregation time and never
mutated afterwards. A stale snapshot is replaced, never patched.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# SNAPSHOT PARTS
# =============================================================================

class AccountSummary(BaseModel):
    """An account as presented to the user."""

    name: str
    type: str
    balance: float
    currency: str


class TransactionSummary(BaseModel):
    """A transaction (transfers already removed)."""

    description: str
    amount: float
    type: str
    category: str
    date: datetime

    @property
    def is_income(self) -> bool:
        return self.type == "income"

    @property
    def is_expense(self) -> bool:
        return self.type == "expense"


class FinancialSummary(BaseModel):
    """Headline aggregates."""

    total_balance: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_amount: float = 0.0
    account_count: int = 0
    transaction_count: int = 0
    category_breakdown: dict[str, float] = Field(default_factory=dict)
    this_month_expenses: float = 0.0
    last_month_expenses: float = 0.0
    primary_currency: str = "USD"


class PurchaseSummary(BaseModel):
    item_name: str
    amount: float
    status: str


class LendBorrowSummary(BaseModel):
    person_name: str
    amount: float
    type: str
    status: str
    due_date: Optional[datetime] = None


class BudgetStatus(BaseModel):
    """Monthly budget for one category and what was spent this month."""

    budget: float
    spent: float


class SavingsGoalProgress(BaseModel):
    name: str
    target_amount: float
    current_amount: float
    progress: float = Field(ge=0.0, le=100.0, description="Percent, clamped")
    remaining: float
    days_remaining: int
    target_date: Optional[datetime] = None


class InvestmentSummary(BaseModel):
    total_portfolio_value: float = 0.0
    total_cost_basis: float = 0.0
    total_gain_loss: float = 0.0
    return_percentage: float = 0.0
    asset_count: int = 0


class MonthlySpending(BaseModel):
    """Expenses for one calendar month. `month_num` is 1-12."""

    month: str
    amount: float
    year: int
    month_num: int


class CategoryAnomaly(BaseModel):
    """A category whose spending this month is well above its recent average."""

    category: str
    this_month: float
    avg_month: float
    increase: float = Field(description="Percent above the average")


class SpendingAnalytics(BaseModel):
    """Derived analytics: history, velocity, burn rate, anomalies."""

    monthly_spending: list[MonthlySpending] = Field(default_factory=list)
    avg_monthly_spending: float = 0.0
    daily_average: float = 0.0
    projected_month_end: float = 0.0
    monthly_income: float = 0.0
    net_monthly_rate: float = 0.0
    months_until_zero: Optional[int] = None
    category_anomalies: list[CategoryAnomaly] = Field(default_factory=list)


class CurrencyBreakdown(BaseModel):
    balance: float = 0.0
    income: float = 0.0
    expenses: float = 0.0

    @property
    def net(self) -> float:
        return self.income - self.expenses


# =============================================================================
# THE SNAPSHOT
# =============================================================================

class FinancialContext(BaseModel):
    """
    One user's financial snapshot.

    Frozen: the engine reads it, never writes it.
    """

    model_config = ConfigDict(frozen=True)

    accounts: list[AccountSummary] = Field(default_factory=list)
    transactions: list[TransactionSummary] = Field(default_factory=list)
    summary: FinancialSummary = Field(default_factory=FinancialSummary)
    purchases: list[PurchaseSummary] = Field(default_factory=list)
    lend_borrow: list[LendBorrowSummary] = Field(default_factory=list)
    budgets: dict[str, BudgetStatus] = Field(default_factory=dict)
    savings_goals: list[SavingsGoalProgress] = Field(default_factory=list)
    investments: InvestmentSummary = Field(default_factory=InvestmentSummary)
    analytics: SpendingAnalytics = Field(default_factory=SpendingAnalytics)
    currencies: dict[str, CurrencyBreakdown] = Field(default_factory=dict)

    # Set when the snapshot stands in for one that could not be built
    is_fallback: bool = False

    @classmethod
    def empty(cls, is_fallback: bool = False) -> "FinancialContext":
        """A well-formed, zero-valued snapshot."""
        return cls(is_fallback=is_fallback)

    @property
    def income_transactions(self) -> list[TransactionSummary]:
        return [t for t in self.transactions if t.is_income]

    @property
    def expense_transactions(self) -> list[TransactionSummary]:
        return [t for t in self.transactions if t.is_expense]


# =============================================================================
# CONVERSATION & QUERY MODELS
# =============================================================================

class MessageRole(str, Enum):
    """Who said it."""
    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(BaseModel):
    """One turn of a conversation."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: float = Field(description="Clock reading when recorded")


class DateRange(BaseModel):
    """
    A time window extracted from a question.

    Both ends are inclusive. Ephemeral: computed per request, never stored.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime
    label: str

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end
