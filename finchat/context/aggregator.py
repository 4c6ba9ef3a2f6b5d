"""
Financial Context Aggregator

Builds the per-user FinancialContext snapshot from the raw records.

DESIGN DECISION: Aggregation FAILS SOFTLY.
If any record set cannot be fetched, the user gets an empty snapshot
(flagged `is_fallback`) and a friendly "no data yet" style answer rather
than an error. The failure is logged, never surfaced.

The computation itself (`build_context`) is a pure function of the
records and a reference time, so it can be tested without a store.
"""

import asyncio
import calendar
import math
from collections import defaultdict
from datetime import date, datetime, time
from typing import Callable, Iterable, Optional
from uuid import UUID

from finchat.audit import AuditLogger
from finchat.models.context import (
    AccountSummary,
    BudgetStatus,
    CategoryAnomaly,
    CurrencyBreakdown,
    FinancialContext,
    FinancialSummary,
    InvestmentSummary,
    LendBorrowSummary,
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
from finchat.queries.dates import shift_month
from finchat.services.storage import FinancialDataSource


HISTORY_MONTHS = 6
ANOMALY_LOOKBACK_MONTHS = 3
ANOMALY_THRESHOLD = 1.5


def _month_key(moment: datetime) -> tuple[int, int]:
    return moment.year, moment.month


def _as_datetime(day: Optional[date]) -> Optional[datetime]:
    return datetime.combine(day, time.min) if day else None


def build_context(
    accounts: list[AccountRecord],
    transactions: list[TransactionRecord],
    purchases: list[PurchaseRecord],
    lend_borrow: list[LendBorrowRecord],
    savings_goals: list[SavingsGoalRecord],
    categories: list[CategoryRecord],
    investment_assets: list[InvestmentAssetRecord],
    now: datetime,
) -> FinancialContext:
    """Derive a snapshot from raw records as of `now`."""
    transactions = [t for t in transactions if not t.is_transfer]
    income = [t for t in transactions if t.type == "income"]
    expenses = [t for t in transactions if t.type == "expense"]

    # Totals
    total_balance = sum(a.balance for a in accounts)
    total_income = sum(t.amount for t in income)
    total_expenses = sum(abs(t.amount) for t in expenses)

    category_breakdown: dict[str, float] = defaultdict(float)
    for t in expenses:
        category_breakdown[t.category] += abs(t.amount)

    # Expenses per calendar month and per (month, category)
    spend_by_month: dict[tuple[int, int], float] = defaultdict(float)
    spend_by_month_category: dict[tuple[int, int, str], float] = defaultdict(float)
    for t in expenses:
        key = _month_key(t.occurred_at)
        spend_by_month[key] += abs(t.amount)
        spend_by_month_category[(*key, t.category)] += abs(t.amount)

    current = _month_key(now)
    previous = shift_month(*current, 1)
    this_month_expenses = spend_by_month[current]
    last_month_expenses = spend_by_month[previous]

    primary_currency = accounts[0].currency if accounts else "USD"

    summary = FinancialSummary(
        total_balance=total_balance,
        total_income=total_income,
        total_expenses=total_expenses,
        net_amount=total_income - total_expenses,
        account_count=len(accounts),
        transaction_count=len(transactions),
        category_breakdown=dict(category_breakdown),
        this_month_expenses=this_month_expenses,
        last_month_expenses=last_month_expenses,
        primary_currency=primary_currency,
    )

    return FinancialContext(
        accounts=[
            AccountSummary(name=a.name, type=a.type, balance=a.balance, currency=a.currency)
            for a in accounts
        ],
        transactions=[
            TransactionSummary(
                description=t.description,
                amount=t.amount,
                type=t.type,
                category=t.category,
                date=t.occurred_at,
            )
            for t in transactions
        ],
        summary=summary,
        purchases=[
            PurchaseSummary(item_name=p.item_name, amount=p.amount, status=p.status)
            for p in purchases
        ],
        lend_borrow=[
            LendBorrowSummary(
                person_name=lb.person_name,
                amount=lb.amount,
                type=lb.type,
                status=lb.status,
                due_date=_as_datetime(lb.due_date),
            )
            for lb in lend_borrow
        ],
        budgets=_budgets(categories, spend_by_month_category, current),
        savings_goals=[_goal_progress(goal, now) for goal in savings_goals],
        investments=_investments(investment_assets),
        analytics=_analytics(
            income, spend_by_month, spend_by_month_category,
            category_breakdown.keys(), total_balance, now,
        ),
        currencies=_currency_breakdown(accounts, income, expenses),
    )


def _budgets(
    categories: list[CategoryRecord],
    spend_by_month_category: dict[tuple[int, int, str], float],
    current: tuple[int, int],
) -> dict[str, BudgetStatus]:
    """Categories with a positive monthly budget and this month's spending in them."""
    return {
        c.name: BudgetStatus(
            budget=c.monthly_budget,
            spent=spend_by_month_category.get((*current, c.name), 0.0),
        )
        for c in categories
        if c.monthly_budget > 0
    }


def _goal_progress(goal: SavingsGoalRecord, now: datetime) -> SavingsGoalProgress:
    progress = (
        goal.current_amount / goal.target_amount * 100
        if goal.target_amount > 0 else 0.0
    )
    target = _as_datetime(goal.target_date)
    days_remaining = (
        math.ceil((target - now).total_seconds() / 86400) if target else 0
    )
    return SavingsGoalProgress(
        name=goal.name,
        target_amount=goal.target_amount,
        current_amount=goal.current_amount,
        progress=min(100.0, max(0.0, progress)),
        remaining=goal.target_amount - goal.current_amount,
        days_remaining=days_remaining,
        target_date=target,
    )


def _investments(assets: list[InvestmentAssetRecord]) -> InvestmentSummary:
    value = sum(a.current_value for a in assets)
    cost = sum(a.cost_basis for a in assets)
    gain = value - cost
    return InvestmentSummary(
        total_portfolio_value=value,
        total_cost_basis=cost,
        total_gain_loss=gain,
        return_percentage=gain / cost * 100 if cost > 0 else 0.0,
        asset_count=len(assets),
    )


def _analytics(
    income: list[TransactionRecord],
    spend_by_month: dict[tuple[int, int], float],
    spend_by_month_category: dict[tuple[int, int, str], float],
    category_names: Iterable[str],
    total_balance: float,
    now: datetime,
) -> SpendingAnalytics:
    current = _month_key(now)

    # History: current month first, then the five before it
    history = []
    for back in range(HISTORY_MONTHS):
        year, month = shift_month(*current, back)
        history.append(MonthlySpending(
            month=calendar.month_name[month],
            amount=spend_by_month.get((year, month), 0.0),
            year=year,
            month_num=month,
        ))
    avg_monthly = sum(m.amount for m in history) / len(history)

    # Velocity
    this_month = spend_by_month.get(current, 0.0)
    days_in_month = calendar.monthrange(*current)[1]
    daily_average = this_month / now.day
    projected = daily_average * days_in_month

    # Burn rate
    monthly_income = sum(t.amount for t in income if _month_key(t.occurred_at) == current)
    net_rate = monthly_income - this_month
    months_until_zero = (
        math.floor(total_balance / abs(net_rate))
        if net_rate < 0 and total_balance > 0 else None
    )

    # Anomalies: this month against the average of the preceding months
    lookback = [shift_month(*current, back) for back in range(1, ANOMALY_LOOKBACK_MONTHS + 1)]
    anomalies = []
    for category in category_names:
        this_month_spent = spend_by_month_category.get((*current, category), 0.0)
        average = sum(
            spend_by_month_category.get((*key, category), 0.0) for key in lookback
        ) / ANOMALY_LOOKBACK_MONTHS
        if average > 0 and this_month_spent >= average * ANOMALY_THRESHOLD:
            anomalies.append(CategoryAnomaly(
                category=category,
                this_month=this_month_spent,
                avg_month=average,
                increase=(this_month_spent - average) / average * 100,
            ))
    anomalies.sort(key=lambda a: a.increase, reverse=True)

    return SpendingAnalytics(
        monthly_spending=history,
        avg_monthly_spending=avg_monthly,
        daily_average=daily_average,
        projected_month_end=projected,
        monthly_income=monthly_income,
        net_monthly_rate=net_rate,
        months_until_zero=months_until_zero,
        category_anomalies=anomalies,
    )


def _currency_breakdown(
    accounts: list[AccountRecord],
    income: list[TransactionRecord],
    expenses: list[TransactionRecord],
) -> dict[str, CurrencyBreakdown]:
    """Balance, income and expenses per account currency."""
    currency_of = {a.id: a.currency for a in accounts if a.id is not None}
    breakdown: dict[str, CurrencyBreakdown] = {}

    for account in accounts:
        entry = breakdown.setdefault(account.currency, CurrencyBreakdown())
        entry.balance += account.balance

    for t in income:
        currency = currency_of.get(t.account_id)
        if currency:
            breakdown[currency].income += t.amount
    for t in expenses:
        currency = currency_of.get(t.account_id)
        if currency:
            breakdown[currency].expenses += abs(t.amount)

    return breakdown


class FinancialContextAggregator:
    """
    Fetches a user's records and derives the snapshot.

    All seven record sets are fetched concurrently.
    """

    def __init__(
        self,
        source: FinancialDataSource,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._source = source
        self._audit = audit_logger or AuditLogger()
        self._clock = clock

    async def aggregate(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> FinancialContext:
        """
        Build the snapshot for `user_id`.

        Never raises for data errors: an empty snapshot with
        `is_fallback=True` is returned instead.
        """
        try:
            records = await asyncio.gather(
                self._source.get_accounts(user_id),
                self._source.get_transactions(user_id),
                self._source.get_purchases(user_id),
                self._source.get_lend_borrow(user_id),
                self._source.get_savings_goals(user_id),
                self._source.get_categories(user_id),
                self._source.get_investment_assets(user_id),
            )
            context = build_context(*records, now=self._clock())
        except Exception as e:
            self._audit.log_aggregation_failed(user_id, e, correlation_id)
            return FinancialContext.empty(is_fallback=True)

        self._audit.log_context_aggregated(
            user_id=user_id,
            account_count=context.summary.account_count,
            transaction_count=context.summary.transaction_count,
            correlation_id=correlation_id,
        )
        return context
