"""
Response Generator

Turns a classified question and the user's snapshot into answer text.

CRITICAL BOUNDARIES:
- Every number in an answer comes from the FinancialContext snapshot
- "No data yet" and "data present but zero" get different answers:
  the first onboards the user, the second confirms neutrally
- Conversation history is read, never written

DESIGN DECISION: Dispatch is an ordered table of (intent, handler).
Which intent a question belongs to is decided by the interpreter's
declared priority; this module only knows how to answer each one.
"""

import calendar
import re
from datetime import datetime
from functools import partial
from typing import Callable, Optional

from finchat.models.context import (
    ConversationMessage,
    FinancialContext,
    MessageRole,
    TransactionSummary,
)
from finchat.queries.dates import describe_range, filter_by_date_range
from finchat.queries.formatting import format_currency, format_percent, progress_bar
from finchat.queries.interpreter import Intent, ParsedQuery, interpret


_FOLLOW_UP = re.compile(r"\b(what about|and|also|more|tell me more|how about|what else)\b")

_FINANCIAL_VOCABULARY = frozenset({
    "balance", "income", "expense", "spending", "account",
    "transaction", "budget", "savings",
})

_WHO_I_OWE = re.compile(r"\b(who.*\bi\b.*owe|i owe|borrowed from|whom)\b")
_WHO_OWES_ME = re.compile(r"\b(who.*owe|who owes|lent to|owes me)\b")


def _plural(count: int, word: str, plural: Optional[str] = None) -> str:
    return word if count == 1 else (plural or f"{word}s")


def _expense_total(transactions: list[TransactionSummary]) -> float:
    return sum(abs(t.amount) for t in transactions)


Handler = Callable[[ParsedQuery, FinancialContext, list[ConversationMessage]], str]


class ResponseGenerator:
    """
    Rule-based answer templates.

    Deterministic for a given question, snapshot, history and clock reading.
    """

    def __init__(
        self,
        assistant_name: str = "Balanzo",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._name = assistant_name
        self._clock = clock

        self._handlers: dict[Intent, Handler] = {
            Intent.TREND_COMPARISON: self._trend_comparison,
            Intent.FORECAST: self._forecast,
            Intent.BURN_RATE: self._burn_rate,
            Intent.ANOMALIES: self._anomalies,
            Intent.SPENDING_VELOCITY: self._spending_velocity,
            Intent.MULTI_CURRENCY: self._multi_currency,
            Intent.TOP_CATEGORIES: self._top_categories,
            Intent.CATEGORY_BREAKDOWN: self._category_breakdown,
            Intent.CATEGORY_LOOKUP: self._category_lookup,
            Intent.BALANCE: self._balance,
            Intent.INCOME: self._income,
            Intent.EXPENSES: self._expenses,
            Intent.SAVINGS_GOALS: self._savings_goals,
            Intent.NET_SAVINGS: self._net_savings,
            Intent.PERIOD_SPENDING: self._period_spending,
            Intent.ACCOUNTS: self._accounts,
            Intent.RECENT_TRANSACTIONS: self._recent_transactions,
            Intent.TRANSACTION_COUNT: self._transaction_count,
            Intent.LEND_BORROW: self._lend_borrow,
            Intent.PURCHASES: self._purchases,
            Intent.FINANCIAL_SUMMARY: self._financial_summary,
            Intent.BUDGET_STATUS: self._budget_status,
            Intent.INVESTMENTS: self._investments,
            Intent.RECOMMENDATIONS: self._recommendations,
            Intent.HELP: self._help,
            Intent.DEFAULT: self._default,
        }

    def generate(
        self,
        question: str,
        context: FinancialContext,
        history: Optional[list[ConversationMessage]] = None,
    ) -> str:
        """Answer `question` from `context`, using `history` for follow-ups."""
        parsed = interpret(question, context, now=self._clock())
        return self.respond(parsed, context, list(history or []))

    def respond(
        self,
        parsed: ParsedQuery,
        context: FinancialContext,
        history: list[ConversationMessage],
    ) -> str:
        """Answer an already interpreted question."""
        return self._handlers[parsed.intent](parsed, context, history)

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _money(context: FinancialContext, amount: float) -> str:
        return format_currency(amount, context.summary.primary_currency)

    def _month_progress(self) -> tuple[int, int]:
        """(day of month, days in month) for the clock's current date."""
        now = self._clock()
        return now.day, calendar.monthrange(now.year, now.month)[1]

    # -------------------------------------------------------------------------
    # balances and accounts
    # -------------------------------------------------------------------------

    def _balance(self, parsed, context, history) -> str:
        accounts = context.accounts
        if not accounts:
            return (
                "You don't have any accounts set up yet. Add an account to start tracking your balance! 💰\n\n"
                "To get started:\n1. Go to Accounts\n2. Click 'Add Account'\n3. Enter your account details"
            )
        if context.summary.total_balance == 0:
            count = len(accounts)
            subject = "it has" if count == 1 else "they have"
            return (
                f"You have {count} {_plural(count, 'account')} set up, but {subject} a balance of "
                f"{self._money(context, 0)}.\n\n💡 Add some transactions to see your balance update!"
            )
        lines = "\n".join(
            f"💰 {a.name}: {format_currency(a.balance, a.currency)}" for a in accounts
        )
        return (
            f"Here's your account balance:\n\n{lines}\n\n"
            f"💵 **Total Balance:** {self._money(context, context.summary.total_balance)}"
        )

    def _accounts(self, parsed, context, history) -> str:
        accounts = context.accounts
        if not accounts:
            return (
                "You don't have any accounts yet. 🏦\n\n"
                "To get started:\n1. Go to Accounts\n2. Click 'Add Account'\n"
                "3. Enter your account name, type, and initial balance\n\n"
                f"This helps {self._name} track your finances!"
            )
        lines = "\n".join(
            f"🏦 {a.name} ({a.type}): {format_currency(a.balance, a.currency)}" for a in accounts
        )
        return f"You have {len(accounts)} {_plural(len(accounts), 'account')}:\n\n{lines}"

    # -------------------------------------------------------------------------
    # income and expenses
    # -------------------------------------------------------------------------

    def _income(self, parsed, context, history) -> str:
        income = context.income_transactions
        money = partial(self._money, context)

        if parsed.date_range:
            in_range = filter_by_date_range(income, parsed.date_range)
            phrase = describe_range(parsed.date_range)
            if not in_range:
                return (
                    f"You didn't record any income {phrase}.\n\n"
                    "💡 To track your income:\n1. Go to Transactions\n2. Click 'Add Transaction'\n"
                    "3. Select 'Income' as the type\n4. Enter the amount and details"
                )
            total = sum(t.amount for t in in_range)
            count = len(in_range)
            return (
                f"Great! {phrase[0].upper()}{phrase[1:]}, you earned {money(total)} from "
                f"{count} income {_plural(count, 'transaction')}. 💰"
            )

        if not income:
            return (
                "You haven't recorded any income yet. 📈\n\n"
                "To start tracking your income:\n1. Go to Transactions\n2. Click 'Add Transaction'\n"
                "3. Select 'Income' as the type\n4. Enter the amount and details\n\n"
                f"This will help {self._name} provide better financial insights!"
            )
        count = len(income)
        if context.summary.total_income == 0:
            return (
                f"You have {count} income {_plural(count, 'transaction')} recorded, but the total amount is "
                f"{money(0)}.\n\n💡 Make sure your income transactions have positive amounts."
            )
        return (
            f"Your total income is **{money(context.summary.total_income)}** from {count} "
            f"{_plural(count, 'transaction')}. Keep up the great work! 💰"
        )

    def _expenses(self, parsed, context, history) -> str:
        expenses = context.expense_transactions
        money = partial(self._money, context)

        if parsed.date_range:
            in_range = filter_by_date_range(expenses, parsed.date_range)
            phrase = describe_range(parsed.date_range)
            if not in_range:
                return (
                    f"You didn't record any expenses {phrase}. 💸\n\n"
                    "To track expenses:\n1. Go to Transactions\n2. Click 'Add Transaction'\n"
                    "3. Select 'Expense' as the type\n4. Enter the amount and category"
                )
            count = len(in_range)
            return (
                f"{phrase[0].upper()}{phrase[1:]}, you spent **{money(_expense_total(in_range))}** across "
                f"{count} expense {_plural(count, 'transaction')}. 💸"
            )

        if not expenses:
            return (
                "You haven't recorded any expenses yet. 💸\n\n"
                "To start tracking:\n1. Go to Transactions\n2. Click 'Add Transaction'\n"
                "3. Select 'Expense' as the type\n4. Enter the amount, category, and details\n\n"
                f"This helps {self._name} provide better spending insights!"
            )
        count = len(expenses)
        if context.summary.total_expenses == 0:
            return (
                f"You have {count} expense {_plural(count, 'transaction')} recorded, but the total amount is "
                f"{money(0)}.\n\n💡 Make sure your expense transactions have amounts entered."
            )
        return (
            f"Your total expenses are **{money(context.summary.total_expenses)}** from {count} "
            f"{_plural(count, 'transaction')}. 💸"
        )

    def _period_spending(self, parsed, context, history) -> str:
        summary = context.summary
        money = partial(self._money, context)
        last_month_note = (
            f" Last month you spent {money(summary.last_month_expenses)}."
            if summary.last_month_expenses > 0 else ""
        )

        if parsed.date_range:
            in_range = filter_by_date_range(context.expense_transactions, parsed.date_range)
            phrase = describe_range(parsed.date_range)
            if not in_range:
                return f"You didn't record any expenses {phrase}."
            note = last_month_note if parsed.date_range.label == "This Month" else ""
            return f"{phrase[0].upper()}{phrase[1:]}, you spent {money(_expense_total(in_range))}.{note}"

        return f"This month, you've spent {money(summary.this_month_expenses)}.{last_month_note}"

    def _net_savings(self, parsed, context, history) -> str:
        summary = context.summary
        net = summary.net_amount
        if summary.total_income == 0 and summary.total_expenses == 0:
            return (
                "I can't calculate your net amount yet because you don't have any income or expense "
                "transactions. 💰\n\n"
                "To see your net savings:\n1. Add income transactions\n2. Add expense transactions\n"
                "3. Ask again to see your net amount"
            )
        if net > 0:
            return (
                f"🎉 Great news! You're saving money! Your net amount is **{self._money(context, net)}** "
                "- that's fantastic! Keep up the excellent work! 💰"
            )
        if net < 0:
            return (
                f"Your net amount is **{self._money(context, net)}** in the negative. 💡 Consider reviewing "
                "your expenses to improve your financial health. I can help you identify areas where you "
                "might be able to cut back - just ask!"
            )
        return (
            f"Your income and expenses are perfectly balanced at **{self._money(context, 0)}**. "
            "You're breaking even! 💰"
        )

    # -------------------------------------------------------------------------
    # categories
    # -------------------------------------------------------------------------

    def _ranked_categories(self, context: FinancialContext, limit: int) -> list[str]:
        summary = context.summary
        ranked = sorted(summary.category_breakdown.items(), key=lambda item: item[1], reverse=True)
        lines = []
        for index, (category, amount) in enumerate(ranked[:limit], start=1):
            share = amount / summary.total_expenses * 100 if summary.total_expenses > 0 else 0.0
            lines.append(
                f"{index}. 📊 {category}: {self._money(context, amount)} ({format_percent(share)})"
            )
        return lines

    def _top_categories(self, parsed, context, history) -> str:
        lines = self._ranked_categories(context, limit=5)
        if not lines:
            return (
                "You don't have enough spending data yet to show top categories. 💸\n\n"
                "To see category breakdown:\n1. Add expense transactions\n"
                "2. Assign categories to your expenses\n3. Ask again to see your top spending areas"
            )
        return "Here are your top spending categories:\n\n" + "\n".join(lines)

    def _category_breakdown(self, parsed, context, history) -> str:
        lines = self._ranked_categories(context, limit=10)
        if not lines:
            return (
                "You don't have any spending by category yet. 📊\n\n"
                "To see category breakdown:\n1. Go to Transactions\n2. Add expense transactions\n"
                "3. Assign categories to your expenses\n4. Ask again to see your spending breakdown"
            )
        return "Here's your spending by category:\n\n" + "\n".join(lines)

    def _category_lookup(self, parsed, context, history) -> str:
        category = parsed.category
        if parsed.date_range:
            in_range = [
                t for t in filter_by_date_range(context.expense_transactions, parsed.date_range)
                if t.category == category
            ]
            phrase = describe_range(parsed.date_range)
            if not in_range:
                return f"You didn't spend anything on {category} {phrase}."
            return f"You've spent {self._money(context, _expense_total(in_range))} on {category} {phrase}."

        amount = context.summary.category_breakdown.get(category, 0.0)
        return f"You've spent {self._money(context, amount)} on {category}."

    # -------------------------------------------------------------------------
    # transactions
    # -------------------------------------------------------------------------

    def _transaction_count(self, parsed, context, history) -> str:
        count = context.summary.transaction_count
        if count == 0:
            return (
                "You don't have any transactions recorded yet. 📝\n\n"
                "To add transactions:\n1. Go to Transactions\n2. Click 'Add Transaction'\n"
                "3. Choose Income or Expense\n4. Enter the details\n\n"
                "Start tracking to see your financial data!"
            )
        incomes = len(context.income_transactions)
        expenses = len(context.expense_transactions)
        return (
            f"You have {count} {_plural(count, 'transaction')} recorded. "
            f"({incomes} income, {expenses} {_plural(expenses, 'expense')})"
        )

    def _recent_transactions(self, parsed, context, history) -> str:
        transactions = context.transactions
        if not transactions:
            return (
                "You don't have any transactions yet. 📝\n\n"
                "To see recent transactions:\n1. Go to Transactions\n"
                "2. Add some transactions (Income or Expense)\n3. Ask again to see your recent activity"
            )

        heading = "Here are your recent transactions:"
        if parsed.date_range:
            transactions = filter_by_date_range(transactions, parsed.date_range)
            phrase = describe_range(parsed.date_range)
            if not transactions:
                return f"You don't have any transactions {phrase}."
            heading = f"Here are your transactions {phrase}:"

        lines = []
        for t in transactions[:5]:
            icon, sign = ("💰", "+") if t.is_income else ("💸", "-")
            lines.append(f"{icon} {t.description}: {sign}{self._money(context, t.amount)} ({t.category})")
        return f"{heading}\n\n" + "\n".join(lines)

    # -------------------------------------------------------------------------
    # lend / borrow and purchases
    # -------------------------------------------------------------------------

    def _lend_borrow(self, parsed, context, history) -> str:
        now = self._clock()
        money = partial(self._money, context)
        active = [lb for lb in context.lend_borrow if lb.status == "active"]
        lent = [lb for lb in active if lb.type == "lent"]
        borrowed = [lb for lb in active if lb.type == "borrowed"]
        overdue = [lb for lb in lent if lb.due_date is not None and lb.due_date < now]

        if not lent and not borrowed:
            if context.lend_borrow:
                return "All your lend/borrow records are settled. ✅"
            return (
                "You don't have any active lend/borrow records. 🤝\n\n"
                "To track money you lend or borrow:\n1. Go to Lend & Borrow\n2. Add a record\n"
                "3. Ask again to see who owes what"
            )

        if _WHO_I_OWE.search(parsed.lower):
            if not borrowed:
                return "You don't owe anyone money."
            lines = "\n".join(f"• {lb.person_name}: {money(lb.amount)}" for lb in borrowed)
            total = sum(lb.amount for lb in borrowed)
            return f"People you owe money to:\n\n{lines}\n\n💸 Total: {money(total)}"

        if _WHO_OWES_ME.search(parsed.lower):
            if not lent:
                return "No one currently owes you money."
            lines = "\n".join(f"• {lb.person_name}: {money(lb.amount)}" for lb in lent)
            total = sum(lb.amount for lb in lent)
            response = f"People who owe you money:\n\n{lines}\n\n💰 Total: {money(total)}"
            if overdue:
                response += f"\n\n⚠️ Overdue: {len(overdue)} {_plural(len(overdue), 'record')}"
            return response

        parts = []
        if lent:
            parts.append(
                f"💰 You've lent {money(sum(lb.amount for lb in lent))} to {len(lent)} "
                f"{_plural(len(lent), 'person', 'people')}."
            )
            if overdue:
                verb = "is" if len(overdue) == 1 else "are"
                parts.append(f"⚠️ {len(overdue)} {verb} overdue.")
        if borrowed:
            parts.append(
                f"💸 You've borrowed {money(sum(lb.amount for lb in borrowed))} from {len(borrowed)} "
                f"{_plural(len(borrowed), 'person', 'people')}."
            )
        return "\n".join(parts)

    def _purchases(self, parsed, context, history) -> str:
        purchases = context.purchases
        if not purchases:
            return (
                "You don't have any purchases recorded yet. 🛒\n\n"
                "Add planned or completed purchases to keep track of big-ticket items!"
            )
        total = sum(p.amount for p in purchases)
        planned = [p for p in purchases if p.status == "planned"]
        response = (
            f"You have {len(purchases)} {_plural(len(purchases), 'purchase')} recorded, "
            f"totaling {self._money(context, total)}."
        )
        if planned:
            verb = "is" if len(planned) == 1 else "are"
            response += f" {len(planned)} {verb} still planned."
        return response

    # -------------------------------------------------------------------------
    # summary, budgets, goals, investments
    # -------------------------------------------------------------------------

    def _financial_summary(self, parsed, context, history) -> str:
        summary = context.summary
        if (
            summary.account_count == 0
            or summary.transaction_count == 0
            or (summary.total_income == 0 and summary.total_expenses == 0)
        ):
            return (
                "I don't have enough data to provide a financial summary yet. 📊\n\n"
                "To get started:\n1. Add at least one account\n"
                "2. Add some transactions (Income or Expense)\n3. Ask again for your financial summary\n\n"
                f"This helps {self._name} give you better insights!"
            )

        money = partial(self._money, context)
        lines = [
            "Here's your financial summary:\n",
            f"💰 **Total Balance:** {money(summary.total_balance)}",
            f"📈 **Total Income:** {money(summary.total_income)}",
            f"📉 **Total Expenses:** {money(summary.total_expenses)}",
            f"💵 **Net Amount:** {'-' if summary.net_amount < 0 else ''}{money(summary.net_amount)}",
        ]
        if summary.total_income > 0:
            rate = summary.net_amount / summary.total_income * 100
            line = f"📊 **Savings Rate:** {format_percent(rate)}"
            if rate > 20:
                line += " - Excellent! 🎉"
            elif rate > 10:
                line += " - Good job! 👍"
            lines.append(line)
        lines.append(f"🏦 **Accounts:** {summary.account_count}")
        lines.append(f"📝 **Transactions:** {summary.transaction_count}")
        return "\n".join(lines)

    def _budget_status(self, parsed, context, history) -> str:
        if not context.budgets:
            return (
                "You don't have any budgets set up yet. 💵\n\n"
                "To set up budgets:\n1. Go to Categories or Budgets\n"
                "2. Set monthly budget limits for your spending categories\n"
                "3. Ask again to see your budget status\n\n"
                "This helps you track spending against your goals!"
            )

        money = partial(self._money, context)
        over, on_track, under = [], [], []
        for category, status in context.budgets.items():
            used = status.spent / status.budget * 100
            remaining = status.budget - status.spent
            if status.spent > status.budget:
                over.append(
                    f"{category}: {money(status.spent)} spent ({money(status.budget)} budget) "
                    f"- Over by {money(remaining)}"
                )
            elif used >= 80:
                on_track.append(
                    f"{category}: {money(status.spent)} / {money(status.budget)} ({format_percent(used)})"
                )
            else:
                under.append(f"{category}: {money(remaining)} remaining ({format_percent(used)} used)")

        sections = []
        if over:
            sections.append("⚠️ Over Budget:\n" + "\n".join(f"• {line}" for line in over))
        if on_track:
            sections.append("📊 On Track (80%+):\n" + "\n".join(f"• {line}" for line in on_track))
        if under:
            sections.append("✅ Under Budget:\n" + "\n".join(f"• {line}" for line in under))
        return "Here's your budget status:\n\n" + "\n\n".join(sections)

    def _savings_goals(self, parsed, context, history) -> str:
        goals = context.savings_goals
        if not goals:
            return (
                "You don't have any savings goals set up yet. "
                "Create a savings goal to track your progress! 🎯"
            )

        money = partial(self._money, context)
        blocks = []
        for goal in goals:
            if goal.progress >= 100:
                status = "✅ Completed!"
            elif goal.target_date is None:
                status = "No target date"
            elif goal.days_remaining < 0:
                status = "⚠️ Overdue"
            else:
                status = f"{goal.days_remaining} days left"
            blocks.append(
                f"🎯 {goal.name}:\n"
                f"   Progress: {progress_bar(goal.progress, width=20)} {format_percent(goal.progress)}\n"
                f"   {money(goal.current_amount)} / {money(goal.target_amount)}\n"
                f"   Remaining: {money(goal.remaining)}\n"
                f"   {status}"
            )
        return "Here's your savings goals progress:\n\n" + "\n\n".join(blocks)

    def _investments(self, parsed, context, history) -> str:
        investments = context.investments
        if investments.asset_count == 0:
            return (
                "You don't have any investments recorded yet. "
                "Add investment assets to track your portfolio! 📈"
            )
        money = partial(self._money, context)
        gaining = investments.total_gain_loss >= 0
        return (
            "Here's your investment portfolio:\n\n"
            f"💰 Portfolio Value: {money(investments.total_portfolio_value)}\n"
            f"💵 Cost Basis: {money(investments.total_cost_basis)}\n"
            f"{'📈' if gaining else '📉'} Total {'gain' if gaining else 'loss'}: "
            f"{money(investments.total_gain_loss)}\n"
            f"📊 Return: {investments.return_percentage:.2f}%\n"
            f"🏦 Assets: {investments.asset_count}"
        )

    # -------------------------------------------------------------------------
    # analytics
    # -------------------------------------------------------------------------

    def _trend_comparison(self, parsed, context, history) -> str:
        summary = context.summary
        money = partial(self._money, context)
        this_month, last_month = summary.this_month_expenses, summary.last_month_expenses
        if this_month == 0 and last_month == 0:
            return "You don't have enough spending data to compare months yet."

        difference = this_month - last_month
        change = (
            f" ({format_percent(abs(difference) / last_month * 100)})" if last_month > 0 else ""
        )
        if difference > 0:
            trend = f"📈 Your spending increased by {money(difference)}{change} compared to last month."
        elif difference < 0:
            trend = f"📉 Great! Your spending decreased by {money(difference)}{change} compared to last month."
        else:
            trend = "➡️ Your spending stayed the same compared to last month."

        return (
            "Month-over-Month Comparison:\n\n"
            f"This Month: {money(this_month)}\n"
            f"Last Month: {money(last_month)}\n\n"
            f"{trend}"
        )

    def _forecast(self, parsed, context, history) -> str:
        analytics = context.analytics
        if analytics.daily_average == 0:
            return (
                "I need more spending data to make accurate forecasts. "
                "Try again after recording some expenses this month."
            )

        money = partial(self._money, context)
        day, days_in_month = self._month_progress()
        projected = analytics.projected_month_end
        response = (
            "📊 Spending Forecast:\n\n"
            f"Current spending: {money(context.summary.this_month_expenses)}\n"
            f"Daily average: {money(analytics.daily_average)}\n"
            f"Projected month-end: {money(projected)}\n"
            f"Days remaining: {days_in_month - day}"
        )

        average = analytics.avg_monthly_spending
        if average > 0:
            variance = projected - average
            percent = format_percent(abs(variance) / average * 100)
            if variance > 0:
                response += (
                    f"\n\n⚠️ You're projected to spend {money(variance)} more than your average "
                    f"({percent} increase)."
                )
            else:
                response += (
                    f"\n\n✅ You're on track to spend {money(variance)} less than your average "
                    f"({percent} decrease)."
                )
        return response

    def _burn_rate(self, parsed, context, history) -> str:
        analytics = context.analytics
        money = partial(self._money, context)
        months = analytics.months_until_zero
        if months is None:
            if analytics.net_monthly_rate > 0:
                return (
                    f"✅ Great news! You're saving {money(analytics.net_monthly_rate)} per month. "
                    "Your balance is growing!"
                )
            return (
                "I need more data to calculate your burn rate. "
                "Make sure you have income and expense transactions recorded."
            )
        return (
            "🔥 Burn Rate Analysis:\n\n"
            f"Current balance: {money(context.summary.total_balance)}\n"
            f"Monthly net: -{money(analytics.net_monthly_rate)}\n"
            f"⚠️ At current spending rate, you'll run out of money in approximately "
            f"{months} {_plural(months, 'month')}.\n\n"
            "💡 Consider reducing expenses or increasing income to extend your runway."
        )

    def _anomalies(self, parsed, context, history) -> str:
        anomalies = context.analytics.category_anomalies
        if not anomalies:
            return "✅ No unusual spending patterns detected this month. Your spending looks normal!"
        money = partial(self._money, context)
        lines = "\n".join(
            f"⚠️ {a.category}: {money(a.this_month)} this month (avg: {money(a.avg_month)}) "
            f"- {format_percent(a.increase)} increase"
            for a in anomalies
        )
        return (
            f"🚨 Unusual Spending Detected:\n\n{lines}\n\n"
            "💡 These categories show significantly higher spending than your 3-month average."
        )

    def _spending_velocity(self, parsed, context, history) -> str:
        analytics = context.analytics
        if analytics.daily_average == 0:
            return "I need spending data from this month to calculate your spending velocity."

        money = partial(self._money, context)
        day, days_in_month = self._month_progress()
        month_elapsed = day / days_in_month * 100
        response = (
            "⚡ Spending Velocity:\n\n"
            f"Daily average: {money(analytics.daily_average)}\n"
            f"Month progress: {format_percent(month_elapsed)} (day {day} of {days_in_month})\n"
            f"Spent so far: {money(context.summary.this_month_expenses)}"
        )

        average = analytics.avg_monthly_spending
        if average > 0:
            spent_share = context.summary.this_month_expenses / average * 100
            if spent_share > month_elapsed * 1.2:
                response += (
                    f"\n\n⚠️ You're spending faster than usual. You've used {format_percent(spent_share)} "
                    f"of your average monthly spending with only {format_percent(month_elapsed)} "
                    "of the month elapsed."
                )
            elif spent_share < month_elapsed * 0.8:
                response += "\n\n✅ You're spending slower than usual. Great job managing your expenses!"
            else:
                response += "\n\n➡️ Your spending pace is on track with your average."
        return response

    def _multi_currency(self, parsed, context, history) -> str:
        currencies = context.currencies
        if len(currencies) <= 1:
            return (
                f"You're using a single currency ({context.summary.primary_currency}). "
                "Multi-currency analysis is available when you have accounts in different currencies."
            )
        blocks = []
        for code, data in currencies.items():
            sign = "-" if data.net < 0 else ""
            blocks.append(
                f"{code}:\n"
                f"  💰 Balance: {format_currency(data.balance, code)}\n"
                f"  📈 Income: {format_currency(data.income, code)}\n"
                f"  📉 Expenses: {format_currency(data.expenses, code)}\n"
                f"  💵 Net: {sign}{format_currency(data.net, code)}"
            )
        return "🌍 Multi-Currency Breakdown:\n\n" + "\n\n".join(blocks)

    def _recommendations(self, parsed, context, history) -> str:
        analytics = context.analytics
        money = partial(self._money, context)
        tips = []

        for category, status in context.budgets.items():
            used = status.spent / status.budget * 100
            if used >= 90:
                tips.append(
                    f"⚠️ {category} budget is at {format_percent(used)}. "
                    "Consider reducing spending or increasing budget."
                )

        if analytics.category_anomalies:
            top = analytics.category_anomalies[0]
            tips.append(
                f"💡 {top.category} spending is {format_percent(top.increase)} above average. "
                "Review recent transactions in this category."
            )

        if analytics.months_until_zero is not None and analytics.months_until_zero < 6:
            tips.append(
                f"🔥 Your runway is only {analytics.months_until_zero} "
                f"{_plural(analytics.months_until_zero, 'month')}. "
                "Focus on reducing expenses or increasing income."
            )

        for goal in context.savings_goals:
            if 0 < goal.days_remaining < 30 and goal.progress < 80:
                per_day = goal.remaining / goal.days_remaining
                tips.append(f'🎯 "{goal.name}" needs {money(per_day)} per day to meet your target.')

        if analytics.avg_monthly_spending > 0:
            day, days_in_month = self._month_progress()
            month_elapsed = day / days_in_month * 100
            spent_share = context.summary.this_month_expenses / analytics.avg_monthly_spending * 100
            if spent_share > month_elapsed * 1.2:
                tips.append(
                    f"⚡ You're spending {format_percent(spent_share)} of your monthly average with only "
                    f"{format_percent(month_elapsed)} of the month elapsed. Slow down spending to stay on track."
                )

        if not tips:
            return (
                "✅ Your finances look healthy! No urgent recommendations at this time. "
                "Keep up the good work! 💪"
            )
        numbered = "\n\n".join(f"{i}. {tip}" for i, tip in enumerate(tips, start=1))
        return f"💡 Smart Recommendations:\n\n{numbered}"

    # -------------------------------------------------------------------------
    # help, follow-ups and default
    # -------------------------------------------------------------------------

    def _help(self, parsed, context, history) -> str:
        return (
            f"Hi! I'm {self._name}, your financial assistant. I can help you with:\n\n"
            "💰 Check your account balances\n"
            "📈 View your income and expenses\n"
            "📊 See spending by category\n"
            "📋 Get your financial summary\n"
            "🕐 View recent transactions\n"
            "🤝 Check lend/borrow records\n"
            "📅 Monthly/weekly/yearly spending analysis\n"
            "💵 Budget tracking and status\n"
            "🎯 Savings goals progress\n"
            "📈 Investment portfolio\n"
            "📊 Trends and comparisons\n\n"
            "💡 Try asking:\n"
            '• "What\'s my balance?"\n'
            '• "How much did I spend this month?"\n'
            '• "Am I over budget?"\n'
            '• "How are my savings goals?"\n'
            '• "What\'s my portfolio value?"\n'
            '• "Compare this month vs last month"'
        )

    @staticmethod
    def is_follow_up(question: str, history: list[ConversationMessage]) -> bool:
        """Connective phrasing, or a short question in an ongoing conversation."""
        lower = question.lower().strip()
        has_user_history = any(m.role == MessageRole.USER for m in history)
        return bool(_FOLLOW_UP.search(lower)) or (has_user_history and len(lower) < 20)

    def _follow_up(self, context: FinancialContext, history: list[ConversationMessage]) -> Optional[str]:
        """Continue the most recent topic, if it is one we can expand on."""
        user_messages = [m.content.lower() for m in history if m.role == MessageRole.USER]
        if not user_messages:
            return None
        last_topic = user_messages[-1]
        summary = context.summary
        money = partial(self._money, context)

        if "balance" in last_topic or "account" in last_topic:
            count = len(context.accounts)
            return (
                "Here's more about your accounts:\n\n"
                f"You have {count} {_plural(count, 'account')} with a total balance of "
                f"{money(summary.total_balance)}.\n\n"
                "Would you like to know about your spending, income, or something else?"
            )
        if "spend" in last_topic or "expense" in last_topic:
            return (
                "Here's more about your spending:\n\n"
                f"Your total expenses are {money(summary.total_expenses)}.\n"
                f"This month you've spent {money(summary.this_month_expenses)}.\n\n"
                "Would you like to see spending by category, compare with last month, or something else?"
            )
        return None

    def _default(self, parsed, context, history) -> str:
        has_assistant_history = any(m.role == MessageRole.ASSISTANT for m in history)
        if has_assistant_history and self.is_follow_up(parsed.question, history):
            continuation = self._follow_up(context, history)
            if continuation:
                return continuation

        question = parsed.question.strip()
        words = {
            re.sub(r"[.,!?;:]", "", word)
            for term in parsed.expanded_terms
            for word in term.split()
        }
        if words & _FINANCIAL_VOCABULARY:
            return (
                f'I understand you\'re asking about "{question}". Let me help! 💡\n\n'
                "I can help you with:\n"
                '• Account balances - "What\'s my balance?"\n'
                '• Income and expenses - "How much did I spend?"\n'
                '• Spending by category - "Show spending by category"\n'
                '• Financial summaries - "What\'s my financial summary?"\n'
                '• Recent transactions - "Show recent transactions"\n\n'
                'Try rephrasing your question, or ask "help" to see all my capabilities!'
            )

        if has_assistant_history:
            return (
                f'I understand you\'re asking about "{question}". 💰\n\n'
                "Based on our conversation, I can help you with:\n"
                "• More details about what we just discussed\n"
                "• Different aspects of your finances\n"
                "• Comparisons or trends\n\n"
                'Try asking: "What\'s my balance?" or "How much did I spend this month?"\n'
                'Or ask "help" to see everything I can do!'
            )

        return (
            f'I understand you\'re asking about "{question}". '
            f"I'm {self._name}, your financial assistant! 💰\n\n"
            "I can help you with:\n"
            "• Account balances\n"
            "• Income and expenses\n"
            "• Spending by category\n"
            "• Financial summaries\n"
            "• Recent transactions\n\n"
            'Try asking: "What\'s my balance?" or "How much did I spend this month?"\n'
            'Or ask "help" to see everything I can do!'
        )
