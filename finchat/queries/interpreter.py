"""
Query Interpreter

Decides WHAT a question is asking for. It never computes an answer.

Matching is pattern and keyword based:
1. Each intent has a set of regular patterns.
2. A question is tested against the patterns as typed (RAW), then with its
   words augmented by synonyms (EXPANDED), then by counting how many of the
   patterns' key terms it mentions (FUZZY).
3. The strongest match wins. Equal strengths are resolved by the declared
   priority of the intents: specific phrasings ("top spending categories")
   come before general ones ("spending").

DESIGN DECISION: Intents whose patterns are narrow phrases (forecast,
burn rate, purchases...) are EXACT ONLY and never match fuzzily.
A fuzzy match on "how long" would hijack too many unrelated questions.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Callable, Iterable, Optional, Sequence

from finchat.models.context import DateRange, FinancialContext
from finchat.queries.dates import parse_date_range


# =============================================================================
# SYNONYMS
# =============================================================================

SYNONYMS: dict[str, list[str]] = {
    # Income / deposit
    "deposit": ["income", "credit", "salary", "wage", "payroll", "earnings", "revenue", "profit", "bonus", "commission"],
    "income": ["deposit", "credit", "salary", "wage", "payroll", "earnings", "revenue", "profit", "bonus", "commission"],
    "salary": ["income", "wage", "payroll", "earnings", "stipend", "allowance"],
    "earned": ["income", "made", "received", "got"],
    "earning": ["income", "revenue", "profit"],

    # Expense / spending
    "expense": ["spending", "cost", "payment", "charge", "fee", "bill", "outgoing", "debit"],
    "spent": ["spending", "expense", "paid", "cost", "used"],
    "spending": ["expense", "spent", "cost", "payment"],
    "cost": ["expense", "spending", "price", "charge"],
    "payment": ["expense", "spending", "cost", "charge", "fee"],

    # Balance / money
    "balance": ["money", "amount", "total", "available", "current", "remaining"],
    "money": ["balance", "amount", "funds", "cash"],
    "total": ["sum", "amount", "all", "everything"],

    # Accounts ("savings" is left out so account questions do not look like net-savings ones)
    "account": ["bank", "checking", "financial"],
    "accounts": ["banks", "checking"],

    # Transactions
    "transaction": ["payment", "expense", "income", "entry", "record"],
    "transactions": ["payments", "expenses", "income", "entries", "records"],

    # Categories
    "category": ["type", "group", "class"],
    "categories": ["types", "groups", "classes"],

    # Budget
    "budget": ["limit", "allocation", "planning", "forecast"],
    "over": ["exceeded", "above", "beyond"],
    "under": ["below", "less", "within"],

    # Savings / goals
    "savings": ["reserve", "fund", "nest egg", "stash"],
    "goal": ["target", "objective", "aim"],
    "goals": ["targets", "objectives", "aims"],

    # Investments
    "investment": ["portfolio", "assets", "securities", "stocks", "bonds"],
    "portfolio": ["investment", "assets", "holdings"],

    # Time ("per month" style phrases are left out: "per" reads as a breakdown)
    "recent": ["latest", "newest", "current", "today"],
    "latest": ["recent", "newest", "current"],
    "month": ["monthly"],
    "week": ["weekly"],
    "year": ["yearly", "annual"],

    # Comparison
    "compare": ["comparison", "versus", "vs", "difference"],
    "trend": ["pattern", "change", "increase", "decrease"],
    "more": ["higher", "greater", "increase"],
    "less": ["lower", "smaller", "decrease"],

    # Help
    "help": ["assist", "support", "guide", "what can"],
    "what": ["how", "tell", "show"],
    "how": ["what", "tell", "show"],
}

_PUNCTUATION = re.compile(r"[.,!?;:]")

# Words that carry no topic of their own
FILLER_WORDS = frozenset({
    "what", "show", "how", "much", "many", "my", "have", "all", "tell", "list",
    "count", "total", "can", "you", "do", "did", "the", "me", "about", "by", "per",
})

_QUESTION_STOPWORDS = FILLER_WORDS | frozenset({
    "and", "are", "was", "were", "for", "any", "this", "that", "with", "from",
    "into", "its", "our", "your", "is", "am", "be", "been", "get",
})


def expand_query_with_synonyms(text: str) -> list[str]:
    """
    The question's words plus the synonyms of every word recognised.

    Order is preserved and duplicates are dropped.
    """
    lower = text.lower()
    words = lower.split()
    expanded = list(words)

    for word in words:
        expanded.extend(SYNONYMS.get(_PUNCTUATION.sub("", word), []))

    if "how much" in lower or "how many" in lower:
        expanded.extend(["what", "total", "amount"])
    if "spent" in lower or "spending" in lower:
        expanded.extend(["expense", "cost", "payment"])
    if "earned" in lower or "income" in lower:
        expanded.extend(["made", "received", "got"])

    return list(dict.fromkeys(expanded))


# =============================================================================
# MATCHING
# =============================================================================

class MatchStrength(IntEnum):
    """How a question matched an intent. Higher is stronger."""
    NONE = 0
    FUZZY = 1
    EXPANDED = 2
    RAW = 3


_REGEX_TOKENS = re.compile(r"\\[bsdwBSDW]|\.\*\??|\.\+\??|[?*+]")


def extract_key_terms(patterns: Iterable[str]) -> list[str]:
    """
    Literal topic words of a pattern set.

    Regex syntax and filler words are removed, as are words shorter than
    three letters. A term containing another term ("spending", "spend")
    is folded into the shorter one.
    """
    terms: list[str] = []
    for pattern in patterns:
        literal = _REGEX_TOKENS.sub(" ", pattern.lower())
        for word in re.findall(r"[a-z]+", literal):
            if len(word) >= 3 and word not in FILLER_WORDS and word not in terms:
                terms.append(word)

    return [
        term for term in terms
        if not any(other != term and other in term for other in terms)
    ]


def _question_words(expanded_terms: Sequence[str]) -> list[str]:
    words = []
    for term in expanded_terms:
        for word in term.split():
            word = _PUNCTUATION.sub("", word)
            if len(word) >= 3 and word not in _QUESTION_STOPWORDS:
                words.append(word)
    return words


def match_strength(
    question: str,
    patterns: Sequence[str],
    exact: bool = False,
    expanded_terms: Optional[Sequence[str]] = None,
) -> MatchStrength:
    """
    Grade how well a question matches a set of patterns.

    Args:
        question: The user's question
        patterns: Case-insensitive regular expressions
        exact: Only test the question as typed
        expanded_terms: Precomputed synonym expansion, if available

    Returns:
        The strongest MatchStrength reached
    """
    lower = question.lower().strip()
    if any(re.search(p, lower, re.IGNORECASE) for p in patterns):
        return MatchStrength.RAW
    if exact:
        return MatchStrength.NONE

    if expanded_terms is None:
        expanded_terms = expand_query_with_synonyms(lower)
    expanded = " ".join(expanded_terms)
    if any(re.search(p, expanded, re.IGNORECASE) for p in patterns):
        return MatchStrength.EXPANDED

    key_terms = extract_key_terms(patterns)
    if not key_terms:
        return MatchStrength.NONE

    words = _question_words(expanded_terms)
    present = [
        term for term in key_terms
        if any(word in term or term in word for word in words)
    ]
    if len(present) >= min(2, len(key_terms)):
        return MatchStrength.FUZZY
    return MatchStrength.NONE


def matches_query(question: str, patterns: Sequence[str]) -> bool:
    """Boolean form of match_strength."""
    return match_strength(question, patterns) > MatchStrength.NONE


# =============================================================================
# INTENTS
# =============================================================================

class Intent(str, Enum):
    """What a question is about."""
    TREND_COMPARISON = "trend_comparison"
    FORECAST = "forecast"
    BURN_RATE = "burn_rate"
    ANOMALIES = "anomalies"
    SPENDING_VELOCITY = "spending_velocity"
    MULTI_CURRENCY = "multi_currency"
    TOP_CATEGORIES = "top_categories"
    CATEGORY_BREAKDOWN = "category_breakdown"
    CATEGORY_LOOKUP = "category_lookup"
    BALANCE = "balance"
    INCOME = "income"
    EXPENSES = "expenses"
    SAVINGS_GOALS = "savings_goals"
    NET_SAVINGS = "net_savings"
    PERIOD_SPENDING = "period_spending"
    ACCOUNTS = "accounts"
    RECENT_TRANSACTIONS = "recent_transactions"
    TRANSACTION_COUNT = "transaction_count"
    LEND_BORROW = "lend_borrow"
    PURCHASES = "purchases"
    FINANCIAL_SUMMARY = "financial_summary"
    BUDGET_STATUS = "budget_status"
    INVESTMENTS = "investments"
    RECOMMENDATIONS = "recommendations"
    HELP = "help"
    DEFAULT = "default"


_CATEGORY_MENTION = re.compile(
    r"\b(?:spent|spending|spend).*?(?:on|for)?\s+([a-z\s]+?)(?:\?|$|this|last|month)"
)

_PERIOD_WORDS = re.compile(
    r"\b(this month|current month|monthly|per month|last month|previous month"
    r"|this week|last week|this year|last year)\b"
)


def find_category_mention(question: str, context: FinancialContext) -> Optional[str]:
    """
    The spending category a question names, if the user has one by that name.

    "How much did I spend on food?" -> "Food" when "Food" has spending.
    """
    match = _CATEGORY_MENTION.search(question.lower())
    if not match:
        return None
    candidate = match.group(1).strip()
    if len(candidate) <= 2:
        return None
    for category in context.summary.category_breakdown:
        name = category.lower()
        if name and (candidate in name or name in candidate):
            return category
    return None


@dataclass(frozen=True)
class ParsedQuery:
    """Everything the response generator needs to know about a question."""

    question: str
    lower: str
    expanded_terms: tuple[str, ...]
    date_range: Optional[DateRange]
    intent: Intent
    strength: MatchStrength
    category: Optional[str] = None


@dataclass(frozen=True)
class IntentRule:
    """
    How one intent is recognised.

    Either `patterns` or `predicate` is used. `max_strength` caps what the
    rule can claim, so a weak catch-all does not outrank a real match.
    """

    intent: Intent
    patterns: tuple[str, ...] = ()
    exact: bool = False
    predicate: Optional[Callable[[str, Optional[DateRange], Optional[str]], bool]] = None
    max_strength: MatchStrength = MatchStrength.RAW

    def strength(
        self,
        lower: str,
        expanded_terms: Sequence[str],
        date_range: Optional[DateRange],
        category: Optional[str],
    ) -> MatchStrength:
        if self.predicate is not None:
            matched = self.predicate(lower, date_range, category)
            result = MatchStrength.RAW if matched else MatchStrength.NONE
        else:
            result = match_strength(lower, self.patterns, self.exact, expanded_terms)
        return min(result, self.max_strength)


# Declared priority: earlier rules win ties.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        Intent.TREND_COMPARISON,
        (r"\b(compare|comparison|trend|increase|decrease|vs|versus)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.FORECAST,
        (r"\b(forecast|prediction|projected|projection|will spend|spending forecast|end of month)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.BURN_RATE,
        (r"\b(burn rate|runway|how long|months left|until zero|until broke)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.ANOMALIES,
        (r"\b(anomaly|anomalies|unusual|spike|unexpected|abnormal|outlier)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.SPENDING_VELOCITY,
        (r"\b(velocity|spending rate|daily spending|spending pace|spend per day)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.MULTI_CURRENCY,
        (r"\b(multi.*currency|currency breakdown|by currency|all currencies|currency analysis)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.TOP_CATEGORIES,
        (
            r"\b(top|highest|most|biggest).*?(spend|expense|category|categories)",
            r"\b(what.*top|show.*top|largest.*category|biggest.*spending)\b",
        ),
    ),
    IntentRule(
        Intent.CATEGORY_BREAKDOWN,
        (
            r"\b(spending|spend|expense).*?(by|per|category|categories|breakdown)\b",
            r"\b(what.*category|show.*category|spending.*breakdown|category.*spending)\b",
        ),
    ),
    IntentRule(
        Intent.CATEGORY_LOOKUP,
        predicate=lambda lower, date_range, category: category is not None,
    ),
    IntentRule(
        Intent.BALANCE,
        (
            r"\b(balance|total balance|how much money|current balance|account balance)\b",
            r"\b(what.*balance|show.*balance|my balance|available.*money)\b",
            r"\b(how much.*have|total.*money|all.*money)\b",
        ),
    ),
    IntentRule(
        Intent.INCOME,
        (
            r"\b(income|earned|earning|salary|how much.*income|total income)\b",
            r"\b(what.*income|show.*income|my income|how much.*earned|how much.*made)\b",
            r"\b(revenue|payroll|wage|earnings|salary)\b",
        ),
    ),
    IntentRule(
        Intent.EXPENSES,
        (
            r"\b(expense|expenses|spent|spending|how much.*spend|total expense|cost)\b",
            r"\b(what.*spent|show.*spending|how much.*paid|my expenses|total.*cost)\b",
            r"\b(how much.*spending|what.*cost|spending.*amount)\b",
        ),
    ),
    IntentRule(
        Intent.SAVINGS_GOALS,
        (r"\b(savings goal|savings goals|goal progress|how.*goals?|target)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.NET_SAVINGS,
        (
            r"\b(net|savings|saved|left over|remaining|difference)\b",
            r"\b(what.*net|show.*savings|how much.*saved|remaining.*money)\b",
        ),
    ),
    IntentRule(
        Intent.PERIOD_SPENDING,
        predicate=lambda lower, date_range, category: (
            date_range is not None or _PERIOD_WORDS.search(lower) is not None
        ),
        max_strength=MatchStrength.FUZZY,
    ),
    IntentRule(
        Intent.ACCOUNTS,
        (
            r"\b(account|accounts|how many.*account)\b",
            r"\b(what.*account|show.*account|list.*account|my accounts)\b",
        ),
    ),
    IntentRule(
        Intent.RECENT_TRANSACTIONS,
        (
            r"\b(recent|latest|recently)\b",
            r"\b(what.*recent|show.*recent|latest.*transaction|recent.*transaction)\b",
        ),
    ),
    IntentRule(
        Intent.TRANSACTION_COUNT,
        (
            r"\b(transaction|transactions|how many.*transaction)\b",
            r"\b(what.*transaction|count.*transaction|total.*transaction)\b",
        ),
    ),
    IntentRule(
        Intent.LEND_BORROW,
        (r"\b(lent|borrow|borrowed|loan|loans|owe|owed|owes|lend|who owes|who.*owe)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.PURCHASES,
        (r"\b(purchase|purchases|bought|buying)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.FINANCIAL_SUMMARY,
        (
            r"\b(summary|overview|financial health|how.*doing|status)\b",
            r"\b(what.*summary|show.*summary|financial.*overview|my.*status)\b",
        ),
    ),
    IntentRule(
        Intent.BUDGET_STATUS,
        (
            r"\b(budget|budgets|over budget|under budget|budget left|budget remaining)\b",
            r"\b(what.*budget|show.*budget|budget.*status|budget.*remaining)\b",
        ),
    ),
    IntentRule(
        Intent.INVESTMENTS,
        (r"\b(investment|portfolio|investments|portfolio value|return|gain|loss)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.RECOMMENDATIONS,
        (r"\b(recommend|recommendation|recommendations|suggestion|advice|tip|tips|should|how to improve)\b",),
        exact=True,
    ),
    IntentRule(
        Intent.HELP,
        (
            r"\b(help|what can|what do|how can|assist|support)\b",
            r"\b(what.*help|show.*help|what.*you.*do|capabilities)\b",
        ),
    ),
)

INTENT_PRIORITY: tuple[Intent, ...] = tuple(rule.intent for rule in INTENT_RULES)


def interpret(
    question: str,
    context: FinancialContext,
    now: Optional[datetime] = None,
) -> ParsedQuery:
    """
    Classify a question.

    Every rule is graded; the strongest wins and ties go to the rule
    declared first. No match yields Intent.DEFAULT.
    """
    lower = question.lower().strip()
    expanded = tuple(expand_query_with_synonyms(lower))
    date_range = parse_date_range(question, now)
    category = find_category_mention(lower, context)

    best_intent = Intent.DEFAULT
    best_strength = MatchStrength.NONE
    for rule in INTENT_RULES:
        strength = rule.strength(lower, expanded, date_range, category)
        if strength > best_strength:
            best_intent, best_strength = rule.intent, strength
            if strength == MatchStrength.RAW:
                break

    return ParsedQuery(
        question=question,
        lower=lower,
        expanded_terms=expanded,
        date_range=date_range,
        intent=best_intent,
        strength=best_strength,
        category=category if best_intent == Intent.CATEGORY_LOOKUP else None,
    )
