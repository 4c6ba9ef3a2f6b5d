"""Tests for synonym expansion, fuzzy matching and intent selection."""

import pytest

from finchat.models.context import FinancialContext, FinancialSummary
from finchat.queries import (
    INTENT_PRIORITY,
    Intent,
    MatchStrength,
    expand_query_with_synonyms,
    extract_key_terms,
    find_category_mention,
    interpret,
    match_strength,
    matches_query,
)


@pytest.fixture
def food_context():
    return FinancialContext(
        summary=FinancialSummary(
            total_expenses=400,
            category_breakdown={"Food": 300.0, "Transport": 100.0},
        ),
    )


class TestSynonymExpansion:
    """expand_query_with_synonyms."""

    def test_keeps_original_words_first(self):
        expanded = expand_query_with_synonyms("show balance")
        assert expanded[:2] == ["show", "balance"]
        assert "money" in expanded

    def test_punctuation_is_ignored_for_lookup(self):
        assert "income" in expand_query_with_synonyms("what was my salary?")

    def test_phrase_synonyms(self):
        expanded = expand_query_with_synonyms("how much have I spent")
        for word in ("total", "amount", "expense", "cost", "payment"):
            assert word in expanded

    def test_no_duplicates(self):
        expanded = expand_query_with_synonyms("spending spending")
        assert len(expanded) == len(set(expanded))


class TestMatching:
    """match_strength grading."""

    def test_key_terms_drop_filler_and_regex(self):
        terms = extract_key_terms([r"\b(what.*budget|show.*status)\b"])
        assert terms == ["budget", "status"]

    def test_key_terms_collapse_longer_forms(self):
        assert extract_key_terms([r"\b(spending|spend)\b"]) == ["spend"]

    def test_raw_match(self):
        assert match_strength("What's my balance?", [r"\bbalance\b"]) == MatchStrength.RAW

    def test_expanded_match(self):
        """'salary' expands to 'income'."""
        assert match_strength("What was my salary?", [r"\bincome\b"]) == MatchStrength.EXPANDED

    def test_fuzzy_match_needs_two_terms(self):
        patterns = [r"\b(monthly budget status)\b"]
        assert match_strength("budget status for food", patterns) == MatchStrength.FUZZY
        assert match_strength("budget for food", patterns) == MatchStrength.NONE

    def test_exact_only_skips_fuzzy(self):
        patterns = [r"\b(monthly budget status)\b"]
        assert match_strength("budget status for food", patterns, exact=True) == MatchStrength.NONE

    def test_matches_query_boolean(self):
        assert matches_query("my balance", [r"\bbalance\b"]) is True
        assert matches_query("hello there", [r"\bbalance\b"]) is False


class TestCategoryMention:
    """find_category_mention."""

    def test_finds_known_category(self, food_context):
        assert find_category_mention("how much did i spend on food?", food_context) == "Food"

    def test_unknown_category(self, food_context):
        assert find_category_mention("how much did i spend on rent?", food_context) is None

    def test_no_spending_verb(self, food_context):
        assert find_category_mention("food", food_context) is None


class TestIntentSelection:
    """interpret picks one intent per question."""

    @pytest.mark.parametrize("question,intent", [
        ("What's my balance?", Intent.BALANCE),
        ("Give me a financial summary", Intent.FINANCIAL_SUMMARY),
        ("Am I over budget?", Intent.BUDGET_STATUS),
        ("Compare this month vs last month", Intent.TREND_COMPARISON),
        ("How are my savings goals?", Intent.SAVINGS_GOALS),
        ("Who owes me money?", Intent.LEND_BORROW),
        ("Show recent transactions", Intent.RECENT_TRANSACTIONS),
        ("How many transactions do I have?", Intent.TRANSACTION_COUNT),
        ("help", Intent.HELP),
        ("asdf qwerty", Intent.DEFAULT),
    ])
    def test_intents(self, question, intent, now):
        assert interpret(question, FinancialContext.empty(), now).intent == intent

    def test_specific_category_question_beats_general_expenses(self, now):
        """'top spending categories' also matches the expenses patterns."""
        question = "What are my top spending categories?"
        assert match_strength(question, [r"\bspending\b"]) == MatchStrength.RAW

        parsed = interpret(question, FinancialContext.empty(), now)
        assert parsed.intent == Intent.TOP_CATEGORIES
        assert INTENT_PRIORITY.index(Intent.TOP_CATEGORIES) < INTENT_PRIORITY.index(Intent.EXPENSES)

    def test_category_breakdown_beats_expenses(self, now):
        parsed = interpret("Show spending by category", FinancialContext.empty(), now)
        assert parsed.intent == Intent.CATEGORY_BREAKDOWN

    def test_savings_goals_before_net_savings(self):
        assert INTENT_PRIORITY.index(Intent.SAVINGS_GOALS) < INTENT_PRIORITY.index(Intent.NET_SAVINGS)

    def test_category_lookup(self, food_context, now):
        parsed = interpret("How much did I spend on food?", food_context, now)
        assert parsed.intent == Intent.CATEGORY_LOOKUP
        assert parsed.category == "Food"

    def test_date_range_only_question(self, now):
        """A bare period is a spending question for that period."""
        parsed = interpret("last 7 days", FinancialContext.empty(), now)
        assert parsed.intent == Intent.PERIOD_SPENDING
        assert parsed.date_range.label == "Last 7 Days"

    def test_period_does_not_outrank_topic(self, now):
        """'earn' with a period is an income question, not period spending."""
        parsed = interpret("What did I earn last month?", FinancialContext.empty(), now)
        assert parsed.intent == Intent.INCOME
        assert parsed.date_range.label == "Last Month"

    def test_parsed_query_fields(self, now):
        parsed = interpret("  What's my BALANCE?  ", FinancialContext.empty(), now)
        assert parsed.lower == "what's my balance?"
        assert parsed.strength == MatchStrength.RAW
        assert parsed.category is None
        assert parsed.date_range is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
