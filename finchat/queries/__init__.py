"""Query interpretation package."""

from finchat.queries.dates import describe_range, filter_by_date_range, parse_date_range
from finchat.queries.formatting import format_currency, format_percent, progress_bar
from finchat.queries.interpreter import (
    INTENT_PRIORITY,
    INTENT_RULES,
    Intent,
    IntentRule,
    MatchStrength,
    ParsedQuery,
    SYNONYMS,
    expand_query_with_synonyms,
    extract_key_terms,
    find_category_mention,
    interpret,
    match_strength,
    matches_query,
)

__all__ = [
    "INTENT_PRIORITY",
    "INTENT_RULES",
    "Intent",
    "IntentRule",
    "MatchStrength",
    "ParsedQuery",
    "SYNONYMS",
    "describe_range",
    "expand_query_with_synonyms",
    "extract_key_terms",
    "filter_by_date_range",
    "find_category_mention",
    "format_currency",
    "format_percent",
    "interpret",
    "match_strength",
    "matches_query",
    "parse_date_range",
    "progress_bar",
]
