"""Financial context aggregation package."""

from finchat.context.aggregator import FinancialContextAggregator, build_context

__all__ = ["FinancialContextAggregator", "build_context"]
