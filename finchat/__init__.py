"""
Finchat - Source Package

A conversational query engine for a personal-finance dashboard.
Answers questions like "What's my balance?" from the user's own records.

DESIGN PRINCIPLES:
1. Every number in an answer comes from the user's data
2. Data errors degrade to "no data yet", never to a crash
3. One generic error is the only failure a user ever sees
4. Every step is logged, no financial data in the logs
5. Storage and generation backends are swappable
"""

__version__ = "1.0.0"
__author__ = "Finchat Team"
