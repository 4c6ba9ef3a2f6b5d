"""Answer generation package."""

from finchat.agents.response_generator import ResponseGenerator

__all__ = ["ResponseGenerator"]
