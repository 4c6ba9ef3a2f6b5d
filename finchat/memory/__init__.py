"""Conversation memory package."""

from finchat.memory.conversation import ConversationMemory

__all__ = ["ConversationMemory"]
