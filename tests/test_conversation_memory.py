"""Tests for per-user conversation memory."""

import pytest

from finchat.memory import ConversationMemory
from finchat.models.context import MessageRole


class TestConversationMemory:
    """Bounds, inactivity timeout and isolation."""

    def test_empty_for_unknown_user(self, clock):
        """A user without messages has an empty history."""
        memory = ConversationMemory(clock=clock)
        assert memory.history("nobody") == []

    def test_messages_kept_in_order(self, clock):
        """History is oldest first with roles preserved."""
        memory = ConversationMemory(clock=clock)
        memory.append("user-1", MessageRole.USER, "hi")
        memory.append("user-1", "assistant", "hello")

        history = memory.history("user-1")
        assert [m.content for m in history] == ["hi", "hello"]
        assert [m.role for m in history] == [MessageRole.USER, MessageRole.ASSISTANT]

    def test_never_exceeds_max_messages(self, clock):
        """Appending past the limit drops the oldest messages first."""
        memory = ConversationMemory(max_messages=10, clock=clock)
        for i in range(15):
            memory.append("user-1", MessageRole.USER, f"m{i}")

        history = memory.history("user-1")
        assert len(history) == 10
        assert history[0].content == "m5"
        assert history[-1].content == "m14"

    def test_history_is_a_copy(self, clock):
        """Mutating the returned list does not touch the stored history."""
        memory = ConversationMemory(clock=clock)
        memory.append("user-1", MessageRole.USER, "hi")
        memory.history("user-1").clear()
        assert len(memory.history("user-1")) == 1

    def test_inactive_conversation_expires_and_is_removed(self, clock):
        """Past the inactivity timeout, history is empty and the record is gone."""
        memory = ConversationMemory(timeout_seconds=300, clock=clock)
        memory.append("user-1", MessageRole.USER, "hi")
        clock.advance(301)

        assert memory.history("user-1") == []
        assert "user-1" not in memory

    def test_activity_extends_the_timeout(self, clock):
        """Each append refreshes the conversation's last activity."""
        memory = ConversationMemory(timeout_seconds=300, clock=clock)
        memory.append("user-1", MessageRole.USER, "one")
        clock.advance(200)
        memory.append("user-1", MessageRole.USER, "two")
        clock.advance(200)

        assert [m.content for m in memory.history("user-1")] == ["one", "two"]

    def test_append_after_expiry_starts_fresh(self, clock):
        """Old messages of an expired conversation do not come back."""
        memory = ConversationMemory(timeout_seconds=300, clock=clock)
        memory.append("user-1", MessageRole.USER, "old")
        clock.advance(301)
        memory.append("user-1", MessageRole.USER, "new")

        assert [m.content for m in memory.history("user-1")] == ["new"]

    def test_oldest_user_evicted(self, clock):
        """Beyond max_users the conversation started first is dropped."""
        memory = ConversationMemory(max_users=2, clock=clock)
        memory.append("a", MessageRole.USER, "x")
        clock.advance(1)
        memory.append("b", MessageRole.USER, "x")
        clock.advance(1)
        memory.append("c", MessageRole.USER, "x")

        assert len(memory) == 2
        assert "a" not in memory
        assert "b" in memory and "c" in memory

    def test_recent_activity_does_not_protect_oldest_user(self, clock):
        """A new message does not move a user to the back of the eviction order."""
        memory = ConversationMemory(max_users=2, clock=clock)
        memory.append("a", MessageRole.USER, "x")
        clock.advance(1)
        memory.append("b", MessageRole.USER, "x")
        clock.advance(1)
        memory.append("a", MessageRole.ASSISTANT, "y")
        clock.advance(1)
        memory.append("c", MessageRole.USER, "x")

        assert "a" not in memory
        assert "b" in memory and "c" in memory

    def test_clear_forgets_user(self, clock):
        """clear removes only the given user's conversation."""
        memory = ConversationMemory(clock=clock)
        memory.append("a", MessageRole.USER, "x")
        memory.append("b", MessageRole.USER, "y")
        memory.clear("a")

        assert memory.history("a") == []
        assert len(memory.history("b")) == 1

    def test_rejects_invalid_bounds(self):
        """Bounds must allow at least one message and one user."""
        with pytest.raises(ValueError):
            ConversationMemory(max_messages=0)
