"""
Conversation Memory

Keeps the last few messages per user so follow-up questions
("what about last month?") can be resolved against the previous topic.

Bounds:
- messages per user (oldest dropped first)
- inactivity timeout (the whole conversation is dropped)
- number of users tracked (oldest conversation dropped first)

Nothing is persisted; a restart starts every conversation afresh.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Union

from finchat.models.context import ConversationMessage, MessageRole


@dataclass
class _Conversation:
    messages: list[ConversationMessage] = field(default_factory=list)
    last_activity: float = 0.0


class ConversationMemory:
    """Bounded, self-expiring per-user transcripts."""

    def __init__(
        self,
        max_messages: int = 10,
        timeout_seconds: float = 300.0,
        max_users: int = 200,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_messages < 1 or max_users < 1:
            raise ValueError("max_messages and max_users must be at least 1")

        self._max_messages = max_messages
        self._timeout = timeout_seconds
        self._max_users = max_users
        self._clock = clock
        self._conversations: OrderedDict[str, _Conversation] = OrderedDict()
        self._lock = threading.Lock()

    def history(self, user_id: str) -> list[ConversationMessage]:
        """
        Messages for a user, oldest first.

        Returns a copy. An expired conversation is deleted and reads as empty.
        """
        with self._lock:
            conversation = self._conversations.get(user_id)
            if conversation is None:
                return []
            if self._clock() - conversation.last_activity > self._timeout:
                del self._conversations[user_id]
                return []
            return list(conversation.messages)

    def append(
        self,
        user_id: str,
        role: Union[MessageRole, str],
        content: str,
    ) -> None:
        """Record a message, trimming and evicting as needed."""
        now = self._clock()
        message = ConversationMessage(role=MessageRole(role), content=content, timestamp=now)

        with self._lock:
            conversation = self._conversations.get(user_id)
            if conversation is not None and now - conversation.last_activity > self._timeout:
                del self._conversations[user_id]
                conversation = None

            if conversation is None:
                conversation = _Conversation(last_activity=now)
                self._conversations[user_id] = conversation

            conversation.messages.append(message)
            if len(conversation.messages) > self._max_messages:
                del conversation.messages[:-self._max_messages]
            conversation.last_activity = now

            while len(self._conversations) > self._max_users:
                self._conversations.popitem(last=False)

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._conversations.pop(user_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._conversations
