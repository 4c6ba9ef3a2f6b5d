"""
Main Orchestrator for the Finchat Engine

This module ties together all the components and defines the
end-to-end flow for answering a question:

    question → response cache → (remote endpoint | local generation)
             → cache writes → conversation memory → answer

DESIGN DECISION: The orchestrator enforces the boundaries:
- A cached answer short-circuits everything else
- Nothing is written until an answer exists
- Remote and local answers are recorded identically
- Only one generic error ever reaches the caller

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from finchat.agents import ResponseGenerator
from finchat.audit import AuditLogger, create_correlation_id
from finchat.caching import ContextCache, ResponseCache
from finchat.config import get_settings
from finchat.context import FinancialContextAggregator
from finchat.memory import ConversationMemory
from finchat.models.context import FinancialContext, MessageRole
from finchat.services.remote import (
    RemoteGenerationClient,
    RemoteGenerationError,
    RemoteTransportError,
)
from finchat.services.storage import (
    FinancialDataSource,
    InMemoryFinancialDataSource,
    SupabaseFinancialDataSource,
)


logger = structlog.get_logger("finchat.orchestrator")

GENERIC_FAILURE_MESSAGE = "Unable to process your request. Please try again later."


class ChatServiceError(Exception):
    """The question could not be answered by any path."""

    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE):
        super().__init__(message)


class InvalidQuestionError(ValueError):
    """Blank question or missing user id."""
    pass


class ChatFlow:
    """
    Orchestrates the question answering flow.

    Flow:
    1. Validate → reject blank input before touching any cache
    2. Cache check → a fresh cached answer is returned as is
    3. Remote → when configured, with bounded retries on transport errors
    4. Local → context cache or aggregation, interpret, generate
    5. Record → context cache, response cache, user message, assistant message

    Once the local path starts it runs to completion even if the caller
    is cancelled. Cancellation during the remote call propagates.
    """

    def __init__(
        self,
        aggregator: FinancialContextAggregator,
        generator: Optional[ResponseGenerator] = None,
        response_cache: Optional[ResponseCache] = None,
        context_cache: Optional[ContextCache] = None,
        memory: Optional[ConversationMemory] = None,
        remote_client: Optional[RemoteGenerationClient] = None,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._aggregator = aggregator
        self._generator = generator or ResponseGenerator()
        self._response_cache = response_cache if response_cache is not None else ResponseCache()
        self._context_cache = context_cache if context_cache is not None else ContextCache()
        self._memory = memory if memory is not None else ConversationMemory()
        self._remote = remote_client
        self._max_retries = max_retries
        self._retry_delay = retry_delay_seconds
        self._audit = audit_logger or AuditLogger()
        self._local_tasks: set[asyncio.Task] = set()

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    async def answer_question(self, question: str, user_id: str) -> str:
        """
        Answer a user's question.

        Returns:
            The answer text

        Raises:
            InvalidQuestionError: Blank question or user id
            ChatServiceError: Neither path produced an answer
        """
        if not question or not question.strip():
            raise InvalidQuestionError("Question must not be blank")
        if not user_id or not user_id.strip():
            raise InvalidQuestionError("User id must not be blank")

        correlation_id = create_correlation_id()
        self._audit.log_question_received(user_id, question, correlation_id)

        cached = self._response_cache.get(user_id, question)
        if cached is not None:
            self._audit.log_response_cache_hit(user_id, correlation_id)
            return cached

        if self._remote is not None:
            try:
                answer = await self._generate_remotely(question, user_id, correlation_id)
            except RemoteGenerationError as e:
                self._audit.log_fallback_used(user_id, type(e).__name__, correlation_id)
            else:
                self._record(user_id, question, answer, fresh_context=None)
                self._audit.log_response_generated(user_id, "remote", answer, correlation_id)
                return answer

        task = asyncio.ensure_future(self._answer_locally(question, user_id, correlation_id))
        self._local_tasks.add(task)
        task.add_done_callback(self._local_tasks.discard)
        return await asyncio.shield(task)

    def clear_conversation(self, user_id: str) -> None:
        """Forget the conversation history for a user."""
        self._memory.clear(user_id)
        self._audit.log_conversation_cleared(user_id)

    async def _generate_remotely(
        self,
        question: str,
        user_id: str,
        correlation_id: UUID,
    ) -> str:
        """Call the remote endpoint, retrying transport errors with a growing delay."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_incrementing(start=self._retry_delay, increment=self._retry_delay),
            retry=retry_if_exception_type(RemoteTransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    return await self._remote.generate(question, user_id)
                except RemoteGenerationError as e:
                    self._audit.log_remote_attempt_failed(
                        user_id, attempt.retry_state.attempt_number, e, correlation_id,
                    )
                    raise

    async def _answer_locally(
        self,
        question: str,
        user_id: str,
        correlation_id: UUID,
    ) -> str:
        try:
            context = self._context_cache.get(user_id)
            fresh_context: Optional[FinancialContext] = None
            if context is not None:
                self._audit.log_context_cache_hit(user_id, correlation_id)
            else:
                context = await self._aggregator.aggregate(user_id, correlation_id)
                if not context.is_fallback:
                    fresh_context = context

            history = self._memory.history(user_id)
            answer = self._generator.generate(question, context, history)
        except Exception as e:
            self._audit.log_request_failed(user_id, e, correlation_id)
            raise ChatServiceError() from e

        self._record(user_id, question, answer, fresh_context=fresh_context)
        self._audit.log_response_generated(user_id, "local", answer, correlation_id)
        return answer

    def _record(
        self,
        user_id: str,
        question: str,
        answer: str,
        fresh_context: Optional[FinancialContext],
    ) -> None:
        """Write-through in a fixed order once an answer exists."""
        if fresh_context is not None:
            self._context_cache.put(user_id, fresh_context)
        self._response_cache.put(user_id, question, answer)
        self._memory.append(user_id, MessageRole.USER, question)
        self._memory.append(user_id, MessageRole.ASSISTANT, answer)

    async def aclose(self) -> None:
        """Release the remote client's connections, if any."""
        if self._remote is not None:
            await self._remote.aclose()


def create_app_components(
    source: Optional[FinancialDataSource] = None,
) -> ChatFlow:
    """
    Factory function to create the chat flow from settings.

    Settings are read once here; the remote/local switch is not
    re-evaluated per request.

    Args:
        source: Data source to use. When omitted, Supabase is used if
                configured, otherwise an empty in-memory source.

    Returns:
        A ready ChatFlow
    """
    settings = get_settings()
    chat = settings.chat
    app = settings.app
    audit_logger = AuditLogger()

    if source is None:
        try:
            source = SupabaseFinancialDataSource()
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error_type=type(e).__name__)
            source = InMemoryFinancialDataSource()

    remote_client = None
    if app.remote_generation_enabled:
        remote_client = RemoteGenerationClient(settings.remote_generation)

    return ChatFlow(
        aggregator=FinancialContextAggregator(source, audit_logger=audit_logger),
        generator=ResponseGenerator(assistant_name=chat.assistant_name),
        response_cache=ResponseCache(
            ttl_seconds=chat.response_cache_ttl_seconds,
            max_entries=chat.response_cache_max_entries,
        ),
        context_cache=ContextCache(
            ttl_seconds=chat.context_cache_ttl_seconds,
            max_entries=chat.context_cache_max_entries,
        ),
        memory=ConversationMemory(
            max_messages=chat.conversation_max_messages,
            timeout_seconds=chat.conversation_timeout_seconds,
            max_users=chat.conversation_max_users,
        ),
        remote_client=remote_client,
        max_retries=chat.max_retries,
        retry_delay_seconds=chat.retry_delay_seconds,
        audit_logger=audit_logger,
    )
