"""
Integration tests for the chat flow.

In-memory storage, httpx.MockTransport for the remote endpoint,
zero retry delay so nothing actually sleeps.
"""

import asyncio
import gc

import httpx
import pytest

from finchat.agents import ResponseGenerator
from finchat.caching import ContextCache, ResponseCache
from finchat.config import RemoteGenerationSettings
from finchat.context import FinancialContextAggregator
from finchat.memory import ConversationMemory
from finchat.models.context import MessageRole
from finchat.orchestrator import (
    ChatFlow,
    ChatServiceError,
    InvalidQuestionError,
    create_app_components,
)
from finchat.services.remote import RemoteGenerationClient
from finchat.services.storage import InMemoryFinancialDataSource, StorageError


ENDPOINT = "https://chat.example.test/api/ai-chat"


class CountingSource(InMemoryFinancialDataSource):
    """Counts how many times a snapshot was aggregated."""

    def __init__(self, inner: InMemoryFinancialDataSource):
        super().__init__()
        self._rows = inner._rows
        self.fetches = 0

    async def get_accounts(self, user_id):
        self.fetches += 1
        return await super().get_accounts(user_id)


class ScriptedEndpoint:
    """MockTransport handler answering from a list of (status, body) pairs."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        status, body = self.replies[min(self.calls, len(self.replies)) - 1]
        return httpx.Response(status, json=body)


class GatedSource(InMemoryFinancialDataSource):
    """Holds get_accounts until released."""

    def __init__(self, inner: InMemoryFinancialDataSource):
        super().__init__()
        self._rows = inner._rows
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def get_accounts(self, user_id):
        self.started.set()
        await self.release.wait()
        return await super().get_accounts(user_id)


class FailingGenerator(ResponseGenerator):
    def generate(self, question, context, history=None):
        raise RuntimeError("template bug")


def remote_client(handler) -> RemoteGenerationClient:
    return RemoteGenerationClient(
        RemoteGenerationSettings(endpoint_url=ENDPOINT),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def counting_source(source):
    return CountingSource(source)


@pytest.fixture
def make_flow(counting_source, clock, now):
    """Build a ChatFlow around the sample user's data."""

    def build(remote=None, generator=None, data_source=None):
        return ChatFlow(
            aggregator=FinancialContextAggregator(data_source or counting_source, clock=lambda: now),
            generator=generator or ResponseGenerator(clock=lambda: now),
            response_cache=ResponseCache(clock=clock),
            context_cache=ContextCache(clock=clock),
            memory=ConversationMemory(clock=clock),
            remote_client=remote,
            max_retries=2,
            retry_delay_seconds=0,
        )

    return build


def recorded_state(flow: ChatFlow, user_id: str = "user-1"):
    return (
        len(flow._response_cache),
        len(flow._context_cache),
        [(m.role, m.content) for m in flow._memory.history(user_id)],
    )


class TestLocalFlow:
    """No remote endpoint configured."""

    @pytest.mark.asyncio
    async def test_answers_from_user_data(self, make_flow):
        flow = make_flow()
        answer = await flow.answer_question("What's my balance?", "user-1")

        assert "💰 Checking: $500.00" in answer
        assert "**Total Balance:** $500.00" in answer

    @pytest.mark.asyncio
    async def test_writes_caches_and_history(self, make_flow):
        flow = make_flow()
        answer = await flow.answer_question("What's my balance?", "user-1")

        assert recorded_state(flow) == (
            1, 1, [(MessageRole.USER, "What's my balance?"), (MessageRole.ASSISTANT, answer)],
        )

    @pytest.mark.asyncio
    async def test_cache_hit_short_circuits(self, make_flow, counting_source):
        """The second identical question does not aggregate again."""
        flow = make_flow()
        first = await flow.answer_question("What's my balance?", "user-1")
        second = await flow.answer_question("what's my   balance?", "user-1")

        assert first == second
        assert counting_source.fetches == 1
        assert len(flow._memory.history("user-1")) == 2

    @pytest.mark.asyncio
    async def test_context_reused_across_questions(self, make_flow, counting_source):
        flow = make_flow()
        await flow.answer_question("What's my balance?", "user-1")
        await flow.answer_question("What are my top spending categories?", "user-1")

        assert counting_source.fetches == 1
        assert len(flow._response_cache) == 2

    @pytest.mark.asyncio
    async def test_expired_answer_is_regenerated(self, make_flow, counting_source, clock):
        flow = make_flow()
        await flow.answer_question("What's my balance?", "user-1")
        clock.advance(61)
        await flow.answer_question("What's my balance?", "user-1")

        assert counting_source.fetches == 2

    @pytest.mark.asyncio
    async def test_fallback_snapshot_is_not_cached(self, make_flow):
        failing = InMemoryFinancialDataSource()
        failing.fail_with = StorageError("down")
        flow = make_flow(data_source=failing)

        answer = await flow.answer_question("What's my balance?", "user-1")

        assert answer.startswith("You don't have any accounts set up yet.")
        assert len(flow._context_cache) == 0
        assert len(flow._response_cache) == 1

    @pytest.mark.asyncio
    async def test_generation_failure_is_generic_and_writes_nothing(self, make_flow):
        flow = make_flow(generator=FailingGenerator())

        with pytest.raises(ChatServiceError) as exc_info:
            await flow.answer_question("What's my balance?", "user-1")

        assert str(exc_info.value) == "Unable to process your request. Please try again later."
        assert recorded_state(flow) == (0, 0, [])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("question,user_id", [("", "user-1"), ("   ", "user-1"), ("hi", "")])
    async def test_blank_input_rejected(self, make_flow, question, user_id):
        flow = make_flow()
        with pytest.raises(InvalidQuestionError):
            await flow.answer_question(question, user_id)

    @pytest.mark.asyncio
    async def test_clear_conversation(self, make_flow):
        flow = make_flow()
        await flow.answer_question("What's my balance?", "user-1")
        flow.clear_conversation("user-1")
        assert flow._memory.history("user-1") == []


class TestRemoteFlow:
    """Remote endpoint configured."""

    @pytest.mark.asyncio
    async def test_remote_answer_is_recorded(self, make_flow, counting_source):
        endpoint = ScriptedEndpoint((200, {"response": "Remote says hi"}))
        flow = make_flow(remote=remote_client(endpoint))

        answer = await flow.answer_question("What's my balance?", "user-1")

        assert answer == "Remote says hi"
        assert counting_source.fetches == 0
        assert recorded_state(flow) == (
            1, 0, [(MessageRole.USER, "What's my balance?"), (MessageRole.ASSISTANT, "Remote says hi")],
        )

    @pytest.mark.asyncio
    async def test_cache_hit_skips_remote(self, make_flow):
        endpoint = ScriptedEndpoint((200, {"response": "Remote says hi"}))
        flow = make_flow(remote=remote_client(endpoint))

        await flow.answer_question("What's my balance?", "user-1")
        await flow.answer_question("What's my balance?", "user-1")

        assert endpoint.calls == 1

    @pytest.mark.asyncio
    async def test_retry_then_success_matches_immediate_success(self, make_flow):
        flaky = ScriptedEndpoint((503, {}), (200, {"response": "Remote says hi"}))
        healthy = ScriptedEndpoint((200, {"response": "Remote says hi"}))
        flaky_flow = make_flow(remote=remote_client(flaky))
        healthy_flow = make_flow(remote=remote_client(healthy))

        flaky_answer = await flaky_flow.answer_question("What's my balance?", "user-1")
        healthy_answer = await healthy_flow.answer_question("What's my balance?", "user-1")

        assert flaky_answer == healthy_answer
        assert flaky.calls == 2
        assert recorded_state(flaky_flow) == recorded_state(healthy_flow)
        assert flaky_flow._response_cache.get("user-1", "What's my balance?") == "Remote says hi"

    @pytest.mark.asyncio
    async def test_exhausted_retries_fall_back_to_local(self, make_flow):
        """Two retries after the first attempt, then the local answer."""
        endpoint = ScriptedEndpoint((503, {}))
        flow = make_flow(remote=remote_client(endpoint))

        answer = await flow.answer_question("What's my balance?", "user-1")

        assert endpoint.calls == 3
        assert "**Total Balance:** $500.00" in answer

    @pytest.mark.asyncio
    async def test_malformed_body_falls_back_without_retry(self, make_flow):
        endpoint = ScriptedEndpoint((200, {"unexpected": True}))
        flow = make_flow(remote=remote_client(endpoint))

        answer = await flow.answer_question("What's my balance?", "user-1")

        assert endpoint.calls == 1
        assert "**Total Balance:** $500.00" in answer

    @pytest.mark.asyncio
    async def test_undecodable_body_falls_back_without_retry(self, make_flow):
        """A body that fails content decoding is treated as a malformed answer."""
        calls = []

        def corrupt_gzip(request):
            calls.append(request)
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not-gzip")

        flow = make_flow(remote=remote_client(corrupt_gzip))

        answer = await flow.answer_question("What's my balance?", "user-1")

        assert len(calls) == 1
        assert "Checking" in answer
        assert "**Total Balance:** $500.00" in answer

    @pytest.mark.asyncio
    async def test_request_error_falls_back_without_retry(self, make_flow):
        endpoint = ScriptedEndpoint((401, {"error": "unauthorized"}))
        flow = make_flow(remote=remote_client(endpoint))

        await flow.answer_question("What's my balance?", "user-1")

        assert endpoint.calls == 1

    @pytest.mark.asyncio
    async def test_fallback_answer_recorded_like_local_answer(self, make_flow, source):
        """Callers cannot tell which path produced the answer."""
        fallback_flow = make_flow(remote=remote_client(ScriptedEndpoint((500, {}))))
        local_flow = make_flow(data_source=CountingSource(source))

        fallback_answer = await fallback_flow.answer_question("What's my balance?", "user-1")
        local_answer = await local_flow.answer_question("What's my balance?", "user-1")

        assert fallback_answer == local_answer
        assert recorded_state(fallback_flow) == recorded_state(local_flow)

    @pytest.mark.asyncio
    async def test_exhaustion_raises_once_and_writes_nothing(self, make_flow):
        endpoint = ScriptedEndpoint((503, {}))
        flow = make_flow(remote=remote_client(endpoint), generator=FailingGenerator())

        with pytest.raises(ChatServiceError):
            await flow.answer_question("What's my balance?", "user-1")

        assert endpoint.calls == 3
        assert recorded_state(flow) == (0, 0, [])


class TestCancellation:

    @pytest.mark.asyncio
    async def test_cancel_during_remote_call_propagates(self, make_flow, counting_source):
        entered = asyncio.Event()

        async def hanging(request):
            entered.set()
            await asyncio.Event().wait()

        flow = make_flow(remote=remote_client(hanging))
        task = asyncio.create_task(flow.answer_question("What's my balance?", "user-1"))
        await entered.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert counting_source.fetches == 0
        assert recorded_state(flow) == (0, 0, [])

    @pytest.mark.asyncio
    async def test_local_path_completes_after_cancel(self, make_flow, source):
        slow = GatedSource(source)
        flow = make_flow(data_source=slow)
        task = asyncio.create_task(flow.answer_question("What's my balance?", "user-1"))
        await slow.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        slow.release.set()
        for _ in range(100):
            if len(flow._response_cache):
                break
            await asyncio.sleep(0)

        assert len(flow._response_cache) == 1
        assert len(flow._memory.history("user-1")) == 2

    @pytest.mark.asyncio
    async def test_abandoned_local_failure_is_retrieved(self, make_flow, source):
        """A local failure after the caller left is not reported as unretrieved."""
        loop = asyncio.get_running_loop()
        reported = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        try:
            gated = GatedSource(source)
            flow = make_flow(data_source=gated, generator=FailingGenerator())
            task = asyncio.create_task(flow.answer_question("What's my balance?", "user-1"))
            await gated.started.wait()
            (local_task,) = flow._local_tasks
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            gated.release.set()
            for _ in range(100):
                if not flow._local_tasks:
                    break
                await asyncio.sleep(0)

            assert local_task.done() and not local_task.cancelled()
            assert not flow._local_tasks
            del task, local_task
            gc.collect()
            assert reported == []
        finally:
            loop.set_exception_handler(previous_handler)


class TestCreateAppComponents:

    def test_local_mode_from_settings(self, monkeypatch, source):
        from finchat.config import get_settings

        monkeypatch.setenv("APP_ENVIRONMENT", "development")
        monkeypatch.delenv("USE_REMOTE_GENERATION", raising=False)
        get_settings.cache_clear()

        flow = create_app_components(source=source)

        assert flow.remote_enabled is False
        get_settings.cache_clear()

    def test_remote_mode_from_settings(self, monkeypatch, source):
        from finchat.config import get_settings

        monkeypatch.setenv("USE_REMOTE_GENERATION", "true")
        monkeypatch.setenv("REMOTE_GENERATION_ENDPOINT_URL", ENDPOINT)
        get_settings.cache_clear()

        flow = create_app_components(source=source)

        assert flow.remote_enabled is True
        get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
