"""Unit tests for QAService."""

from __future__ import annotations

import pytest

from chunkwise.models.chat import MessageRole
from chunkwise.models.chunk import EmbeddedChunk
from chunkwise.services.qa_service import (
    GENERIC_FAILURE_MESSAGE,
    HIGH_DEMAND_MESSAGE,
    INVALID_RESPONSE_MESSAGE,
    QAService,
)
from chunkwise.utils.errors import LLMError, RateLimitError
from tests.conftest import ScriptedLLMProvider

SOURCE = "handbook"


@pytest.fixture
def llm() -> ScriptedLLMProvider:
    return ScriptedLLMProvider()


@pytest.fixture
async def populated_store(memory_store, embedder):
    passages = [
        "Refunds are issued within 14 days of a request.",
        "Support is available on weekdays from 9 to 5.",
    ]
    for index, content in enumerate(passages):
        record = EmbeddedChunk(
            index=index,
            content=content,
            length=len(content),
            source_id=SOURCE,
            embedding=embedder.vector_for(content),
        ).to_record()
        await memory_store.commit(SOURCE, record)
    return memory_store


@pytest.fixture
def service(llm, embedder, populated_store, limiter, retry, fake_sleep) -> QAService:
    return QAService(
        llm=llm,
        embedding_provider=embedder,
        store=populated_store,
        limiter=limiter,
        retry=retry,
        source_id=SOURCE,
        top_k=2,
        max_context_chars=4000,
        step_delay=1.0,
        sleep=fake_sleep,
    )


class TestAsk:
    @pytest.mark.asyncio
    async def test_answers_from_retrieved_context(
        self, service: QAService, llm: ScriptedLLMProvider, embedder, fake_sleep
    ) -> None:
        llm.queue("How long do refunds take?", "Refunds take up to 14 days.")

        answer = await service.ask("refunds?")

        assert answer == "Refunds take up to 14 days."
        standalone_prompt, answer_prompt = llm.prompts
        assert "New Question: refunds?" in standalone_prompt
        assert "No previous conversation." in standalone_prompt
        assert "[Document 1]:" in answer_prompt
        assert "[Document 2]:" in answer_prompt
        assert "Question: How long do refunds take?" in answer_prompt
        assert embedder.calls == ["How long do refunds take?"]
        assert fake_sleep.delays == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_exchange_is_recorded_in_history(
        self, service: QAService, llm: ScriptedLLMProvider
    ) -> None:
        llm.queue("What are the support hours?", "Weekdays from 9 to 5.")
        await service.ask("When can I call?")

        history = service.history
        assert [m.role for m in history] == [MessageRole.HUMAN, MessageRole.AI]
        assert history[0].content == "When can I call?"
        assert service.format_chat_history() == (
            "User: When can I call?\nAssistant: Weekdays from 9 to 5."
        )

        llm.queue("Standalone follow-up?", "A second, longer answer.")
        await service.ask("And on weekends?")
        assert "User: When can I call?" in llm.prompts[2]

    @pytest.mark.asyncio
    async def test_clear_history(self, service: QAService, llm: ScriptedLLMProvider) -> None:
        llm.queue("Question?", "Answer long enough.")
        await service.ask("q")
        service.clear_history()
        assert service.history == []
        assert service.format_chat_history() == "No previous conversation."

    @pytest.mark.asyncio
    async def test_history_property_is_a_copy(self, service: QAService) -> None:
        service.history.append("tampered")
        assert service.history == []

    @pytest.mark.asyncio
    async def test_short_answer_is_replaced(self, service: QAService, llm) -> None:
        llm.queue("Question?", "Yes.")
        assert await service.ask("q") == INVALID_RESPONSE_MESSAGE

    @pytest.mark.asyncio
    async def test_rate_limit_returns_high_demand_message(
        self, service: QAService, llm: ScriptedLLMProvider
    ) -> None:
        llm.queue(RateLimitError(), RateLimitError(), RateLimitError())
        assert await service.ask("q") == HIGH_DEMAND_MESSAGE
        assert service.history == []

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(
        self, service: QAService, llm: ScriptedLLMProvider, fake_sleep
    ) -> None:
        llm.queue(RateLimitError(retry_after=5.0), "Question?", "An answer of length.")
        assert await service.ask("q") == "An answer of length."
        assert 5.0 in fake_sleep.delays

    @pytest.mark.asyncio
    async def test_other_failures_return_generic_message(
        self, service: QAService, llm: ScriptedLLMProvider
    ) -> None:
        llm.queue(LLMError("model exploded"))
        assert await service.ask("q") == GENERIC_FAILURE_MESSAGE


class TestTextHelpers:
    def test_trim_context(self, service: QAService) -> None:
        assert service.trim_context("x" * 4000) == "x" * 4000
        assert service.trim_context("x" * 4001) == "x" * 4000 + "..."

    def test_validate_response(self) -> None:
        assert QAService.validate_response("short") == INVALID_RESPONSE_MESSAGE
        assert QAService.validate_response("long enough") == "long enough"

    def test_format_response(self) -> None:
        formatted = QAService.format_response("Note: run `make test` first. Warning: slow.")
        assert formatted == "**Note:** run ```make test``` first. **Warning:** slow."

    def test_format_response_leaves_plain_text(self) -> None:
        assert QAService.format_response("Nothing to change here.") == "Nothing to change here."
