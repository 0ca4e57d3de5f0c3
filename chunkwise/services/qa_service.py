"""Conversational question answering over an ingested source.

Answers questions with retrieval-augmented generation over the records the
ingestion pipeline committed:

  1. ADMIT       -- take a token from the chat limiter.
  2. REWRITE     -- turn the follow-up into a standalone question using the
                    conversation so far.
  3. RETRIEVE    -- embed the standalone question and rank stored chunks by
                    cosine similarity.
  4. COMBINE     -- number the passages as ``[Document n]`` and trim the
                    context to ``max_context_chars``.
  5. ANSWER      -- ask the LLM with context, history and question.
  6. REMEMBER    -- append the exchange to the in-memory history.

Every provider call runs through :class:`RetryExecutor`.  Failures never
escape :meth:`QAService.ask`; the user gets a short apology instead.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable

import structlog

from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.interfaces.progress_store import IProgressStore
from chunkwise.models.chat import ChatMessage, MessageRole
from chunkwise.models.chunk import RetrievedChunk
from chunkwise.utils.errors import ChunkwiseError, RateLimitError
from chunkwise.utils.logging import get_logger
from chunkwise.utils.rate_limiter import TokenBucketLimiter
from chunkwise.utils.retry import RetryExecutor

logger: structlog.BoundLogger = get_logger(__name__)

HIGH_DEMAND_MESSAGE = (
    "I'm currently experiencing high demand. Please wait 20 seconds before trying again."
)
GENERIC_FAILURE_MESSAGE = (
    "I apologize, but I'm having trouble processing your question. Please try again shortly."
)
INVALID_RESPONSE_MESSAGE = (
    "I apologize, but I couldn't generate a proper response. "
    "Please try asking your question differently."
)
NO_HISTORY_TEXT = "No previous conversation."

_MIN_RESPONSE_CHARS = 10
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_CALLOUT_RE = re.compile(r"\b(Note|Important|Warning):")


class QAService:
    """Answers questions about one ingested source, keeping conversation history.

    Parameters
    ----------
    llm:
        Completion provider for both the rewrite and the answer.
    embedding_provider:
        Embeds the standalone question for retrieval.
    store:
        Progress store holding the source's committed records.
    limiter:
        Chat-side admission control; one token per question.
    retry:
        Backoff policy applied to every provider call.
    source_id:
        The ingested source to answer from.
    top_k:
        Number of passages retrieved per question.
    max_context_chars:
        Combined passages longer than this are cut and suffixed with ``...``.
    step_delay:
        Pause in seconds between consecutive model calls.
    """

    _STANDALONE_TEMPLATE = (
        "Given the following conversation history and a new question, convert the new "
        "question to a standalone question that captures the context of the conversation.\n\n"
        "Chat History: {chat_history}\n"
        "New Question: {question}\n\n"
        "Standalone question:"
    )

    _ANSWER_TEMPLATE = (
        "You are a helpful and enthusiastic assistant who answers questions about the "
        "provided document based on the context below.\n\n"
        "Instructions:\n"
        "- Use the context and chat history to answer the question\n"
        "- Pay special attention to personal details shared in the chat history "
        "(like names, preferences, etc.)\n"
        "- Maintain context from previous exchanges\n"
        "- Respond in a friendly, conversational tone using the user's name when known\n"
        "- If the answer is in the context, provide specific details\n"
        "- If you're not certain, say \"I'm not entirely sure about that\"\n"
        "- For questions you cannot answer, respond: \"I'm sorry, I don't know the answer "
        "to that.\"\n"
        "- Keep responses concise but informative\n"
        "- Include relevant examples when available in the context\n\n"
        "Previous conversation:\n"
        "{chat_history}\n\n"
        "Context: {context}\n"
        "Question: {question}\n"
        "Answer:"
    )

    def __init__(
        self,
        llm: ILLMProvider,
        embedding_provider: IEmbeddingProvider,
        store: IProgressStore,
        limiter: TokenBucketLimiter,
        retry: RetryExecutor,
        source_id: str,
        top_k: int = 4,
        max_context_chars: int = 4000,
        step_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._llm = llm
        self._embedding_provider = embedding_provider
        self._store = store
        self._limiter = limiter
        self._retry = retry
        self._source_id = source_id
        self._top_k = top_k
        self._max_context_chars = max_context_chars
        self._step_delay = step_delay
        self._sleep = sleep
        self._history: list[ChatMessage] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def source_id(self) -> str:
        return self._source_id

    @property
    def history(self) -> list[ChatMessage]:
        """Return a copy of the conversation so far, oldest first."""
        return list(self._history)

    def clear_history(self) -> None:
        self._history = []
        logger.info("qa_history_cleared", source_id=self._source_id)

    def format_chat_history(self) -> str:
        """Render the history as ``User:`` / ``Assistant:`` lines."""
        if not self._history:
            return NO_HISTORY_TEXT
        return "\n".join(
            f"{'User' if message.role is MessageRole.HUMAN else 'Assistant'}: {message.content}"
            for message in self._history
        )

    async def ask(self, question: str) -> str:
        """Answer *question* and record the exchange in the history.

        Never raises for provider or store failures; a rate-limit failure
        returns a "high demand" notice and anything else a generic apology.
        """
        try:
            await self._limiter.acquire()
            chat_history = self.format_chat_history()

            standalone = await self._standalone_question(question, chat_history)
            await self._pause()
            passages = await self._retrieve(standalone)
            context = self.trim_context(self.combine_documents(passages))
            await self._pause()

            answer_prompt = self._ANSWER_TEMPLATE.format(
                chat_history=chat_history,
                context=context,
                question=standalone,
            )
            response = await self._retry.run(
                lambda: self._llm.complete(answer_prompt),
                label="qa_answer",
            )
        except RateLimitError as exc:
            logger.warning("qa_rate_limited", source_id=self._source_id, error=str(exc))
            return HIGH_DEMAND_MESSAGE
        except ChunkwiseError as exc:
            logger.error("qa_failed", source_id=self._source_id, error=str(exc))
            return GENERIC_FAILURE_MESSAGE

        self._history.append(ChatMessage(role=MessageRole.HUMAN, content=question))
        self._history.append(ChatMessage(role=MessageRole.AI, content=response))

        logger.info(
            "qa_answered",
            source_id=self._source_id,
            question=question[:80],
            passages=len(passages),
            context_chars=len(context),
        )
        return self.format_response(self.validate_response(response))

    # ------------------------------------------------------------------
    # Text helpers
    # ------------------------------------------------------------------

    @staticmethod
    def combine_documents(passages: list[RetrievedChunk]) -> str:
        return "\n\n".join(
            f"[Document {n}]:\n{passage.record.content}"
            for n, passage in enumerate(passages, start=1)
        )

    def trim_context(self, context: str) -> str:
        if len(context) > self._max_context_chars:
            return context[: self._max_context_chars] + "..."
        return context

    @staticmethod
    def validate_response(response: str) -> str:
        if len(response) < _MIN_RESPONSE_CHARS:
            return INVALID_RESPONSE_MESSAGE
        return response

    @staticmethod
    def format_response(response: str) -> str:
        """Fence inline code spans and bold ``Note:``/``Important:``/``Warning:``."""
        response = _INLINE_CODE_RE.sub(r"```\1```", response)
        return _CALLOUT_RE.sub(r"**\1:**", response)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _standalone_question(self, question: str, chat_history: str) -> str:
        prompt = self._STANDALONE_TEMPLATE.format(chat_history=chat_history, question=question)
        rewritten = await self._retry.run(
            lambda: self._llm.complete(prompt),
            label="qa_standalone_question",
        )
        rewritten = rewritten.strip()
        logger.debug("qa_standalone_question", original=question[:80], standalone=rewritten[:80])
        return rewritten or question

    async def _retrieve(self, query: str) -> list[RetrievedChunk]:
        embedding = await self._retry.run(
            lambda: self._embedding_provider.embed_single(query),
            label="qa_embed_query",
        )
        return await self._store.search(self._source_id, embedding, top_k=self._top_k)

    async def _pause(self) -> None:
        if self._step_delay > 0:
            await self._sleep(self._step_delay)
