"""LLM provider adapters.

OpenAILLMProvider implements ILLMProvider (chunkwise/interfaces/llm_provider.py)
for the question-answering loop.
"""

from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
