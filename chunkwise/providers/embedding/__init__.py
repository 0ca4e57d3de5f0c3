"""Embedding provider adapters.

OpenAIEmbeddingProvider implements IEmbeddingProvider
(chunkwise/interfaces/embedding_provider.py) against any OpenAI-compatible
embeddings endpoint.
"""

from chunkwise.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
