"""Adapters layer providing backend abstraction, streaming and routing.

Backends conform to the GenerationAdapter protocol; the Router walks an
ordered route of adapter names per task kind.
"""

from __future__ import annotations

from .base import EmbeddingAdapter, GenerationAdapter
from .cache import EmbeddingCache
from .embedding import OllamaEmbeddingAdapter
from .providers import AnthropicAdapter, OllamaAdapter, OpenAIAdapter, create_adapter
from .router import Router
from .streaming import ChunkStream, stream_from_chunks
from .types import (
    AdapterCategory,
    GenerateOptions,
    GenerationResult,
    Message,
    MessageRole,
    StreamChunk,
    TaskKind,
    estimate_tokens,
)

__all__ = [
    "AdapterCategory",
    "AnthropicAdapter",
    "ChunkStream",
    "EmbeddingAdapter",
    "EmbeddingCache",
    "GenerateOptions",
    "GenerationAdapter",
    "GenerationResult",
    "Message",
    "MessageRole",
    "OllamaAdapter",
    "OllamaEmbeddingAdapter",
    "OpenAIAdapter",
    "Router",
    "StreamChunk",
    "TaskKind",
    "create_adapter",
    "estimate_tokens",
    "stream_from_chunks",
]
