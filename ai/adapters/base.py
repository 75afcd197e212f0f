from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from .streaming import ChunkStream
from .types import AdapterCategory, GenerateOptions, Message


@runtime_checkable
class GenerationAdapter(Protocol):
    """Uniform capability wrapping one concrete generation backend.

    The router depends only on this interface; backends conform to it without
    sharing a base class.
    """

    @property
    def name(self) -> str: ...

    @property
    def category(self) -> AdapterCategory: ...

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        """Blocking single-shot generation. Raises BackendCallFailed."""
        ...

    async def generate_stream(self, prompt: str, options: Optional[GenerateOptions] = None) -> ChunkStream:
        """Returns immediately; failures arrive as the terminal error chunk."""
        ...

    async def generate_chat(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str: ...

    async def generate_chat_stream(
        self, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> ChunkStream: ...

    async def is_available(self) -> bool:
        """Cheap liveness probe."""
        ...

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float: ...


@runtime_checkable
class EmbeddingAdapter(Protocol):
    """Narrow capability turning text into a fixed-length vector."""

    @property
    def name(self) -> str: ...

    @property
    def dimensions(self) -> int: ...

    async def embed(self, text: str) -> List[float]: ...

    async def embed_batch(self, texts: List[str]) -> List[List[float]]: ...

    async def is_available(self) -> bool: ...
