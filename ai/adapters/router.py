from __future__ import annotations
"""Task router with ordered fallback.

The router keeps a registry of generation adapters and a route table mapping
each task kind to an ordered list of adapter names. A call walks the route:
unregistered names and adapters whose liveness probe fails are skipped, the
first successful call wins, and a failed call moves on to the next candidate.
There is no retry, weighting or cool-down.
"""

import threading
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from core.errors import AllBackendsFailed, BackendUnavailable, NoRouteConfigured, UnknownAdapter
from core.logging import logger

from .base import GenerationAdapter
from .streaming import ChunkStream
from .types import GenerateOptions, GenerationResult, Message, TaskKind, estimate_tokens

__all__ = ["Router"]

T = TypeVar("T")
TaskLike = Union[TaskKind, str]


def _task_key(task: TaskLike) -> TaskKind:
    return task if isinstance(task, TaskKind) else TaskKind(task)


def _messages_text(messages: List[Message]) -> str:
    return "\n".join(m.content for m in messages)


class Router:
    """Registry plus route table. One instance per process, built at the composition root."""

    def __init__(self) -> None:
        self._adapters: Dict[str, GenerationAdapter] = {}
        self._routes: Dict[TaskKind, List[str]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------
    def register(self, adapter: GenerationAdapter) -> None:
        with self._lock:
            if adapter.name in self._adapters:
                logger.warning(f"Adapter '{adapter.name}' already registered; replacing")
            self._adapters[adapter.name] = adapter
        logger.info(f"Registered adapter '{adapter.name}' ({adapter.category.value})")

    def unregister(self, name: str) -> Optional[GenerationAdapter]:
        with self._lock:
            adapter = self._adapters.pop(name, None)
        if adapter is not None:
            logger.info(f"Unregistered adapter '{name}'")
        return adapter

    def get_adapter(self, name: str) -> Optional[GenerationAdapter]:
        with self._lock:
            return self._adapters.get(name)

    def list_adapters(self) -> List[str]:
        with self._lock:
            return list(self._adapters)

    async def list_available_adapters(self) -> List[str]:
        """Names of registered adapters whose liveness probe currently passes."""
        with self._lock:
            adapters = list(self._adapters.values())
        available = []
        for adapter in adapters:
            if await self._probe(adapter):
                available.append(adapter.name)
        return available

    # ------------------------------------------------------------------
    # Route table
    # ------------------------------------------------------------------
    def set_route(self, task: TaskLike, names: List[str]) -> None:
        key = _task_key(task)
        with self._lock:
            self._routes[key] = list(names)
        logger.debug(f"Route for {key.value}: {' -> '.join(names) or '(empty)'}")

    def get_route(self, task: TaskLike) -> List[str]:
        key = _task_key(task)
        with self._lock:
            return list(self._routes.get(key, []))

    def routes(self) -> Dict[str, List[str]]:
        """Snapshot of the whole route table."""
        with self._lock:
            return {task.value: list(names) for task, names in self._routes.items()}

    # ------------------------------------------------------------------
    # Cost
    # ------------------------------------------------------------------
    def estimate_cost(self, name: str, input_tokens: int, output_tokens: int) -> float:
        adapter = self.get_adapter(name)
        if adapter is None:
            raise UnknownAdapter(name)
        return adapter.estimate_cost(input_tokens, output_tokens)

    def _result(self, adapter: GenerationAdapter, prompt_text: str, text: str) -> GenerationResult:
        input_tokens = estimate_tokens(prompt_text)
        output_tokens = estimate_tokens(text)
        return GenerationResult(
            text=text,
            adapter=adapter.name,
            cost=adapter.estimate_cost(input_tokens, output_tokens),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    # ------------------------------------------------------------------
    # Fallback walk
    # ------------------------------------------------------------------
    @staticmethod
    async def _probe(adapter: GenerationAdapter) -> bool:
        try:
            return bool(await adapter.is_available())
        except Exception as e:
            logger.warning(f"Availability probe for '{adapter.name}' raised: {e}")
            return False

    async def _walk(
        self, task: TaskLike, attempt: Callable[[GenerationAdapter], Awaitable[T]]
    ) -> Tuple[T, GenerationAdapter]:
        key = _task_key(task)
        route = self.get_route(key)
        if not route:
            raise NoRouteConfigured(key.value)

        failures: Dict[str, str] = {}
        for name in route:
            adapter = self.get_adapter(name)
            if adapter is None:
                logger.debug(f"Skipping '{name}' for {key.value}: not registered")
                failures[name] = "not registered"
                continue
            if not await self._probe(adapter):
                logger.debug(f"Skipping '{name}' for {key.value}: not available")
                failures[name] = "not available"
                continue
            try:
                result = await attempt(adapter)
            except Exception as e:
                logger.warning(f"Model '{name}' failed for {key.value}: {e}")
                failures[name] = str(e)
                continue
            logger.debug(f"Task {key.value} served by '{name}'")
            return result, adapter

        logger.error(f"All models failed for {key.value}")
        raise AllBackendsFailed(key.value, failures)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------
    async def invoke(
        self, task: TaskLike, prompt: str, options: Optional[GenerateOptions] = None
    ) -> GenerationResult:
        """Single-shot generation on the first adapter of the route that succeeds."""
        text, adapter = await self._walk(task, lambda a: a.generate(prompt, options))
        return self._result(adapter, prompt, text)

    async def invoke_stream(
        self, task: TaskLike, prompt: str, options: Optional[GenerateOptions] = None
    ) -> Tuple[ChunkStream, str]:
        """Open a stream on the first adapter that accepts the request.

        Failures after the stream is open arrive as its terminal error chunk
        and do not fall back.
        """
        stream, adapter = await self._walk(task, lambda a: a.generate_stream(prompt, options))
        return stream, adapter.name

    async def invoke_chat(
        self, task: TaskLike, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> GenerationResult:
        text, adapter = await self._walk(task, lambda a: a.generate_chat(messages, options))
        return self._result(adapter, _messages_text(messages), text)

    async def invoke_chat_stream(
        self, task: TaskLike, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> Tuple[ChunkStream, str]:
        stream, adapter = await self._walk(task, lambda a: a.generate_chat_stream(messages, options))
        return stream, adapter.name

    async def generate_with_model(
        self, name: str, prompt: str, options: Optional[GenerateOptions] = None
    ) -> GenerationResult:
        """Bypass routing and call one named adapter."""
        adapter = self.get_adapter(name)
        if adapter is None:
            raise UnknownAdapter(name)
        if not await self._probe(adapter):
            raise BackendUnavailable(name)
        text = await adapter.generate(prompt, options)
        return self._result(adapter, prompt, text)

    async def aclose(self) -> None:
        """Release the connection pools of every registered adapter."""
        with self._lock:
            adapters = list(self._adapters.values())
        for adapter in adapters:
            aclose = getattr(adapter, "aclose", None)
            if aclose is not None:
                await aclose()
