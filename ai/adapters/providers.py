"""Generation adapters for the supported backends.

Each adapter is an independent type conforming to GenerationAdapter; shared
HTTP plumbing lives in ``_http``.
"""
import json
import os
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from core.errors import BackendCallFailed
from core.logging import logger

from ._http import (
    DEFAULT_TIMEOUT,
    ClientHolder,
    iter_sse_data,
    open_stream,
    post_json,
    split_system,
    transport_error,
)
from .pricing import (
    ANTHROPIC_DEFAULT,
    ANTHROPIC_PRICING,
    FREE,
    OPENAI_DEFAULT,
    OPENAI_PRICING,
    Pricing,
    lookup,
)
from .streaming import ChunkStream
from .types import AdapterCategory, GenerateOptions, Message, StreamChunk

PROBE_TIMEOUT = 5.0


def _opts(options: Optional[GenerateOptions]) -> GenerateOptions:
    return options if options is not None else GenerateOptions()


class OllamaAdapter:
    """Ollama local model adapter (zero marginal cost)."""

    def __init__(
        self,
        model: str,
        host: Optional[str] = None,
        name: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.host = (host or os.environ.get("OLLAMA_HOST", "http://localhost:11434")).rstrip("/")
        self._name = name or model
        self._timeout = timeout
        self._http = ClientHolder(timeout, client)

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> AdapterCategory:
        return AdapterCategory.LOCAL

    def _options(self, opts: GenerateOptions) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if opts.temperature > 0:
            options["temperature"] = opts.temperature
        if 0 < opts.top_p < 1:
            options["top_p"] = opts.top_p
        if opts.max_tokens > 0:
            options["num_predict"] = opts.max_tokens
        if opts.stop:
            options["stop"] = list(opts.stop)
        return options

    def _generate_payload(self, prompt: str, opts: GenerateOptions, stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "prompt": prompt, "stream": stream}
        if opts.system_prompt:
            payload["system"] = opts.system_prompt
        options = self._options(opts)
        if options:
            payload["options"] = options
        return payload

    def _chat_payload(self, messages: List[Message], opts: GenerateOptions, stream: bool) -> Dict[str, Any]:
        # Ollama accepts system turns, so options.system_prompt just leads the list
        wire = [m.to_dict() for m in messages]
        if opts.system_prompt:
            wire.insert(0, Message.system(opts.system_prompt).to_dict())
        payload: Dict[str, Any] = {"model": self.model, "messages": wire, "stream": stream}
        options = self._options(opts)
        if options:
            payload["options"] = options
        return payload

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        data = await post_json(
            self._http.get(), self.name, f"{self.host}/api/generate",
            self._generate_payload(prompt, _opts(options), stream=False), timeout=self._timeout,
        )
        return str(data.get("response", ""))

    async def generate_stream(self, prompt: str, options: Optional[GenerateOptions] = None) -> ChunkStream:
        payload = self._generate_payload(prompt, _opts(options), stream=True)
        return ChunkStream(self._ndjson_events(f"{self.host}/api/generate", payload, lambda e: e.get("response", "")))

    async def generate_chat(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        data = await post_json(
            self._http.get(), self.name, f"{self.host}/api/chat",
            self._chat_payload(messages, _opts(options), stream=False), timeout=self._timeout,
        )
        message = data.get("message") or {}
        return str(message.get("content", ""))

    async def generate_chat_stream(
        self, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> ChunkStream:
        payload = self._chat_payload(messages, _opts(options), stream=True)
        return ChunkStream(
            self._ndjson_events(f"{self.host}/api/chat", payload, lambda e: (e.get("message") or {}).get("content", ""))
        )

    async def _ndjson_events(
        self, url: str, payload: Dict[str, Any], extract: Callable[[Dict[str, Any]], str]
    ) -> AsyncIterator[StreamChunk]:
        try:
            async with open_stream(self._http.get(), self.name, url, payload) as response:
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        event = json.loads(line)
                    except ValueError:
                        continue
                    if event.get("error"):
                        yield StreamChunk(error=BackendCallFailed(self.name, str(event["error"])))
                        return
                    text = extract(event)
                    if text:
                        yield StreamChunk(content=text)
                    if event.get("done"):
                        yield StreamChunk(done=True)
                        return
        except BackendCallFailed as e:
            yield StreamChunk(error=e)
        except httpx.HTTPError as e:
            yield StreamChunk(error=transport_error(self.name, e, self._timeout))

    async def list_models(self) -> List[str]:
        """List models loaded in Ollama."""
        try:
            response = await self._http.get().get(f"{self.host}/api/tags", timeout=PROBE_TIMEOUT)
            if response.status_code == 200:
                data = response.json()
                if isinstance(data, dict):
                    return [m["name"] for m in data.get("models", []) if isinstance(m, dict) and "name" in m]
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Ollama model listing failed at {self.host}: {e}")
        return []

    async def is_available(self) -> bool:
        """Endpoint reachable and this exact model loaded."""
        names = await self.list_models()
        return self.model in names or f"{self.model}:latest" in names

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return FREE.cost(input_tokens, output_tokens)

    async def aclose(self) -> None:
        await self._http.aclose()


class AnthropicAdapter:
    """Anthropic Messages API adapter (Claude 3 Opus, Sonnet, Haiku, etc.).

    The Messages API rejects the system role inside ``messages``: system turns
    and ``options.system_prompt`` are merged into the top-level ``system`` field.
    """

    API_VERSION = "2023-06-01"
    DEFAULT_BASE_URL = "https://api.anthropic.com/v1"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        pricing: Optional[Pricing] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.api_key = api_key if api_key is not None else os.environ.get("ANTHROPIC_API_KEY")
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._name = name or model
        self._timeout = timeout
        self._pricing = pricing or lookup(model, ANTHROPIC_PRICING, ANTHROPIC_DEFAULT)
        self._http = ClientHolder(timeout, client)

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> AdapterCategory:
        return AdapterCategory.CLOUD

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[Message], opts: GenerateOptions, stream: bool) -> Dict[str, Any]:
        system, turns = split_system(messages, opts.system_prompt)
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": opts.max_tokens if opts.max_tokens > 0 else GenerateOptions.max_tokens,
            "messages": [m.to_dict() for m in turns],
        }
        if system:
            payload["system"] = system
        if opts.temperature > 0:
            payload["temperature"] = opts.temperature
        if 0 < opts.top_p < 1:
            payload["top_p"] = opts.top_p
        if opts.stop:
            payload["stop_sequences"] = list(opts.stop)
        if stream:
            payload["stream"] = True
        return payload

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        return await self.generate_chat([Message.user(prompt)], options)

    async def generate_stream(self, prompt: str, options: Optional[GenerateOptions] = None) -> ChunkStream:
        return await self.generate_chat_stream([Message.user(prompt)], options)

    async def generate_chat(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        data = await post_json(
            self._http.get(), self.name, f"{self.base_url}/messages",
            self._payload(messages, _opts(options), stream=False),
            headers=self._headers(), timeout=self._timeout,
        )
        blocks = data.get("content") or []
        texts = [b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text"]
        if not texts:
            raise BackendCallFailed(self.name, "empty response")
        return "".join(texts)

    async def generate_chat_stream(
        self, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> ChunkStream:
        payload = self._payload(messages, _opts(options), stream=True)
        return ChunkStream(self._sse_events(payload))

    async def _sse_events(self, payload: Dict[str, Any]) -> AsyncIterator[StreamChunk]:
        try:
            async with open_stream(
                self._http.get(), self.name, f"{self.base_url}/messages", payload, headers=self._headers()
            ) as response:
                async for data in iter_sse_data(response):
                    if data == "[DONE]":
                        yield StreamChunk(done=True)
                        return
                    try:
                        event = json.loads(data)
                    except ValueError:
                        continue
                    kind = event.get("type")
                    if kind == "content_block_delta":
                        delta = event.get("delta") or {}
                        if delta.get("type") == "text_delta" and delta.get("text"):
                            yield StreamChunk(content=delta["text"])
                    elif kind == "message_stop":
                        yield StreamChunk(done=True)
                        return
                    elif kind == "error":
                        message = (event.get("error") or {}).get("message", "stream error")
                        yield StreamChunk(error=BackendCallFailed(self.name, message))
                        return
        except BackendCallFailed as e:
            yield StreamChunk(error=e)
        except httpx.HTTPError as e:
            yield StreamChunk(error=transport_error(self.name, e, self._timeout))

    async def is_available(self) -> bool:
        """Credential present; no network call."""
        return bool(self.api_key)

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return self._pricing.cost(input_tokens, output_tokens)

    async def aclose(self) -> None:
        await self._http.aclose()


class OpenAIAdapter:
    """OpenAI chat-completions adapter (GPT-4o, GPT-4o mini, etc.).

    Works with any OpenAI-compatible endpoint through ``base_url``.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        pricing: Optional[Pricing] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.api_key = api_key if api_key is not None else os.environ.get("OPENAI_API_KEY")
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._name = name or model
        self._timeout = timeout
        self._pricing = pricing or lookup(model, OPENAI_PRICING, OPENAI_DEFAULT)
        self._http = ClientHolder(timeout, client)

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> AdapterCategory:
        return AdapterCategory.CLOUD

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[Message], opts: GenerateOptions, stream: bool) -> Dict[str, Any]:
        wire = [m.to_dict() for m in messages]
        if opts.system_prompt:
            wire.insert(0, Message.system(opts.system_prompt).to_dict())
        payload: Dict[str, Any] = {"model": self.model, "messages": wire}
        if opts.max_tokens > 0:
            payload["max_tokens"] = opts.max_tokens
        if opts.temperature > 0:
            payload["temperature"] = opts.temperature
        if 0 < opts.top_p < 1:
            payload["top_p"] = opts.top_p
        if opts.stop:
            payload["stop"] = list(opts.stop)
        if stream:
            payload["stream"] = True
        return payload

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        return await self.generate_chat([Message.user(prompt)], options)

    async def generate_stream(self, prompt: str, options: Optional[GenerateOptions] = None) -> ChunkStream:
        return await self.generate_chat_stream([Message.user(prompt)], options)

    async def generate_chat(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        data = await post_json(
            self._http.get(), self.name, f"{self.base_url}/chat/completions",
            self._payload(messages, _opts(options), stream=False),
            headers=self._headers(), timeout=self._timeout,
        )
        choices = data.get("choices") or []
        if not choices:
            raise BackendCallFailed(self.name, "empty response")
        message = choices[0].get("message") or {}
        return message.get("content") or ""

    async def generate_chat_stream(
        self, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> ChunkStream:
        payload = self._payload(messages, _opts(options), stream=True)
        return ChunkStream(self._sse_events(payload))

    async def _sse_events(self, payload: Dict[str, Any]) -> AsyncIterator[StreamChunk]:
        try:
            async with open_stream(
                self._http.get(), self.name, f"{self.base_url}/chat/completions", payload, headers=self._headers()
            ) as response:
                async for data in iter_sse_data(response):
                    if data == "[DONE]":
                        yield StreamChunk(done=True)
                        return
                    try:
                        event = json.loads(data)
                    except ValueError:
                        continue
                    choices = event.get("choices") or []
                    if not choices:
                        continue
                    delta = choices[0].get("delta") or {}
                    if delta.get("content"):
                        yield StreamChunk(content=delta["content"])
                    if choices[0].get("finish_reason"):
                        yield StreamChunk(done=True)
                        return
        except BackendCallFailed as e:
            yield StreamChunk(error=e)
        except httpx.HTTPError as e:
            yield StreamChunk(error=transport_error(self.name, e, self._timeout))

    async def is_available(self) -> bool:
        """Credential present; no network call."""
        return bool(self.api_key)

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return self._pricing.cost(input_tokens, output_tokens)

    async def aclose(self) -> None:
        await self._http.aclose()


# Adapter factory
def create_adapter(provider_type: str, **kwargs):
    """Create an adapter instance by provider type."""
    adapters = {
        "ollama": OllamaAdapter,
        "anthropic": AnthropicAdapter,
        "claude": AnthropicAdapter,
        "openai": OpenAIAdapter,
    }

    adapter_class = adapters.get(provider_type.lower())
    if not adapter_class:
        raise ValueError(f"Unknown provider type: {provider_type}")

    return adapter_class(**kwargs)
