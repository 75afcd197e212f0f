"""HTTP plumbing shared by the backend adapters.

Adapters do not share a base class; they compose these helpers instead.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from core.errors import BackendCallFailed

from .types import Message, MessageRole

DEFAULT_TIMEOUT = 300.0  # 5 min, slow CPU inference
CONNECT_TIMEOUT = 10.0


def build_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=min(timeout, CONNECT_TIMEOUT)))


class ClientHolder:
    """Lazily created, privately owned connection pool."""

    def __init__(self, timeout: float, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout
        self._client = client
        self._owned = client is None

    def get(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = build_client(self._timeout)
            self._owned = True
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owned:
            await self._client.aclose()
        self._client = None


def error_detail(response: httpx.Response) -> str:
    """Extract a provider error message if available."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            return str(err.get("message", ""))
        if isinstance(err, str):
            return err
    return ""


def status_error(name: str, response: httpx.Response) -> BackendCallFailed:
    detail = error_detail(response)
    reason = f"returned status {response.status_code}"
    if detail:
        reason = f"{reason}: {detail}"
    return BackendCallFailed(name, reason, response.status_code)


def transport_error(name: str, exc: httpx.HTTPError, timeout: float) -> BackendCallFailed:
    if isinstance(exc, httpx.TimeoutException):
        return BackendCallFailed(name, f"request timed out after {timeout}s")
    return BackendCallFailed(name, f"request failed: {exc}")


async def post_json(
    client: httpx.AsyncClient,
    name: str,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    """POST a JSON payload and decode the JSON body. Every failure is a BackendCallFailed."""
    try:
        response = await client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise transport_error(name, e, timeout) from e

    if response.status_code != 200:
        raise status_error(name, response)

    try:
        data = response.json()
    except ValueError as e:
        raise BackendCallFailed(name, f"failed to decode response: {e}") from e
    if not isinstance(data, dict):
        raise BackendCallFailed(name, "failed to decode response: expected a JSON object")
    return data


@asynccontextmanager
async def open_stream(
    client: httpx.AsyncClient,
    name: str,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> AsyncIterator[httpx.Response]:
    """Open a streaming POST; a non-200 status is raised as BackendCallFailed."""
    async with client.stream("POST", url, json=payload, headers=headers) as response:
        if response.status_code != 200:
            await response.aread()
            raise status_error(name, response)
        yield response


async def iter_sse_data(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the payload of each server-sent ``data:`` line."""
    async for line in response.aiter_lines():
        if not line.startswith("data:"):
            continue
        yield line[len("data:"):].strip()


def split_system(messages: List[Message], system_prompt: str = "") -> Tuple[str, List[Message]]:
    """Separate system content from conversational turns.

    Multiple system parts (options first, then in message order) are joined
    with a blank line.
    """
    system_parts: List[str] = [system_prompt] if system_prompt else []
    turns: List[Message] = []
    for msg in messages:
        if MessageRole(msg.role) == MessageRole.SYSTEM:
            if msg.content:
                system_parts.append(msg.content)
        else:
            turns.append(msg)
    return "\n\n".join(system_parts), turns
