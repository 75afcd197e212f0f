"""Shared value types for the adapter layer."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MessageRole(str, Enum):
    """Message roles for chat completion."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class AdapterCategory(str, Enum):
    """Display/cost-policy label of an adapter. Never consulted by routing."""
    LOCAL = "local"
    CLOUD = "cloud"


class TaskKind(str, Enum):
    """Abstract purpose of a model call, independent of the serving backend."""
    GENERATION = "content_generation"
    SUMMARIZATION = "summarization"
    CLASSIFICATION = "classification"
    CHAT = "chat"
    TRANSLATION = "translation"
    EMBEDDING = "embedding"


@dataclass
class Message:
    """Chat message."""
    role: MessageRole
    content: str

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    def to_dict(self) -> dict:
        return {"role": MessageRole(self.role).value, "content": self.content}


@dataclass
class GenerateOptions:
    """Generation knobs. Absent values use the documented defaults."""
    system_prompt: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7
    top_p: float = 1.0
    stop: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StreamChunk:
    """One increment of a streamed generation: text, the end marker, or an error."""
    content: str = ""
    done: bool = False
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error is not None


@dataclass(frozen=True)
class GenerationResult:
    """Produced text plus the adapter that produced it, for audit/cost accounting."""
    text: str
    adapter: str
    cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0


def estimate_tokens(text: str) -> int:
    """Rough token count (about four characters per token)."""
    if not text:
        return 0
    return max(1, len(text) // 4)
