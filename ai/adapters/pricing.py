"""Per-model pricing tables (USD per 1K tokens)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple


@dataclass(frozen=True)
class Pricing:
    input_per_1k: float
    output_per_1k: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens / 1000) * self.input_per_1k + (output_tokens / 1000) * self.output_per_1k


FREE = Pricing(0.0, 0.0)

# First substring match wins, so more specific names come first.
ANTHROPIC_PRICING: Sequence[Tuple[str, Pricing]] = (
    ("opus", Pricing(0.015, 0.075)),
    ("sonnet", Pricing(0.003, 0.015)),
    ("haiku", Pricing(0.00025, 0.00125)),
)
ANTHROPIC_DEFAULT = Pricing(0.003, 0.015)

OPENAI_PRICING: Sequence[Tuple[str, Pricing]] = (
    ("gpt-4o-mini", Pricing(0.00015, 0.0006)),
    ("gpt-4o", Pricing(0.0025, 0.01)),
    ("gpt-4-turbo", Pricing(0.01, 0.03)),
    ("gpt-4", Pricing(0.03, 0.06)),
    ("gpt-3.5", Pricing(0.0005, 0.0015)),
)
OPENAI_DEFAULT = Pricing(0.0025, 0.01)


def lookup(model: str, table: Sequence[Tuple[str, Pricing]], default: Pricing) -> Pricing:
    for needle, pricing in table:
        if needle in model:
            return pricing
    return default
