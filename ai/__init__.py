"""AI module: model backends and task routing."""

from ai.adapters import GenerationResult, Router, TaskKind

__all__ = ["GenerationResult", "Router", "TaskKind"]
