"""Router construction from application settings."""
from typing import Dict, List, Optional

from core.config import AppSettings, RoutingConfig
from core.errors import ConfigError
from core.logging import logger

from .providers import AnthropicAdapter, OllamaAdapter, OpenAIAdapter
from .router import Router
from .types import TaskKind

CLAUDE_HAIKU = "claude-haiku"
CLAUDE_HAIKU_MODEL = "claude-3-haiku-20240307"
GPT_4O_MINI = "gpt-4o-mini"

# Long-form tasks go to the strongest cloud model, short ones to the cheap tier.
_LONG_FORM = (TaskKind.GENERATION, TaskKind.CHAT)
_SHORT_FORM = (TaskKind.SUMMARIZATION, TaskKind.CLASSIFICATION, TaskKind.TRANSLATION)


def default_routes(settings: AppSettings) -> Dict[TaskKind, List[str]]:
    local = [settings.DEFAULT_LOCAL_MODEL] if settings.DEFAULT_LOCAL_MODEL else []
    routes: Dict[TaskKind, List[str]] = {}
    for task in _LONG_FORM:
        routes[task] = local + [settings.CLAUDE_DEFAULT_MODEL, settings.OPENAI_DEFAULT_MODEL]
    for task in _SHORT_FORM:
        routes[task] = local + [CLAUDE_HAIKU, GPT_4O_MINI]
    return routes


def build_router(settings: AppSettings, routing: Optional[RoutingConfig] = None) -> Router:
    """Register the configured adapters and install routes.

    Routes named in ``routing`` replace the defaults for their task kind.
    """
    router = Router()
    timeout = settings.REQUEST_TIMEOUT

    if settings.DEFAULT_LOCAL_MODEL:
        router.register(OllamaAdapter(settings.DEFAULT_LOCAL_MODEL, host=settings.OLLAMA_HOST, timeout=timeout))

    if settings.CLAUDE_ENABLED:
        if not settings.ANTHROPIC_API_KEY:
            logger.warning("Claude enabled but ANTHROPIC_API_KEY is not set; Claude adapters will report unavailable")
        router.register(AnthropicAdapter(settings.CLAUDE_DEFAULT_MODEL, api_key=settings.ANTHROPIC_API_KEY, timeout=timeout))
        router.register(
            AnthropicAdapter(CLAUDE_HAIKU_MODEL, api_key=settings.ANTHROPIC_API_KEY, name=CLAUDE_HAIKU, timeout=timeout)
        )

    if settings.OPENAI_ENABLED:
        if not settings.OPENAI_API_KEY:
            logger.warning("OpenAI enabled but OPENAI_API_KEY is not set; OpenAI adapters will report unavailable")
        router.register(OpenAIAdapter(settings.OPENAI_DEFAULT_MODEL, api_key=settings.OPENAI_API_KEY, timeout=timeout))
        if settings.OPENAI_DEFAULT_MODEL != GPT_4O_MINI:
            router.register(OpenAIAdapter(GPT_4O_MINI, api_key=settings.OPENAI_API_KEY, timeout=timeout))

    routes = default_routes(settings)
    if routing is not None:
        for task, names in routing.routes.items():
            try:
                routes[TaskKind(task)] = list(names)
            except ValueError as e:
                raise ConfigError(f"Unknown task kind in routing config: {task}") from e

    for task, names in routes.items():
        router.set_route(task, names)

    logger.info(f"Router ready with adapters: {', '.join(router.list_adapters()) or '(none)'}")
    return router
