"""Composition root: one Router per process, shared by every service."""
from dataclasses import dataclass
from typing import Optional

from ai.adapters.embedding import OllamaEmbeddingAdapter
from ai.adapters.factory import build_router
from ai.adapters.router import Router
from core.config import AppSettings, get_settings, load_routing_config
from services.chat import ChatService
from services.classifier import Classifier
from services.generator import Generator
from services.repository import ArticleRepository, CategoryRepository, NewsRepository, WebSearch
from services.research import ResearchService
from services.summarizer import Summarizer


@dataclass
class Container:
    settings: AppSettings
    router: Router
    embeddings: OllamaEmbeddingAdapter
    classifier: Classifier
    summarizer: Summarizer
    generator: Generator
    chat: ChatService
    research: ResearchService

    async def aclose(self) -> None:
        await self.generator.wait_background()
        await self.router.aclose()
        await self.embeddings.aclose()


def build_container(
    articles: ArticleRepository,
    categories: CategoryRepository,
    news: NewsRepository,
    search: Optional[WebSearch] = None,
    settings: Optional[AppSettings] = None,
    router: Optional[Router] = None,
) -> Container:
    """Wire the services around a single router.

    Repositories and web search are external collaborators supplied by the
    host application. A prebuilt ``router`` skips settings-based construction.
    """
    settings = settings or get_settings()
    if router is None:
        router = build_router(settings, load_routing_config(settings.ROUTING_CONFIG_PATH))
    language = settings.OUTPUT_LANGUAGE

    embeddings = OllamaEmbeddingAdapter(
        settings.EMBEDDING_MODEL,
        host=settings.OLLAMA_HOST,
        dimensions=settings.EMBEDDING_DIMENSIONS,
        timeout=settings.REQUEST_TIMEOUT,
    )
    classifier = Classifier(router, articles, categories, language=language)
    generator = Generator(router, articles, classifier=classifier, language=language)
    return Container(
        settings=settings,
        router=router,
        embeddings=embeddings,
        classifier=classifier,
        summarizer=Summarizer(router, news, language=language),
        generator=generator,
        chat=ChatService(router, articles, language=language),
        research=ResearchService(router, articles, search=search, generator=generator, language=language),
    )
