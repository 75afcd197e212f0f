import time
from typing import List, Optional, Tuple

from ai.adapters.router import Router
from ai.adapters.streaming import ChunkStream
from ai.adapters.types import GenerateOptions, TaskKind
from core.logging import logger

from . import prompts
from .generator import Generator, extract_summary, extract_tags
from .models import Article, ResearchRequest, ResearchResponse, SearchResponse
from .repository import ArticleRepository, WebSearch
from .text import truncate

RESEARCH_OPTIONS = GenerateOptions(temperature=0.7, max_tokens=4000)
SEARCH_SUFFIX = " Web3 blockchain"
SEARCH_LIMIT = 5
STREAM_SEARCH_LIMIT = 3
RELATED_SEARCH_LIMIT = 5
MAX_RELATED_IN_CONTEXT = 3
RELATED_CONTENT_CHARS = 200


def format_search_results(response: SearchResponse, limit: int = SEARCH_LIMIT) -> str:
    lines = []
    if response.answer:
        lines.append(f"AI summary: {response.answer}\n")
    for hit in response.results[:limit]:
        lines.append(f"- {hit.title}\n  {hit.content}")
    return "\n".join(lines)


def format_related_articles(articles: List[Article]) -> str:
    blocks = []
    for article in articles[:MAX_RELATED_IN_CONTEXT]:
        body = article.summary or truncate(article.content, RELATED_CONTENT_CHARS)
        blocks.append(f"### {article.title}\n{body}")
    return "\n\n".join(blocks)


class ResearchService:
    """Instant research: web results and local articles merged into one answer."""

    def __init__(
        self,
        router: Router,
        articles: ArticleRepository,
        search: Optional[WebSearch] = None,
        generator: Optional[Generator] = None,
        language: str = "Chinese",
    ):
        self.router = router
        self.articles = articles
        self.search = search
        self.generator = generator
        self.language = language

    async def _web_context(self, query: str, limit: int) -> Tuple[str, List[str]]:
        if self.search is None:
            return "", []
        try:
            response = await self.search.search(query + SEARCH_SUFFIX, limit)
        except Exception as e:
            logger.warning(f"Web search for '{query}' failed: {e}")
            return "", []
        return format_search_results(response, limit), [hit.url for hit in response.results if hit.url]

    async def _related(self, query: str) -> List[Article]:
        try:
            return await self.articles.search(query, RELATED_SEARCH_LIMIT)
        except Exception as e:
            logger.warning(f"Related article search for '{query}' failed: {e}")
            return []

    def _prompt(self, query: str, context_parts: List[str]) -> str:
        context = "\n\n".join(part for part in context_parts if part) or prompts.NO_CONTEXT
        return prompts.INSTANT_RESEARCH.format(language=self.language, query=query, context=context)

    async def research(self, request: ResearchRequest) -> ResearchResponse:
        started = time.monotonic()
        related = await self._related(request.query)

        web_context, sources = "", []
        if request.use_web_search:
            web_context, sources = await self._web_context(request.query, SEARCH_LIMIT)

        context_parts = []
        if web_context:
            context_parts.append("Web search results:\n" + web_context)
        if related:
            context_parts.append("Related existing articles:\n" + format_related_articles(related))

        result = await self.router.invoke(
            TaskKind.GENERATION, self._prompt(request.query, context_parts), RESEARCH_OPTIONS
        )
        response = ResearchResponse(
            content=result.text,
            model_used=result.adapter,
            sources=sources,
            related_articles=related,
        )

        if request.save_article:
            try:
                saved = await self.save_as_article(request.query, result.text, sources)
                response.saved_article_id = saved.id
            except Exception as e:
                logger.error(f"Failed to save research as article: {e}")

        response.duration = time.monotonic() - started
        return response

    async def research_stream(self, request: ResearchRequest) -> Tuple[ChunkStream, str]:
        """Streaming variant; uses web context only and never persists."""
        context_parts = []
        if request.use_web_search:
            web_context, _ = await self._web_context(request.query, STREAM_SEARCH_LIMIT)
            context_parts.append(web_context)
        return await self.router.invoke_stream(
            TaskKind.GENERATION, self._prompt(request.query, context_parts), RESEARCH_OPTIONS
        )

    async def save_as_article(self, query: str, content: str, sources: List[str]) -> Article:
        if self.generator is None:
            raise RuntimeError("generator not available")
        article = Article(
            title=query,
            slug=await self.generator.unique_slug(query),
            content=content,
            summary=extract_summary(content),
            source_urls=list(sources),
            tags=extract_tags(content, query),
        )
        return await self.articles.create(article)
