"""Shared fakes: scripted adapters and in-memory repositories."""
import sys
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ai.adapters.router import Router
from ai.adapters.streaming import ChunkStream, stream_from_chunks
from ai.adapters.types import AdapterCategory, GenerateOptions, Message, StreamChunk, TaskKind
from core.errors import BackendCallFailed
from services.models import (
    Article,
    Category,
    NewCategorySuggestion,
    NewsItem,
    SearchHit,
    SearchResponse,
)


class FakeAdapter:
    """Scripted GenerationAdapter that records every call."""

    def __init__(
        self,
        name: str,
        text: str = "ok",
        available: bool = True,
        fail: bool = False,
        category: AdapterCategory = AdapterCategory.LOCAL,
        chunks: Optional[List[StreamChunk]] = None,
        price: Tuple[float, float] = (0.0, 0.0),
    ):
        self._name = name
        self._category = category
        self.text = text
        self.available = available
        self.fail = fail
        self.chunks = chunks
        self.price = price
        self.probes = 0
        self.calls: List[Tuple[str, object, Optional[GenerateOptions]]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def category(self) -> AdapterCategory:
        return self._category

    def _attempt(self, kind: str, payload, options) -> None:
        self.calls.append((kind, payload, options))
        if self.fail:
            raise BackendCallFailed(self.name, "scripted failure")

    def _stream(self) -> ChunkStream:
        chunks = self.chunks if self.chunks is not None else [StreamChunk(content=self.text), StreamChunk(done=True)]
        return stream_from_chunks(chunks)

    async def generate(self, prompt: str, options: Optional[GenerateOptions] = None) -> str:
        self._attempt("generate", prompt, options)
        return self.text

    async def generate_stream(self, prompt: str, options: Optional[GenerateOptions] = None) -> ChunkStream:
        self._attempt("generate_stream", prompt, options)
        return self._stream()

    async def generate_chat(self, messages: List[Message], options: Optional[GenerateOptions] = None) -> str:
        self._attempt("generate_chat", messages, options)
        return self.text

    async def generate_chat_stream(
        self, messages: List[Message], options: Optional[GenerateOptions] = None
    ) -> ChunkStream:
        self._attempt("generate_chat_stream", messages, options)
        return self._stream()

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens / 1000) * self.price[0] + (output_tokens / 1000) * self.price[1]


def make_router(*adapters: FakeAdapter, task: TaskKind = TaskKind.GENERATION, route: Optional[List[str]] = None) -> Router:
    router = Router()
    for adapter in adapters:
        router.register(adapter)
    router.set_route(task, route if route is not None else [a.name for a in adapters])
    return router


class InMemoryArticleRepository:
    def __init__(self, articles: Optional[List[Article]] = None):
        self.items: Dict[str, Article] = {}
        self.updates = 0
        for article in articles or []:
            article.id = article.id or str(uuid.uuid4())
            self.items[article.id] = article

    async def get_by_id(self, article_id: str) -> Optional[Article]:
        article = self.items.get(article_id)
        return article.model_copy(deep=True) if article else None

    async def get_by_slug(self, slug: str) -> Optional[Article]:
        for article in self.items.values():
            if article.slug == slug:
                return article
        return None

    async def create(self, article: Article) -> Article:
        stored = article.model_copy(update={"id": article.id or str(uuid.uuid4())})
        self.items[stored.id] = stored
        return stored

    async def update(self, article: Article) -> Article:
        self.items[article.id] = article
        self.updates += 1
        return article

    async def search(self, query: str, limit: int) -> List[Article]:
        q = query.lower()
        hits = [a for a in self.items.values() if q in a.title.lower() or q in a.content.lower()]
        return hits[:limit]


class InMemoryCategoryRepository:
    def __init__(self, categories: Optional[List[Category]] = None):
        self.items: List[Category] = list(categories or [])

    def _add(self, name: str, parent_id: Optional[str], **fields) -> Category:
        category = Category(id=str(uuid.uuid4()), name=name, parent_id=parent_id, **fields)
        self.items.append(category)
        return category

    def _child(self, name: str, parent_id: Optional[str]) -> Optional[Category]:
        for category in self.items:
            if category.name == name and category.parent_id == parent_id:
                return category
        return None

    async def find_all(self) -> List[Category]:
        return list(self.items)

    async def find_by_path(self, path: str) -> Optional[Category]:
        parent_id = None
        category = None
        for name in path.split("/"):
            category = self._child(name.strip(), parent_id)
            if category is None:
                return None
            parent_id = category.id
        return category

    async def find_or_create_by_path(self, path: str) -> Category:
        parent_id = None
        category = None
        for name in path.split("/"):
            category = self._child(name.strip(), parent_id) or self._add(name.strip(), parent_id, auto_created=True)
            parent_id = category.id
        return category

    async def create_from_suggestion(self, suggestion: NewCategorySuggestion) -> Tuple[Category, bool]:
        parent_id = None
        if suggestion.parent_path:
            parent = await self.find_by_path(suggestion.parent_path)
            if parent is None:
                raise LookupError(f"parent not found: {suggestion.parent_path}")
            parent_id = parent.id
        existing = self._child(suggestion.name, parent_id)
        if existing is not None:
            return existing, False
        return self._add(suggestion.name, parent_id, name_en=suggestion.name_en, auto_created=True), True


class InMemoryNewsRepository:
    def __init__(self, items: Optional[List[NewsItem]] = None):
        self.items: Dict[str, NewsItem] = {}
        for item in items or []:
            item.id = item.id or str(uuid.uuid4())
            self.items[item.id] = item

    async def get_by_id(self, news_id: str) -> Optional[NewsItem]:
        return self.items.get(news_id)

    async def find_unprocessed(self, limit: int) -> List[NewsItem]:
        return [i for i in self.items.values() if not i.processed][:limit]

    async def update_summary(self, news_id: str, summary: str, category: str, tags: List[str]) -> None:
        item = self.items[news_id]
        item.summary = summary
        item.category = category
        item.tags = list(tags)
        item.processed = True


class FakeWebSearch:
    def __init__(self, hits: Optional[List[SearchHit]] = None, answer: str = ""):
        self.hits = hits or []
        self.answer = answer
        self.queries: List[Tuple[str, int]] = []

    async def search(self, query: str, limit: int) -> SearchResponse:
        self.queries.append((query, limit))
        return SearchResponse(query=query, answer=self.answer, results=self.hits[:limit])


@pytest.fixture
def articles():
    return InMemoryArticleRepository()


@pytest.fixture
def categories():
    root = Category(id="c1", name="Fundamentals")
    child = Category(id="c2", name="Blockchain", parent_id="c1")
    leaf = Category(id="c3", name="Consensus", parent_id="c2")
    return InMemoryCategoryRepository([root, child, leaf])


@pytest.fixture
def news():
    return InMemoryNewsRepository()
