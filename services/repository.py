"""Contracts of the external collaborators the pipeline services depend on.

Persistence and web search live outside this package; any object with these
async methods can be passed in.
"""
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from .models import Article, Category, NewCategorySuggestion, NewsItem, SearchResponse


@runtime_checkable
class ArticleRepository(Protocol):
    async def get_by_id(self, article_id: str) -> Optional[Article]: ...

    async def get_by_slug(self, slug: str) -> Optional[Article]: ...

    async def create(self, article: Article) -> Article:
        """Persist a new article and return it with its id assigned."""
        ...

    async def update(self, article: Article) -> Article: ...

    async def search(self, query: str, limit: int) -> List[Article]: ...


@runtime_checkable
class CategoryRepository(Protocol):
    async def find_all(self) -> List[Category]: ...

    async def find_by_path(self, path: str) -> Optional[Category]:
        """Resolve a ``/``-separated name path, or None if any segment is missing."""
        ...

    async def find_or_create_by_path(self, path: str) -> Category: ...

    async def create_from_suggestion(self, suggestion: NewCategorySuggestion) -> Tuple[Category, bool]:
        """Create the suggested category; the flag is False when it already existed."""
        ...


@runtime_checkable
class NewsRepository(Protocol):
    async def get_by_id(self, news_id: str) -> Optional[NewsItem]: ...

    async def find_unprocessed(self, limit: int) -> List[NewsItem]: ...

    async def update_summary(self, news_id: str, summary: str, category: str, tags: List[str]) -> None:
        """Store the summary and mark the item processed."""
        ...


@runtime_checkable
class WebSearch(Protocol):
    async def search(self, query: str, limit: int) -> SearchResponse: ...
