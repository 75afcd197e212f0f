from dataclasses import replace
from typing import List, Optional, Tuple

from ai.adapters.router import Router
from ai.adapters.streaming import ChunkStream
from ai.adapters.types import GenerateOptions, Message, TaskKind

from . import prompts
from .repository import ArticleRepository

CHAT_OPTIONS = GenerateOptions(temperature=0.7, max_tokens=2048)
MAX_ARTICLE_CHARS = 8000


class ChatService:
    """Streaming Q&A, optionally grounded on one article."""

    def __init__(self, router: Router, articles: Optional[ArticleRepository] = None, language: str = "Chinese"):
        self.router = router
        self.articles = articles
        self.language = language

    async def system_prompt(self, article_id: Optional[str] = None) -> str:
        if not article_id:
            return prompts.CHAT_GENERAL_SYSTEM.format(language=self.language)
        if self.articles is None:
            raise RuntimeError("ChatService has no article repository")
        article = await self.articles.get_by_id(article_id)
        if article is None:
            raise LookupError(f"article not found: {article_id}")
        content = article.content
        if len(content) > MAX_ARTICLE_CHARS:
            content = content[:MAX_ARTICLE_CHARS] + prompts.CONTENT_TRUNCATED
        return prompts.CHAT_ARTICLE_SYSTEM.format(title=article.title, content=content, language=self.language)

    async def chat(
        self, message: str, article_id: Optional[str] = None, selected_text: str = ""
    ) -> Tuple[ChunkStream, str]:
        """Single question. Returns the open stream and the adapter serving it.

        The caller owns the stream: consume it inside ``async with stream:`` or
        call ``aclose()``. Breaking out of ``async for`` alone leaves the
        producer and its HTTP response open until the stream is collected.
        """
        options = replace(CHAT_OPTIONS, system_prompt=await self.system_prompt(article_id))
        if selected_text:
            message = prompts.CHAT_SELECTION.format(selected=selected_text, message=message)
        return await self.router.invoke_stream(TaskKind.CHAT, message, options)

    async def chat_with_messages(
        self, messages: List[Message], article_id: Optional[str] = None
    ) -> Tuple[ChunkStream, str]:
        """Multi-turn conversation with history.

        Same stream ownership as ``chat``: close it with ``async with`` or ``aclose()``.
        """
        options = replace(CHAT_OPTIONS, system_prompt=await self.system_prompt(article_id))
        return await self.router.invoke_chat_stream(TaskKind.CHAT, messages, options)

    async def available_models(self) -> List[str]:
        return await self.router.list_available_adapters()
