from typing import Optional, Tuple

from pydantic import ValidationError

from ai.adapters.router import Router
from ai.adapters.types import GenerateOptions, TaskKind
from core.errors import MalformedModelOutput
from core.logging import logger

from . import prompts
from .models import NewsItem, SummaryResult
from .parsing import extract_json_object
from .repository import NewsRepository

SUMMARY_OPTIONS = GenerateOptions(temperature=0.3, max_tokens=1000)
FALLBACK_CATEGORY = "tech"


def parse_summary(text: str) -> SummaryResult:
    data = extract_json_object(text)
    try:
        return SummaryResult.model_validate(data)
    except ValidationError as e:
        raise MalformedModelOutput(f"unexpected summary shape: {e}", raw=text) from e


class Summarizer:
    """Translates and summarizes collected news items."""

    def __init__(self, router: Router, news: Optional[NewsRepository] = None, language: str = "Chinese"):
        self.router = router
        self.news = news
        self.language = language

    async def summarize(self, item: NewsItem) -> Tuple[SummaryResult, str]:
        """Summarize one item.

        Malformed model output degrades to a fallback record carrying the raw
        text; only router errors (no route, all backends failed) propagate.
        """
        original_title = item.original_title or item.title
        prompt = prompts.NEWS_SUMMARY.format(language=self.language, title=original_title, content=item.content)
        result = await self.router.invoke(TaskKind.SUMMARIZATION, prompt, SUMMARY_OPTIONS)
        try:
            summary = parse_summary(result.text)
        except MalformedModelOutput as e:
            logger.warning(f"Could not parse summary for '{original_title}', using raw output: {e}")
            summary = SummaryResult(title=original_title, summary=result.text, category=FALLBACK_CATEGORY, tags=[])
        return summary, result.adapter

    async def summarize_by_id(self, news_id: str) -> SummaryResult:
        if self.news is None:
            raise RuntimeError("Summarizer has no news repository")
        item = await self.news.get_by_id(news_id)
        if item is None:
            raise LookupError(f"news item not found: {news_id}")
        summary, _ = await self.summarize(item)
        await self.news.update_summary(news_id, summary.summary, summary.category, summary.tags)
        return summary

    async def process_unprocessed(self, batch_size: int = 10) -> int:
        """Summarize a batch of pending items. Failing items are skipped; returns the success count."""
        if self.news is None:
            raise RuntimeError("Summarizer has no news repository")
        items = await self.news.find_unprocessed(batch_size)
        processed = 0
        for item in items:
            try:
                summary, model_used = await self.summarize(item)
                await self.news.update_summary(item.id, summary.summary, summary.category, summary.tags)
            except Exception as e:
                logger.error(f"Failed to summarize news {item.id}: {e}")
                continue
            logger.info(f"Summarized news: {summary.title or item.title} (model: {model_used})")
            processed += 1
        return processed
