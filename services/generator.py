"""Knowledge article generation.

The router produces the raw markdown; everything after that (cleanup,
quality check, title/slug/summary/tag derivation) is local post-processing.
"""
import asyncio
import re
import time
from typing import List, Optional, Set, Tuple

from ai.adapters.router import Router
from ai.adapters.streaming import ChunkStream
from ai.adapters.types import GenerateOptions, TaskKind
from core.logging import logger

from . import prompts
from .classifier import Classifier
from .models import Article, GeneratedArticle, GenerationRequest
from .repository import ArticleRepository
from .text import slugify

GENERATE_OPTIONS = GenerateOptions(temperature=0.7, max_tokens=8000)

MIN_CONTENT_CHARS = 1500
PREAMBLE_WINDOW = 200
SUMMARY_MAX_CHARS = 300
MAX_TAGS = 5
OVERVIEW_HEADINGS = ("## Overview", "## 概述")

_TERM_FORMAT = re.compile(r"[A-Za-z]+\s*[（(][^）)]+[）)]")
_GLOSSARY_TERM = re.compile(r"([A-Z][a-zA-Z0-9]+)\s*[（(]")


def gather_references(references: List[str]) -> str:
    if not references:
        return prompts.NO_REFERENCES
    return "\n".join(f"- {ref}" for ref in references)


def clean_content(content: str) -> str:
    """Drop chatty preamble before the first heading.

    Only applies when a ``## `` heading starts within the first 200
    characters; an earlier ``# `` heading is kept.
    """
    idx = content.find("## ")
    if 0 < idx < PREAMBLE_WINDOW:
        h1 = content.find("# ")
        content = content[h1:] if 0 <= h1 < idx else content[idx:]
    return content.strip()


def quality_problems(content: str) -> List[str]:
    problems = []
    if len(content) < MIN_CONTENT_CHARS:
        problems.append(f"content too short: {len(content)} characters (minimum {MIN_CONTENT_CHARS})")
    if "## " not in content:
        problems.append("content lacks section structure")
    if not _TERM_FORMAT.search(content):
        problems.append("content may lack terminology formatting")
    return problems


def extract_title(content: str, topic: str) -> str:
    first_line = content.split("\n", 1)[0].strip()
    if first_line.startswith("# "):
        return first_line[2:].strip() or topic
    return topic


def _bounded(text: str, max_chars: int) -> str:
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars - 3].rstrip() + "..."


def extract_summary(content: str, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    """Overview section if present, else the first body lines after a heading."""
    for heading in OVERVIEW_HEADINGS:
        idx = content.find(heading)
        if idx < 0:
            continue
        after = content[idx + len(heading):]
        next_section = after.find("\n## ")
        if next_section > 0:
            return _bounded(after[:next_section], max_chars)

    parts: List[str] = []
    in_body = False
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("#"):
            in_body = True
            continue
        if in_body and line and not line.startswith("-"):
            parts.append(line)
            if len(" ".join(parts)) > max_chars:
                break
    return _bounded(" ".join(parts), max_chars)


def extract_tags(content: str, topic: str) -> List[str]:
    """Topic plus glossary terms (capitalized word directly followed by a gloss)."""
    tags = [topic] if topic else []
    seen = set(tags)
    for i, match in enumerate(_GLOSSARY_TERM.finditer(content)):
        if i >= 10 or len(tags) >= MAX_TAGS:
            break
        term = match.group(1)
        if term not in seen and len(term) > 2:
            tags.append(term)
            seen.add(term)
    return tags[:MAX_TAGS]


class Generator:
    """Writes long-form knowledge articles and stores them."""

    def __init__(
        self,
        router: Router,
        articles: ArticleRepository,
        classifier: Optional[Classifier] = None,
        language: str = "Chinese",
    ):
        self.router = router
        self.articles = articles
        self.classifier = classifier
        self.language = language
        self._background: Set["asyncio.Task[Optional[Article]]"] = set()

    def build_prompt(self, request: GenerationRequest) -> str:
        style = f"7. Style: {request.style}\n" if request.style else ""
        return prompts.KNOWLEDGE_ARTICLE.format(
            language=self.language,
            style=style,
            topic=request.topic,
            references=gather_references(request.references),
        )

    async def unique_slug(self, topic: str) -> str:
        """Slug for ``topic`` not yet used by any stored article (``-2``, ``-3``... on collision)."""
        base = slugify(topic) or f"article-{int(time.time())}"
        slug = base
        suffix = 2
        while await self.articles.get_by_slug(slug) is not None:
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    async def generate(self, request: GenerationRequest) -> GeneratedArticle:
        """Generate, post-process and persist one article.

        Raises the router's errors; the quality check only logs.
        """
        started = time.monotonic()
        prompt = self.build_prompt(request)
        result = await self.router.invoke(TaskKind.GENERATION, prompt, GENERATE_OPTIONS)

        content = clean_content(result.text)
        for problem in quality_problems(content):
            logger.warning(f"Quality check for '{request.topic}': {problem}")

        article = Article(
            title=extract_title(content, request.topic),
            slug=await self.unique_slug(request.topic),
            content=content,
            summary=extract_summary(content),
            category_id=request.category_id,
            tags=extract_tags(content, request.topic),
            model_used=result.adapter,
            generation_prompt=prompt,
        )
        saved = await self.articles.create(article)
        logger.info(f"Generated article '{saved.title}' ({saved.slug}) with {result.adapter}")

        if request.category_id is None and saved.id:
            self._classify_later(saved.id)

        return GeneratedArticle(
            article=saved,
            model_used=result.adapter,
            cost=result.cost,
            duration=time.monotonic() - started,
        )

    async def generate_stream(self, request: GenerationRequest) -> Tuple[ChunkStream, str]:
        """Stream the raw article text; nothing is post-processed or stored."""
        return await self.router.invoke_stream(TaskKind.GENERATION, self.build_prompt(request), GENERATE_OPTIONS)

    def _classify_later(self, article_id: str) -> None:
        if self.classifier is None:
            return
        task = asyncio.get_running_loop().create_task(self.classifier.classify_and_update(article_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for scheduled background classifications to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
