from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from ai.adapters.router import Router
from ai.adapters.types import GenerateOptions, TaskKind
from core.errors import MalformedModelOutput
from core.logging import logger

from . import prompts
from .models import Article, Category, ClassificationDecision, ClassificationResult
from .parsing import extract_json_object
from .repository import ArticleRepository, CategoryRepository
from .text import truncate

CLASSIFY_OPTIONS = GenerateOptions(temperature=0.2, max_tokens=500)
SUMMARY_CHARS = 500


def category_path(category: Category, by_id: Dict[str, Category]) -> str:
    """Full ``/``-joined name path from the root down to ``category``."""
    names = [category.name]
    seen = {category.id}
    parent_id = category.parent_id
    while parent_id and parent_id in by_id and parent_id not in seen:
        parent = by_id[parent_id]
        names.append(parent.name)
        seen.add(parent_id)
        parent_id = parent.parent_id
    return "/".join(reversed(names))


def render_category_tree(categories: List[Category]) -> str:
    """One ``- A/B/C`` line per category, indented by depth."""
    by_id = {c.id: c for c in categories if c.id}
    lines = []
    for category in categories:
        path = category_path(category, by_id)
        lines.append(f"{'  ' * path.count('/')}- {path}")
    return "\n".join(lines)


def parse_classification(text: str) -> ClassificationResult:
    data = extract_json_object(text)
    try:
        return ClassificationResult.model_validate(data)
    except ValidationError as e:
        raise MalformedModelOutput(f"unexpected classification shape: {e}", raw=text) from e


class Classifier:
    """Assigns articles to the category taxonomy through the classification route."""

    def __init__(
        self,
        router: Router,
        articles: ArticleRepository,
        categories: CategoryRepository,
        language: str = "Chinese",
    ):
        self.router = router
        self.articles = articles
        self.categories = categories
        self.language = language

    async def classify(self, article: Article) -> Tuple[ClassificationResult, str]:
        """Returns the parsed result and the adapter that produced it.

        Raises AllBackendsFailed / NoRouteConfigured from the router and
        MalformedModelOutput when no result object can be extracted.
        """
        tree = render_category_tree(await self.categories.find_all())
        summary = article.summary or truncate(article.content, SUMMARY_CHARS)
        prompt = prompts.CLASSIFICATION.format(
            category_tree=tree, title=article.title, summary=summary, language=self.language
        )
        result = await self.router.invoke(TaskKind.CLASSIFICATION, prompt, CLASSIFY_OPTIONS)
        return parse_classification(result.text), result.adapter

    async def _resolve_category(self, result: ClassificationResult) -> Optional[Category]:
        if result.decision == ClassificationDecision.CREATE_NEW and result.new_category is not None:
            try:
                category, created = await self.categories.create_from_suggestion(result.new_category)
                logger.info(
                    f"{'Created' if created else 'Reused'} category '{category.name}' "
                    f"(parent: {result.new_category.parent_path or 'root'})"
                )
                return category
            except Exception as e:
                logger.warning(f"Failed to create suggested category: {e}; falling back to path lookup")

        if not result.primary_category:
            return None
        category = await self.categories.find_by_path(result.primary_category)
        if category is not None:
            return category
        logger.info(f"Category path '{result.primary_category}' not found, creating it")
        return await self.categories.find_or_create_by_path(result.primary_category)

    async def classify_and_update(self, article_id: str) -> Optional[Article]:
        """Classify a stored article and persist its category and tags.

        Never raises: a failure is logged and the article stays uncategorized.
        """
        try:
            article = await self.articles.get_by_id(article_id)
            if article is None:
                logger.warning(f"Cannot classify article {article_id}: not found")
                return None

            result, model_used = await self.classify(article)
            logger.info(
                f"Classified '{article.title}': decision={result.decision.value}, "
                f"path={result.primary_category} (confidence: {result.confidence:.2f}, model: {model_used})"
            )
            if result.reasoning:
                logger.debug(f"Classification reasoning: {result.reasoning}")

            category = await self._resolve_category(result)
            if category is not None:
                article.category_id = category.id
            if result.suggested_tags:
                article.tags = list(result.suggested_tags)
            return await self.articles.update(article)
        except Exception as e:
            logger.error(f"Classification of article {article_id} failed: {e}", exc_info=True)
            return None
