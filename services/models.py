"""Domain records exchanged between the pipeline services and their collaborators."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts both camelCase (wire) and snake_case (Python) field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Persistence records (owned by the repository) ---

class Category(CamelModel):
    id: Optional[str] = None
    name: str
    name_en: str = ""
    slug: str = ""
    parent_id: Optional[str] = None
    description: str = ""
    icon: str = ""
    sort_order: int = 0
    auto_created: bool = False


class Article(CamelModel):
    id: Optional[str] = None
    title: str
    slug: str = ""
    content: str = ""
    summary: str = ""
    category_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: str = "published"
    source_urls: List[str] = Field(default_factory=list)
    source_language: str = ""
    model_used: str = ""
    generation_prompt: str = ""
    created_at: Optional[datetime] = None


class NewsItem(CamelModel):
    id: Optional[str] = None
    title: str = ""
    original_title: str = ""
    content: str = ""
    summary: str = ""
    source_url: str = ""
    source_name: str = ""
    source_language: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    processed: bool = False


# --- Model-produced records ---

class ClassificationDecision(str, Enum):
    USE_EXISTING = "use_existing"
    CREATE_NEW = "create_new"


class NewCategorySuggestion(CamelModel):
    """A category the model proposes to create. ``parent_path`` None means root."""
    name: str = ""
    name_en: str = ""
    parent_path: Optional[str] = None
    icon: str = ""
    description: str = ""

    @field_validator("name", "name_en", "icon", "description", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v


class ClassificationResult(CamelModel):
    """Classification answer. Nulls fall back to field defaults."""
    model_config = ConfigDict(extra="ignore")

    decision: ClassificationDecision = ClassificationDecision.USE_EXISTING
    primary_category: str = Field(
        "", validation_alias=AliasChoices("primaryCategory", "categoryPath", "primary_category")
    )
    secondary_categories: List[str] = Field(default_factory=list)
    suggested_tags: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    reasoning: str = ""
    new_category: Optional[NewCategorySuggestion] = None

    @field_validator("primary_category", "reasoning", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("secondary_categories", "suggested_tags", mode="before")
    @classmethod
    def null_to_list(cls, v):
        return [] if v is None else v

    @field_validator("confidence", mode="before")
    @classmethod
    def null_to_zero(cls, v):
        return 0.0 if v is None else v

    @field_validator("decision", mode="before")
    @classmethod
    def known_decision(cls, v):
        if isinstance(v, ClassificationDecision):
            return v
        if str(v or "").strip().lower() == ClassificationDecision.CREATE_NEW.value:
            return ClassificationDecision.CREATE_NEW
        return ClassificationDecision.USE_EXISTING

    @field_validator("new_category")
    @classmethod
    def named_suggestion(cls, v):
        # nameless means no suggestion
        if v is None or not v.name.strip():
            return None
        return v


class SummaryResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    summary: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "summary", "category", mode="before")
    @classmethod
    def null_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def null_to_list(cls, v):
        return [] if v is None else v


# --- Service requests / responses ---

class GenerationRequest(BaseModel):
    topic: str
    category_id: Optional[str] = None
    style: str = ""
    references: List[str] = Field(default_factory=list)


class GeneratedArticle(BaseModel):
    article: Article
    model_used: str
    cost: float = 0.0
    duration: float = 0.0


class SearchHit(BaseModel):
    title: str = ""
    url: str = ""
    content: str = ""
    score: float = 0.0


class SearchResponse(BaseModel):
    query: str = ""
    answer: str = ""
    results: List[SearchHit] = Field(default_factory=list)


class ResearchRequest(BaseModel):
    query: str
    save_article: bool = False
    use_web_search: bool = False


class ResearchResponse(BaseModel):
    content: str
    model_used: str
    sources: List[str] = Field(default_factory=list)
    related_articles: List[Article] = Field(default_factory=list)
    saved_article_id: Optional[str] = None
    duration: float = 0.0
