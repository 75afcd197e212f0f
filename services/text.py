import re

MAX_SLUG_LENGTH = 80


def truncate(text: str, max_chars: int, marker: str = "...") -> str:
    text = text.strip()
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + marker


def slugify(text: str) -> str:
    """Lower-case ASCII slug; empty when nothing ASCII-alphanumeric survives."""
    slug = text.lower().strip()
    slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug[:MAX_SLUG_LENGTH].strip("-")
