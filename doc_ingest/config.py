"""
Configuration models and environment loading.

Every component takes an optional config model; omitted values fall back to
the defaults below.  The ``load_*`` helpers read ``DOC_INGEST_*`` environment
variables (run scripts call ``load_dotenv()`` first, so a ``.env`` file works
too).  Only variables that are actually set override a default.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "DOC_INGEST_"

# Structural, text, table and media tags accepted in documentation markup.
DEFAULT_ALLOWED_TAGS = [
    # page scaffolding; script/style bodies are stripped by the cleaner
    'html', 'head', 'title', 'meta', 'link', 'script', 'style', 'body',
    'nav', 'header', 'footer', 'aside',
    # document structure
    'main', 'article', 'section', 'div', 'span',
    # headings and text
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p', 'br', 'hr', 'blockquote',
    'a', 'strong', 'em', 'b', 'i', 'u', 's', 'small', 'sub', 'sup', 'mark',
    'code', 'pre', 'kbd', 'samp', 'var', 'abbr', 'cite', 'q', 'del', 'ins',
    # lists and disclosure widgets (task-list checkboxes in READMEs)
    'ul', 'ol', 'li', 'dl', 'dt', 'dd', 'details', 'summary', 'input',
    # tables
    'table', 'caption', 'colgroup', 'col', 'thead', 'tbody', 'tfoot',
    'tr', 'th', 'td',
    # media
    'img', 'figure', 'figcaption', 'picture', 'source', 'video', 'audio',
]

DEFAULT_ELEMENTS_TO_REMOVE = ['script', 'style', 'nav', 'footer', 'header', 'aside']

DEFAULT_STOP_WORDS = [
    'the', 'and', 'that', 'this', 'with', 'for', 'from', 'your', 'have',
    'not', 'are', 'use', 'has', 'will', 'can', 'but', 'all', 'was', 'what',
    'when', 'how', 'where', 'who', 'which', 'they', 'you', 'their', 'there',
    'been', 'into', 'using', 'about',
]


class FetcherConfig(BaseModel):
    """Network behaviour of DocumentationFetcher.  Durations are seconds."""
    max_concurrent: int = Field(default=5, ge=1)
    timeout: float = Field(default=30.0, gt=0)          # Per attempt
    max_retries: int = Field(default=3, ge=0)           # Attempts = 1 + max_retries
    retry_delay: float = Field(default=1.0, ge=0)       # Base backoff
    backoff_factor: float = Field(default=2.0, ge=1)
    max_retry_delay: float = Field(default=60.0, ge=0)
    user_agent: str = "doc-ingest/0.1.0"


class ValidatorConfig(BaseModel):
    lenient_parsing: bool = False                       # Skip tag-balance checks only
    allowed_tags: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_TAGS))


class CleanerConfig(BaseModel):
    # CSS selectors removed before text extraction
    elements_to_remove: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ELEMENTS_TO_REMOVE)
    )


class MarkdownConfig(BaseModel):
    extensions: list[str] = Field(
        default_factory=lambda: ['fenced_code', 'tables', 'sane_lists']
    )


class SectionExtractorConfig(BaseModel):
    max_title_length: int = Field(default=100, ge=1)
    min_content_length: int = Field(default=10, ge=0)
    extract_code_blocks: bool = True
    preserve_formatting: bool = False                   # Keep source HTML per section
    custom_selectors: list[str] = Field(default_factory=list)


class ParserConfig(SectionExtractorConfig):
    """Thresholds the parser enforces; forwarded as-is to the section extractor."""


class MetadataConfig(BaseModel):
    min_topic_length: int = Field(default=3, ge=1)
    max_topic_count: int = Field(default=10, ge=0)
    stop_words: list[str] = Field(default_factory=lambda: list(DEFAULT_STOP_WORDS))


def _env(name: str) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def load_fetcher_config(**overrides) -> FetcherConfig:
    """
    Build a FetcherConfig from the environment.

    Recognised variables: DOC_INGEST_MAX_CONCURRENT, DOC_INGEST_TIMEOUT,
    DOC_INGEST_MAX_RETRIES, DOC_INGEST_RETRY_DELAY, DOC_INGEST_BACKOFF_FACTOR,
    DOC_INGEST_MAX_RETRY_DELAY, DOC_INGEST_USER_AGENT.

    Keyword overrides win over the environment.
    """
    values = {}
    for field_name in FetcherConfig.model_fields:
        raw = _env(field_name.upper())
        if raw is not None:
            values[field_name] = raw  # pydantic coerces numeric strings
    values.update({k: v for k, v in overrides.items() if v is not None})
    return FetcherConfig(**values)


def load_parser_config(**overrides) -> ParserConfig:
    """
    Build a ParserConfig from the environment.

    Recognised variables: DOC_INGEST_MAX_TITLE_LENGTH, DOC_INGEST_MIN_CONTENT_LENGTH,
    DOC_INGEST_EXTRACT_CODE_BLOCKS, DOC_INGEST_PRESERVE_FORMATTING and
    DOC_INGEST_CUSTOM_SELECTORS (comma-separated).
    """
    values = {}
    for field_name in ParserConfig.model_fields:
        raw = _env(field_name.upper())
        if raw is None:
            continue
        if field_name == "custom_selectors":
            values[field_name] = [s.strip() for s in raw.split(",") if s.strip()]
        else:
            values[field_name] = raw
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ParserConfig(**values)
