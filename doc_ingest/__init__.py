"""
doc_ingest: documentation acquisition and normalization.

Fetches documentation (web pages, Markdown files) and turns it into ordered,
heading-delimited sections with stable metadata.
- DocumentationFetcher: Retrying, concurrency-bounded HTTP layer
- HtmlValidator: Structural HTML validation
- ContentCleaner: Comment/script/style removal and text extraction
- MarkdownProcessor: Markdown → HTML
- SectionExtractor: Heading-driven segmentation
- DocumentationParser: Orchestrates the parsing stages and metadata

Public API surface:
  Pipeline classes: DocumentationFetcher, DocumentationParser, DocumentationPipeline
  Stage classes   : HtmlValidator, ContentCleaner, MarkdownProcessor,
                     SectionExtractor, MetadataGenerator
  Data models     : DocumentationSource, FetchResult, ParsedSection,
                     DocumentationMetadata, ProcessedDocument
  Error types     : DocIngestError, FetchError, DocumentationParseError (+ subclasses)
"""

# --- Pipeline classes ---
from .fetcher import DocumentationFetcher, resolve_location
from .main import DocumentationParser, parse_html, parse_markdown
from .pipeline import DocumentationPipeline

# --- Stage classes ---
from .validator import HtmlValidator
from .cleaner import ContentCleaner
from .markdown_processor import MarkdownProcessor
from .extractor import SectionExtractor
from .metadata import MetadataGenerator, slugify

# --- Data models ---
from .schemas import (
    DocumentationSource,
    FetchResult,
    ParsedSection,
    ExtractedSection,
    DocumentationMetadata,
    ProcessedDocument,
)

# --- Configuration ---
from .config import (
    FetcherConfig,
    ValidatorConfig,
    CleanerConfig,
    MarkdownConfig,
    SectionExtractorConfig,
    ParserConfig,
    MetadataConfig,
    load_fetcher_config,
    load_parser_config,
)

# --- Exceptions ---
from .exceptions import (
    ErrorKind,
    DocIngestError,
    FetchError,
    NetworkError,
    FetchTimeoutError,
    HttpStatusError,
    EmptyContentError,
    UnexpectedStatusError,
    DocumentationParseError,
    MalformedTagSyntaxError,
    UnsupportedTagError,
    UnmatchedClosingTagError,
    UnclosedTagsError,
    NoTagsFoundError,
    NoHeadingsFoundError,
)

__version__ = "0.1.0"
__all__ = [
    "DocumentationFetcher",
    "resolve_location",
    "DocumentationParser",
    "parse_html",
    "parse_markdown",
    "DocumentationPipeline",
    "HtmlValidator",
    "ContentCleaner",
    "MarkdownProcessor",
    "SectionExtractor",
    "MetadataGenerator",
    "slugify",
    "DocumentationSource",
    "FetchResult",
    "ParsedSection",
    "ExtractedSection",
    "DocumentationMetadata",
    "ProcessedDocument",
    "FetcherConfig",
    "ValidatorConfig",
    "CleanerConfig",
    "MarkdownConfig",
    "SectionExtractorConfig",
    "ParserConfig",
    "MetadataConfig",
    "load_fetcher_config",
    "load_parser_config",
    "ErrorKind",
    "DocIngestError",
    "FetchError",
    "NetworkError",
    "FetchTimeoutError",
    "HttpStatusError",
    "EmptyContentError",
    "UnexpectedStatusError",
    "DocumentationParseError",
    "MalformedTagSyntaxError",
    "UnsupportedTagError",
    "UnmatchedClosingTagError",
    "UnclosedTagsError",
    "NoTagsFoundError",
    "NoHeadingsFoundError",
]
