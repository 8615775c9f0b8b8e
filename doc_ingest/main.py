"""
Main orchestrator for the doc_ingest parsing stages.

Coordinates the synchronous pipeline:
  (MarkdownProcessor →) HtmlValidator → ContentCleaner → SectionExtractor
and derives per-section metadata.  Fetching lives in fetcher.py; the async
glue that joins fetching and parsing lives in pipeline.py.
"""

from pathlib import Path
from typing import Optional, Union

from .cleaner import ContentCleaner
from .config import MetadataConfig, ParserConfig, ValidatorConfig
from .exceptions import DocumentationParseError
from .extractor import SectionExtractor
from .logger import get_module_logger, setup_logger
from .markdown_processor import MarkdownProcessor
from .metadata import MetadataGenerator
from .schemas import DocumentationMetadata, ParsedSection
from .validator import HtmlValidator

logger = get_module_logger("main")

MARKDOWN_SUFFIXES = ('.md', '.markdown')


class DocumentationParser:
    """
    Main orchestrator for documentation parsing.

    Stages:
    1. MarkdownProcessor: Markdown → HTML (Markdown input only)
    2. HtmlValidator: rejects malformed or non-whitelisted markup
    3. ContentCleaner: strips comments, scripts and styles
    4. SectionExtractor: splits the document at headings
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        validator_config: Optional[ValidatorConfig] = None,
        metadata_config: Optional[MetadataConfig] = None,
        log_level: int = None
    ):
        if log_level is not None:
            setup_logger(level=log_level)

        self.config = config or ParserConfig()
        self.validator = HtmlValidator(validator_config)
        self.cleaner = ContentCleaner()
        self.markdown_processor = MarkdownProcessor()
        self.extractor = SectionExtractor(self.config)
        self.metadata_generator = MetadataGenerator(metadata_config)

    def parse_html(self, html: str) -> list[ParsedSection]:
        """
        Parse HTML into sections.

        Args:
            html: HTML string

        Returns:
            Sections in document order

        Raises:
            DocumentationParseError: if html is None, or any validator error
        """
        if html is None:
            raise DocumentationParseError("Invalid input: html cannot be None")

        # Stage 1: Validate (full rule set, at least one tag required)
        self.validator.validate(html, require_tags=True)

        if not html.strip():
            return []

        # Stage 2: Clean
        # Input:  validated HTML
        # Output: same markup minus comments and <script>/<style> blocks
        cleaned = self.cleaner.clean_html(html)

        # Stage 3: Extract
        sections = self.extractor.extract_sections(cleaned)

        logger.info(f"Parsed HTML: {len(sections)} sections")
        return sections

    def parse_markdown(self, markdown: str) -> list[ParsedSection]:
        """
        Parse Markdown into sections.

        Empty or whitespace-only input yields no sections rather than an
        error, unlike parse_html.

        Raises:
            NoHeadingsFoundError: if the document has no ATX heading
        """
        if not markdown or not markdown.strip():
            return []

        self.markdown_processor.validate_markdown(markdown)
        html = self.markdown_processor.convert_to_html(markdown)
        return self.parse_html(html)

    def parse_file(self, file_path: Union[str, Path]) -> list[ParsedSection]:
        """Parse a local HTML or Markdown file, chosen by suffix."""
        file_path = Path(file_path)
        text = file_path.read_text(encoding='utf-8', errors='replace')

        if file_path.suffix.lower() in MARKDOWN_SUFFIXES:
            return self.parse_markdown(text)
        return self.parse_html(text)

    def generate_metadata(
        self,
        section: ParsedSection,
        source_id: str,
        base_path: str
    ) -> DocumentationMetadata:
        """Derive stable metadata for one section."""
        return self.metadata_generator.generate(section, source_id, base_path)


def parse_html(html: str, config: Optional[ParserConfig] = None) -> list[ParsedSection]:
    """Convenience function to parse HTML."""
    return DocumentationParser(config).parse_html(html)


def parse_markdown(markdown: str, config: Optional[ParserConfig] = None) -> list[ParsedSection]:
    """Convenience function to parse Markdown."""
    return DocumentationParser(config).parse_markdown(markdown)
