"""
Markdown → HTML conversion and Markdown-level validation.

Rendering uses Python-Markdown with fenced code blocks (rendered as
<pre><code>), tables and sane lists.  GitHub-style task list items
("- [ ] todo") come out as ordinary <ul><li> items with the box text kept,
which keeps the output inside the validator's default whitelist.
"""

import re
from typing import Optional

import markdown as markdown_lib

from .config import MarkdownConfig
from .exceptions import DocumentationParseError, NoHeadingsFoundError
from .logger import get_module_logger

logger = get_module_logger("markdown")

# ATX heading marker at the start of a line: "# " through "###### "
HEADING_PATTERN = re.compile(r'^ {0,3}#{1,6}[ \t]+\S', re.MULTILINE)


class MarkdownProcessor:
    """Converts and validates Markdown documentation."""

    def __init__(self, config: Optional[MarkdownConfig] = None):
        self.config = config or MarkdownConfig()

    def convert_to_html(self, markdown: str) -> str:
        """
        Convert Markdown to HTML.

        Args:
            markdown: Markdown source

        Returns:
            HTML string

        Raises:
            DocumentationParseError: if the input is empty or rendering fails
        """
        if not markdown or not markdown.strip():
            raise DocumentationParseError(
                "Invalid Markdown: empty content",
                details={"markdown": markdown}
            )

        try:
            html = markdown_lib.markdown(markdown, extensions=self.config.extensions)
        except Exception as e:
            logger.error(f"Markdown conversion failed: {e}")
            raise DocumentationParseError(
                "Failed to convert Markdown to HTML",
                details={"markdown": markdown[:100]}
            ) from e

        logger.debug(f"Converted {len(markdown)} chars of Markdown to {len(html)} chars of HTML")
        return html

    def validate_markdown(self, markdown: str) -> None:
        """
        Check that Markdown is non-empty and has at least one heading.

        Raises:
            DocumentationParseError: if the input is empty
            NoHeadingsFoundError: if no '#'..'######' heading exists
        """
        if not markdown or not markdown.strip():
            raise DocumentationParseError(
                "Invalid Markdown: empty content",
                details={"markdown": markdown}
            )

        if not HEADING_PATTERN.search(markdown):
            raise NoHeadingsFoundError(
                "Invalid Markdown: no headings found",
                details={"markdown": markdown[:100]}
            )
