"""
Content cleaner: noise removal and plain-text extraction.

Two levels of cleaning:
- String level (clean_html): strips comments and <script>/<style> blocks
  and escapes stray "-->" as "--&gt;"; the rest of the markup is unchanged.
  Runs on validated HTML right before section extraction.
- Tree level (extract_text_content, extract_main_content): parses into a
  BeautifulSoup tree, drops navigation/boilerplate elements and returns text.

Design principle: clean_html NEVER lets a script/style/comment marker
through, whatever the input looks like.  Removal runs to a fixpoint so that
pieces left around a removed block cannot join into a new marker.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment

from .config import CleanerConfig
from .exceptions import DocumentationParseError
from .logger import get_module_logger

logger = get_module_logger("cleaner")

# Start of anything clean_html removes
NOISE_START_PATTERN = re.compile(r'<!--|<(script|style)', re.IGNORECASE)

STRAY_COMMENT_CLOSE_ESCAPED = '--&gt;'

# Characters that may legally follow a tag name inside a tag
TAG_NAME_END = frozenset(' \t\n\r\f/>')

# Main-content containers in priority order
MAIN_CONTENT_TAGS = ['main', 'article', 'body']


def parse_document(html: str) -> BeautifulSoup:
    """
    Parse HTML into a navigable BeautifulSoup tree.

    Parser fallback chain: html5lib → lxml → html.parser.
    html5lib implements the full WHATWG algorithm and copes with the worst
    markup; lxml is the fast C fallback; html.parser is always available.

    Raises:
        DocumentationParseError: if no parser can handle the input
    """
    try:
        return BeautifulSoup(html, 'html5lib')
    except Exception as e:
        logger.warning(f"html5lib parsing failed, trying lxml: {e}")

    try:
        return BeautifulSoup(html, 'lxml')
    except Exception as e:
        logger.warning(f"lxml parsing also failed: {e}")

    try:
        return BeautifulSoup(html, 'html.parser')
    except Exception as e:
        raise DocumentationParseError(
            "Failed to parse HTML content",
            details={"html": html[:100]}
        ) from e


class ContentCleaner:
    """Strips noise from HTML and extracts readable text."""

    def __init__(self, config: Optional[CleanerConfig] = None):
        self.config = config or CleanerConfig()

    # --- String-level cleaning ---

    def clean_html(self, html: str) -> str:
        """
        Remove comments and whole <script>/<style> blocks.

        Args:
            html: HTML string

        Returns:
            The HTML with those blocks removed and stray "-->" escaped;
            everything else is untouched.

        Raises:
            DocumentationParseError: if html is None
        """
        if html is None:
            raise DocumentationParseError("Invalid input: html cannot be None")

        if not html.strip():
            return html

        cleaned = html
        passes = 0
        while True:
            passes += 1
            stripped = self._strip_noise(cleaned)
            if stripped == cleaned:
                break
            cleaned = stripped

        if passes > 1:
            logger.debug(f"Removed {len(html) - len(cleaned)} chars of noise in {passes - 1} passes")

        # No comment opener is left: any '-->' is literal text such as "x --> y" in code
        return cleaned.replace('-->', STRAY_COMMENT_CLOSE_ESCAPED)

    def _strip_noise(self, html: str) -> str:
        """One left-to-right pass of comment/script/style removal."""
        out = []
        pos = 0

        while True:
            match = NOISE_START_PATTERN.search(html, pos)
            if match is None:
                out.append(html[pos:])
                break

            out.append(html[pos:match.start()])

            if match.group(1) is None:
                # Comment: drop through '-->' or to the end if unterminated
                end = html.find('-->', match.end())
                pos = len(html) if end == -1 else end + 3
            else:
                pos = self._skip_block(html, match.end(), match.group(1).lower())

        return ''.join(out)

    def _skip_block(self, html: str, pos: int, name: str) -> int:
        """
        Skip a <script>/<style> element starting right after '<name'.

        Returns the position just past the element's closing tag (or the end
        of input when it is never closed).
        """
        if pos < len(html) and html[pos] not in TAG_NAME_END:
            # A longer tag name such as <scripts>: drop just this tag
            return self._skip_tag(html, pos)

        open_end = self._skip_tag(html, pos)
        close = re.compile(rf'</{name}(?=[\s/>])', re.IGNORECASE).search(html, open_end)
        if close is None:
            return len(html)

        tag_end = html.find('>', close.end())
        return len(html) if tag_end == -1 else tag_end + 1

    @staticmethod
    def _skip_tag(html: str, pos: int) -> int:
        """Return the position after the '>' ending the current tag, honouring quotes."""
        quote = None
        for i in range(pos, len(html)):
            ch = html[i]
            if quote:
                if ch == quote:
                    quote = None
            elif ch in '"\'':
                quote = ch
            elif ch == '>':
                return i + 1
        return len(html)

    # --- Tree-level extraction ---

    def _parse_and_strip(self, html: str) -> BeautifulSoup:
        """Parse html and remove the configured boilerplate elements and comments."""
        soup = parse_document(html)

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for selector in self.config.elements_to_remove:
            try:
                matches = soup.select(selector)
            except Exception as e:
                raise DocumentationParseError(
                    f"Invalid removal selector: {selector}",
                    details={"selector": selector}
                ) from e
            for elem in matches:
                elem.decompose()

        return soup

    def extract_text_content(self, html: str) -> str:
        """
        Extract the plain text of a document, without boilerplate elements.

        Args:
            html: HTML string

        Returns:
            Trimmed text with HTML entities decoded.

        Raises:
            DocumentationParseError: if html is None or cannot be parsed
        """
        if html is None:
            raise DocumentationParseError("Invalid input: html cannot be None")

        if not html.strip():
            return ''

        soup = self._parse_and_strip(html)
        root = soup.body or soup
        return root.get_text().strip()

    def extract_main_content(self, html: str) -> str:
        """
        Extract the text of the main content area.

        Looks for <main>, then <article>, then falls back to <body>.

        Raises:
            DocumentationParseError: if html is None/empty or cannot be parsed
        """
        if not html or not html.strip():
            raise DocumentationParseError(
                "Failed to parse HTML content",
                details={"html": type(html).__name__}
            )

        soup = self._parse_and_strip(html)

        for tag in MAIN_CONTENT_TAGS:
            elem = soup.find(tag)
            if elem is None:
                continue
            text = elem.get_text().strip()
            if text:
                logger.debug(f"Main content found in <{tag}>")
                return text

        return ''


def clean_html(html: str) -> str:
    """Convenience function to strip comments, scripts and styles."""
    return ContentCleaner().clean_html(html)
