"""
Section extractor: heading-driven segmentation of HTML.

Walks the parsed document once in source order.  Every heading (h1–h6) or
custom-selector match opens a new section; text and <pre> code blocks that
follow are collected into it until the next boundary or the end of the
document.

Sections are flat, not nested: an <h1>'s content stops at the first <h2>
below it, and that text belongs to the <h2> section only.  A custom match
that wraps other boundaries takes its title from the text before the first
of them; the wrapped boundaries still open sections of their own.

Pipeline position: after HtmlValidator and ContentCleaner.
Input:  validated, cleaned HTML string
Output: list[ParsedSection] in document order
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from .cleaner import parse_document
from .config import SectionExtractorConfig
from .exceptions import DocumentationParseError
from .logger import get_module_logger
from .schemas import ParsedSection

logger = get_module_logger("extractor")

HEADING_TAGS = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']

# Level given to custom-selector matches that carry no level of their own
DEFAULT_CUSTOM_LEVEL = 1

# Attributes consulted for a custom boundary's level
LEVEL_ATTRIBUTES = ['aria-level', 'data-level']

# Inline elements whose text flows into the surrounding text without a break.
# Every other element is treated as a block and separated by whitespace.
INLINE_TAGS = frozenset(['a', 'abbr', 'b', 'cite', 'code', 'del', 'em', 'i',
                         'ins', 'kbd', 'mark', 'q', 's', 'samp', 'small',
                         'span', 'strong', 'sub', 'sup', 'time', 'u', 'var'])

# Elements never contributing text
SKIP_TAGS = frozenset(['script', 'style', 'template', 'noscript', 'head'])

WHITESPACE_PATTERN = re.compile(r'\s+')


@dataclass
class _SectionBuilder:
    """Mutable accumulator for the section currently being read."""
    boundary: Tag
    title: str
    level: int
    parts: list[str] = field(default_factory=list)
    code_blocks: list[str] = field(default_factory=list)

    def text(self) -> str:
        return _collapse(''.join(self.parts))


def _collapse(text: str) -> str:
    return WHITESPACE_PATTERN.sub(' ', text).strip()


class SectionExtractor:
    """Extracts ordered sections from HTML."""

    def __init__(self, config: Optional[SectionExtractorConfig] = None):
        self.config = config or SectionExtractorConfig()

    def extract_sections(self, html: str,
                         config: Optional[SectionExtractorConfig] = None) -> list[ParsedSection]:
        """
        Extract sections from HTML.

        Args:
            html: HTML string
            config: Per-call override of the extractor's configuration

        Returns:
            Sections in document order; empty if there are no boundaries.

        Raises:
            DocumentationParseError: if html is None or a custom selector is invalid
        """
        if html is None:
            raise DocumentationParseError("Invalid input: html cannot be None")

        if not html.strip():
            return []

        cfg = config or self.config
        soup = parse_document(html)

        boundaries = self._find_boundaries(soup, cfg)
        if not boundaries:
            logger.debug("No section boundaries found")
            return []

        builders = self._walk(soup, boundaries, cfg)

        sections = []
        for i, builder in enumerate(builders):
            section = self._build_section(builder, builders[i + 1] if i + 1 < len(builders) else None, cfg)
            if section is not None:
                sections.append(section)

        logger.info(f"Extracted {len(sections)} sections ({len(builders) - len(sections)} filtered)")
        return sections

    # --- Boundary detection ---

    def _find_boundaries(self, soup: BeautifulSoup, cfg: SectionExtractorConfig) -> dict[int, int]:
        """Map id(element) → level for every heading and custom-selector match."""
        boundaries: dict[int, int] = {}

        for selector in cfg.custom_selectors:
            try:
                matches = soup.select(selector)
            except Exception as e:
                raise DocumentationParseError(
                    f"Invalid custom selector: {selector}",
                    details={"selector": selector}
                ) from e
            for elem in matches:
                boundaries[id(elem)] = self._custom_level(elem)

        # Real headings win over a custom match on the same element
        for elem in soup.find_all(HEADING_TAGS):
            boundaries[id(elem)] = int(elem.name[1])

        return boundaries

    @staticmethod
    def _custom_level(elem: Tag) -> int:
        if elem.name in HEADING_TAGS:
            return int(elem.name[1])
        for attr in LEVEL_ATTRIBUTES:
            value = elem.get(attr)
            if value and str(value).strip().isdigit() and 1 <= int(value) <= 6:
                return int(value)
        return DEFAULT_CUSTOM_LEVEL

    # --- Document walk ---

    def _walk(self, soup: BeautifulSoup, boundaries: dict[int, int],
              cfg: SectionExtractorConfig) -> list[_SectionBuilder]:
        """
        Single pre-order pass over the tree, iterative (no recursion limit).

        Each stack frame is (children iterator, is_block).  Entering and
        leaving a block element emits a space separator.
        """
        builders: list[_SectionBuilder] = []
        current: Optional[_SectionBuilder] = None
        stack = [(iter(soup.children), False)]
        # Text nodes already used as a wrapper boundary's title
        title_ids: set[int] = set()

        while stack:
            children, is_block = stack[-1]
            node = next(children, None)

            if node is None:
                stack.pop()
                if is_block and current is not None:
                    current.parts.append(' ')
                continue

            if isinstance(node, PreformattedString):
                continue  # comments, doctype, CDATA

            if isinstance(node, NavigableString):
                if current is not None and id(node) not in title_ids:
                    current.parts.append(str(node))
                continue

            if not isinstance(node, Tag) or node.name in SKIP_TAGS:
                continue

            level = boundaries.get(id(node))
            if level is not None:
                title_nodes = self._text_before_nested_boundary(node, boundaries)
                if title_nodes is None:
                    # Plain boundary: its whole subtree is the title, never content
                    title = _collapse(node.get_text(' '))
                else:
                    title = _collapse(' '.join(title_nodes))
                    title_ids.update(id(s) for s in title_nodes)

                current = _SectionBuilder(boundary=node, title=title, level=level)
                builders.append(current)

                if title_nodes is not None:
                    # Wrapper boundary (e.g. a matched card holding <h2>s): walk
                    # inside so nested boundaries open their own sections
                    stack.append((iter(node.children), node.name not in INLINE_TAGS))
                continue

            if node.name == 'pre':
                if current is not None:
                    self._read_pre(node, current, cfg)
                continue

            block = node.name not in INLINE_TAGS
            if block and current is not None:
                current.parts.append(' ')
            stack.append((iter(node.children), block))

        return builders

    @staticmethod
    def _text_before_nested_boundary(boundary: Tag,
                                     boundaries: dict[int, int]) -> Optional[list[NavigableString]]:
        """
        Text nodes of a boundary that precede its first nested boundary.

        Returns None when the boundary contains no other boundary.
        """
        texts = []
        for desc in boundary.descendants:
            if isinstance(desc, Tag):
                if id(desc) in boundaries:
                    return texts
            elif isinstance(desc, NavigableString) and not isinstance(desc, PreformattedString):
                if desc.parent is None or desc.parent.name not in SKIP_TAGS:
                    texts.append(desc)
        return None

    @staticmethod
    def _read_pre(pre: Tag, current: _SectionBuilder, cfg: SectionExtractorConfig) -> None:
        """Record a <pre> block: its text is content, and optionally a code block."""
        text = pre.get_text()
        current.parts.append(f' {text} ')

        if not cfg.extract_code_blocks:
            return

        # Prefer <pre><code>, fall back to bare <pre>
        code = pre.find('code')
        snippet = (code.get_text() if code is not None else text).strip()
        if snippet:
            current.code_blocks.append(snippet)

    # --- Filtering and output ---

    def _build_section(self, builder: _SectionBuilder, next_builder: Optional[_SectionBuilder],
                       cfg: SectionExtractorConfig) -> Optional[ParsedSection]:
        """Apply the title/content filters; None means the section is dropped."""
        title = builder.title
        if not title or len(title) > cfg.max_title_length:
            logger.debug(f"Dropping section with invalid title: {title[:50]!r}")
            return None

        content = builder.text()
        if len(content) < cfg.min_content_length:
            logger.debug(f"Dropping section {title!r}: content shorter than {cfg.min_content_length}")
            return None

        original_html = None
        if cfg.preserve_formatting:
            original_html = self._section_html(
                builder.boundary,
                next_builder.boundary if next_builder else None
            )

        return ParsedSection(
            title=title,
            content=content,
            code_blocks=list(builder.code_blocks),
            level=builder.level,
            original_html=original_html
        )

    @staticmethod
    def _section_html(boundary: Tag, next_boundary: Optional[Tag]) -> str:
        """
        Serialize the siblings following a boundary, up to the next boundary.

        Stops at the sibling that is, or contains, the next boundary.
        """
        stop_ids = set()
        if next_boundary is not None:
            stop_ids.add(id(next_boundary))
            stop_ids.update(id(parent) for parent in next_boundary.parents)
            if id(boundary) in stop_ids:
                # Next boundary is nested inside this one
                return ''

        chunks = []
        for sibling in boundary.next_siblings:
            if id(sibling) in stop_ids:
                break
            if isinstance(sibling, Tag):
                chunks.append(sibling.decode())
            elif isinstance(sibling, PreformattedString):
                continue
            elif isinstance(sibling, NavigableString):
                chunks.append(sibling.output_ready())
        return ''.join(chunks).strip()


def extract_sections(html: str, config: Optional[SectionExtractorConfig] = None) -> list[ParsedSection]:
    """Convenience function to extract sections from HTML."""
    return SectionExtractor(config).extract_sections(html)
