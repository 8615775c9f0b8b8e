"""
Per-section metadata: stable ids, anchored paths, ordering and topics.

Ids and paths are derived only from the source id, the base path and the
section title, so re-parsing an unchanged document yields identical metadata.
"""

import re
import unicodedata
from typing import Optional

from .config import MetadataConfig
from .logger import get_module_logger
from .schemas import DocumentationMetadata, ParsedSection

logger = get_module_logger("metadata")

SLUG_INVALID_CHARS = re.compile(r'[^a-z0-9\s-]')
SLUG_SEPARATORS = re.compile(r'[\s-]+')
TOPIC_WORD = re.compile(r'[a-z0-9]+')

# Stand-in for titles whose slug is empty (e.g. "!!!" or pure CJK)
FALLBACK_SLUG = "section"

ORDER_MULTIPLIER = 1000


def slugify(text: str) -> str:
    """
    URL-safe slug: ASCII-folded, lowercase, hyphen-separated.

    Idempotent: slugify(slugify(s)) == slugify(s).
    """
    folded = unicodedata.normalize('NFKD', text).encode('ascii', 'ignore').decode('ascii')
    folded = SLUG_INVALID_CHARS.sub('', folded.lower())
    return SLUG_SEPARATORS.sub('-', folded).strip('-')


class MetadataGenerator:
    """Builds DocumentationMetadata for parsed sections."""

    def __init__(self, config: Optional[MetadataConfig] = None):
        self.config = config or MetadataConfig()
        self._stop_words = frozenset(w.lower() for w in self.config.stop_words)

    def generate(self, section: ParsedSection, source_id: str, base_path: str) -> DocumentationMetadata:
        """
        Args:
            section: A section produced by the parser
            source_id: Id of the documentation source
            base_path: Document location; any existing '#fragment' is replaced

        Returns:
            DocumentationMetadata with a deterministic id and path
        """
        title_slug = slugify(section.title) or FALLBACK_SLUG

        return DocumentationMetadata(
            id=slugify(f"{source_id}-{title_slug}"),
            source_id=source_id,
            title=section.title,
            path=f"{base_path.split('#', 1)[0]}#{title_slug}",
            order=section.level * ORDER_MULTIPLIER,
            topics=self.extract_topics(section.title)
        )

    def extract_topics(self, title: str) -> list[str]:
        """Distinct lowercase title words, minus short words and stop words."""
        topics = []
        for word in TOPIC_WORD.findall(title.lower()):
            if len(topics) >= self.config.max_topic_count:
                break
            if len(word) < self.config.min_topic_length or word in self._stop_words:
                continue
            if word not in topics:
                topics.append(word)
        return topics
