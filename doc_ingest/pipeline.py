"""
End-to-end pipeline: fetch → parse → metadata.

Fetching is the only suspending stage.  Parsing runs synchronously on the
event loop once a document has arrived; the parser keeps no state between
calls, so concurrent sources can share one instance.
"""

import asyncio
from typing import Iterable, Optional

from .fetcher import DocumentationFetcher
from .logger import get_module_logger
from .main import MARKDOWN_SUFFIXES, DocumentationParser
from .schemas import DocumentationSource, FetchResult, ProcessedDocument

logger = get_module_logger("pipeline")

MARKDOWN_CONTENT_TYPES = ('text/markdown', 'text/x-markdown')


def is_markdown(source: DocumentationSource, result: FetchResult) -> bool:
    """Markdown if the server says so, or the location has a Markdown suffix."""
    media_type = result.content_type.split(';', 1)[0].strip().lower()
    if media_type in MARKDOWN_CONTENT_TYPES:
        return True
    path = source.location.split('#', 1)[0].split('?', 1)[0].lower()
    return path.endswith(MARKDOWN_SUFFIXES)


class DocumentationPipeline:
    """Fetches documentation sources and turns them into sections with metadata."""

    def __init__(self, fetcher: Optional[DocumentationFetcher] = None,
                 parser: Optional[DocumentationParser] = None):
        self.fetcher = fetcher or DocumentationFetcher()
        self.parser = parser or DocumentationParser()

    async def __aenter__(self):
        await self.fetcher.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.fetcher.close()

    async def process(self, source: DocumentationSource) -> ProcessedDocument:
        """
        Fetch, parse and annotate one source.

        Raises:
            FetchError or DocumentationParseError subclasses, unchanged
        """
        result = await self.fetcher.fetch(source)

        if is_markdown(source, result):
            sections = self.parser.parse_markdown(result.content)
        else:
            sections = self.parser.parse_html(result.content)

        metadata = [
            self.parser.generate_metadata(section, source.id, source.location)
            for section in sections
        ]

        logger.info(f"Processed {source.id}: {len(sections)} sections")
        return ProcessedDocument(
            source=source,
            fetched_at=result.timestamp,
            content_type=result.content_type,
            sections=sections,
            metadata=metadata
        )

    async def process_many(self, sources: Iterable[DocumentationSource],
                           return_exceptions: bool = False) -> list:
        """
        Process several sources concurrently; results are in input order.

        Fail-fast by default.  With return_exceptions, each failed source
        yields its exception in place of a ProcessedDocument.
        """
        return await asyncio.gather(
            *(self.process(source) for source in sources),
            return_exceptions=return_exceptions
        )
