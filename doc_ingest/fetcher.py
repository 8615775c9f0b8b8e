"""
Documentation fetcher: retrying HTTP layer with bounded concurrency.

Each fetch attempt holds one slot of a per-instance asyncio.Semaphore for the
duration of a single GET, bounded by ``timeout``.  Failed attempts release
their slot before the backoff sleep, so a source waiting to retry never
blocks other sources.

Retry policy:
  - retryable: network errors without a response, timeouts, 5xx, 4xx except 404
  - terminal:  404, invalid URLs, empty content, non-200 success codes
"""

import asyncio
import re
from typing import Iterable, Optional

import aiohttp

from .config import FetcherConfig
from .exceptions import (
    EmptyContentError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    UnexpectedStatusError,
)
from .logger import get_module_logger
from .schemas import DocumentationSource, FetchResult

logger = get_module_logger("fetcher")

# https://github.com/<owner>/<repo>/blob/<ref>/<path>
GITHUB_BLOB_PATTERN = re.compile(
    r'^https?://(?:www\.)?github\.com/([^/]+)/([^/]+)/blob/(.+)$'
)
GITHUB_RAW_HOST = "https://raw.githubusercontent.com"


def resolve_location(source: DocumentationSource) -> str:
    """
    Return the URL to request for a source.

    GitHub blob pages are rewritten to their raw.githubusercontent.com
    counterpart so the fetcher receives the file itself, not the viewer page.
    """
    if source.type == "github":
        match = GITHUB_BLOB_PATTERN.match(source.location)
        if match:
            owner, repo, rest = match.groups()
            return f"{GITHUB_RAW_HOST}/{owner}/{repo}/{rest}"
    return source.location


class DocumentationFetcher:
    """Asynchronous documentation fetcher with retries and a concurrency limit."""

    def __init__(self, config: Optional[FetcherConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            config: Network settings; defaults to FetcherConfig()
            session: Externally owned session.  The fetcher never closes it.
        """
        self.config = config or FetcherConfig()
        self.session = session
        self._owns_session = session is None
        self._semaphore = asyncio.Semaphore(self.config.max_concurrent)

    async def __aenter__(self):
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the session if this fetcher created it."""
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                headers={'User-Agent': self.config.user_agent}
            )
            self._owns_session = True
        return self.session

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff for the retry following failed attempt number ``attempt``."""
        delay = self.config.retry_delay * (self.config.backoff_factor ** (attempt - 1))
        return min(delay, self.config.max_retry_delay)

    # --- Network layer ---

    async def _request(self, url: str) -> FetchResult:
        """Perform exactly one GET and map the response to a FetchResult."""
        session = await self._get_session()
        async with session.get(url, allow_redirects=True) as response:
            content = await response.text(errors='replace')
            return FetchResult(
                content=content,
                content_type=response.content_type,
                status_code=response.status,
                headers={k: v for k, v in response.headers.items()},
                url=str(response.url)
            )

    async def _attempt(self, url: str) -> FetchResult:
        """
        One time-boxed attempt inside a concurrency slot.

        Raises:
            FetchError subclass describing why the attempt failed
        """
        async with self._semaphore:
            try:
                result = await asyncio.wait_for(self._request(url), timeout=self.config.timeout)
            except FetchError:
                raise
            except asyncio.TimeoutError as e:
                raise FetchTimeoutError(
                    f"Timed out after {self.config.timeout}s",
                    details={"url": url, "timeout": self.config.timeout}
                ) from e
            except aiohttp.InvalidURL as e:
                raise NetworkError(
                    f"Invalid URL: {url}",
                    details={"url": url},
                    retryable=False
                ) from e
            except aiohttp.ClientError as e:
                raise NetworkError(
                    f"Network error: {e}",
                    details={"url": url}
                ) from e

        if result.status_code >= 400:
            raise HttpStatusError(
                result.status_code,
                details={"url": url, "status_code": result.status_code}
            )
        return result

    # --- Public API ---

    async def fetch(self, source: DocumentationSource) -> FetchResult:
        """
        Fetch one documentation source.

        Makes at most ``1 + max_retries`` attempts.  A successful response is
        checked with validate_content before it is returned.

        Raises:
            NetworkError, FetchTimeoutError, HttpStatusError: last attempt's failure
            EmptyContentError, UnexpectedStatusError: from validate_content
        """
        url = resolve_location(source)
        total = self.config.max_retries + 1
        attempt = 0

        while True:
            attempt += 1
            logger.debug(f"Fetching {url} (attempt {attempt}/{total})")
            try:
                result = await self._attempt(url)
                break
            except FetchError as e:
                if not e.retryable or attempt >= total:
                    logger.error(f"Fetch failed for {source.id} after {attempt} attempt(s): {e}")
                    raise
                delay = self._calculate_retry_delay(attempt)
                logger.warning(
                    f"{e.kind.value} fetching {url}, retrying in {delay:.2f}s "
                    f"(attempt {attempt}/{total})"
                )
                await asyncio.sleep(delay)

        self.validate_content(result)
        logger.info(f"Fetched {source.id}: {len(result.content)} chars ({result.content_type})")
        return result

    async def fetch_many(self, sources: Iterable[DocumentationSource],
                         return_exceptions: bool = False) -> list:
        """
        Fetch several sources concurrently, within the same concurrency limit.

        Results are in input order.  With return_exceptions, failures are
        returned in place of results instead of raised.
        """
        return await asyncio.gather(
            *(self.fetch(source) for source in sources),
            return_exceptions=return_exceptions
        )

    def validate_content(self, result: FetchResult) -> None:
        """
        Raises:
            EmptyContentError: if the result has no content
            UnexpectedStatusError: if the status code is not 200
        """
        if not result.content:
            raise EmptyContentError(
                "Empty content received",
                details={"url": result.url}
            )
        if result.status_code != 200:
            raise UnexpectedStatusError(
                result.status_code,
                details={"url": result.url}
            )
