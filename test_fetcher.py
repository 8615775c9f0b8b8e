#!/usr/bin/env python3
"""
Tests for DocumentationFetcher and DocumentationPipeline.

The network layer (DocumentationFetcher._request) is replaced with mocks or
coroutine stand-ins so retry counts, concurrency and timeouts can be observed
directly.  One test runs the real aiohttp path against a local test server.
"""

import asyncio
import time
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from aiohttp import web
from aiohttp import test_utils

from doc_ingest.config import FetcherConfig, load_fetcher_config, load_parser_config
from doc_ingest.exceptions import (
    EmptyContentError,
    ErrorKind,
    FetchTimeoutError,
    HttpStatusError,
    NetworkError,
    NoHeadingsFoundError,
    UnexpectedStatusError,
    UnsupportedTagError,
)
from doc_ingest.fetcher import DocumentationFetcher, resolve_location
from doc_ingest.pipeline import DocumentationPipeline
from doc_ingest.schemas import DocumentationSource, FetchResult, ProcessedDocument

DOC_HTML = "<h1>Intro</h1><p>Introduction text here.</p><h2>Setup</h2><p>Setup instructions here.</p>"


def make_source(name: str = "docs", location: str = None, source_type: str = "web") -> DocumentationSource:
    return DocumentationSource(
        id=name,
        location=location or f"https://example.com/{name}",
        type=source_type
    )


def ok_result(content: str = DOC_HTML, status_code: int = 200,
              content_type: str = "text/html") -> FetchResult:
    return FetchResult(content=content, status_code=status_code, content_type=content_type)


def fast_config(**overrides) -> FetcherConfig:
    values = {"retry_delay": 0, "timeout": 1.0}
    values.update(overrides)
    return FetcherConfig(**values)


class TestRetries:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2, 3])
    async def test_succeeds_after_k_retryable_failures(self, failures):
        fetcher = DocumentationFetcher(fast_config(max_retries=3))
        side_effect = [NetworkError("connection reset")] * failures + [ok_result()]

        with patch.object(fetcher, "_request", new=AsyncMock(side_effect=side_effect)) as request:
            result = await fetcher.fetch(make_source())

        assert result.content == DOC_HTML
        assert request.call_count == failures + 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=2))
        request = AsyncMock(return_value=ok_result(content="error", status_code=503))

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(HttpStatusError) as exc_info:
                await fetcher.fetch(make_source())

        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable is True
        assert request.call_count == 3

    @pytest.mark.asyncio
    async def test_404_is_terminal(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=3))
        request = AsyncMock(return_value=ok_result(content="not found", status_code=404))

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(HttpStatusError) as exc_info:
                await fetcher.fetch(make_source())

        assert exc_info.value.status_code == 404
        assert exc_info.value.retryable is False
        assert exc_info.value.kind == ErrorKind.HTTP_STATUS
        assert request.call_count == 1

    @pytest.mark.asyncio
    async def test_other_4xx_is_retried(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=1))
        request = AsyncMock(side_effect=[ok_result(content="slow down", status_code=429), ok_result()])

        with patch.object(fetcher, "_request", new=request):
            await fetcher.fetch(make_source())

        assert request.call_count == 2

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=0))
        cause = aiohttp.ClientConnectionError("refused")
        request = AsyncMock(side_effect=cause)

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(NetworkError) as exc_info:
                await fetcher.fetch(make_source())

        assert exc_info.value.cause is cause
        assert exc_info.value.to_dict()["kind"] == "network"

    @pytest.mark.asyncio
    async def test_invalid_url_is_terminal(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=3))
        request = AsyncMock(side_effect=aiohttp.InvalidURL("not a url"))

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(NetworkError) as exc_info:
                await fetcher.fetch(make_source(location="not a url"))

        assert exc_info.value.retryable is False
        assert request.call_count == 1

    def test_backoff_delays(self):
        fetcher = DocumentationFetcher(FetcherConfig(retry_delay=1.0, backoff_factor=2.0, max_retry_delay=5.0))
        assert [fetcher._calculate_retry_delay(n) for n in range(1, 5)] == [1.0, 2.0, 4.0, 5.0]


class TestTimeoutsAndConcurrency:

    @pytest.mark.asyncio
    async def test_concurrency_limit(self):
        fetcher = DocumentationFetcher(fast_config(max_concurrent=2))
        in_flight = 0
        peak = 0

        async def slow_request(url):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.1)
            in_flight -= 1
            return ok_result()

        sources = [make_source(f"doc{i}") for i in range(4)]
        with patch.object(fetcher, "_request", new=slow_request):
            started = time.monotonic()
            results = await fetcher.fetch_many(sources)
            elapsed = time.monotonic() - started

        assert len(results) == 4
        assert peak == 2
        assert elapsed >= 0.19

    @pytest.mark.asyncio
    async def test_timeout_is_retried(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=1, timeout=0.05))
        calls = 0

        async def flaky_request(url):
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return ok_result()

        with patch.object(fetcher, "_request", new=flaky_request):
            result = await fetcher.fetch(make_source())

        assert result.status_code == 200
        assert calls == 2

    @pytest.mark.asyncio
    async def test_timeout_releases_slot(self):
        fetcher = DocumentationFetcher(fast_config(max_concurrent=1, max_retries=0, timeout=0.05))

        async def request(url):
            if url.endswith("/slow"):
                await asyncio.sleep(1)
            return ok_result()

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(FetchTimeoutError) as exc_info:
                await fetcher.fetch(make_source("slow"))
            assert exc_info.value.kind == ErrorKind.TIMEOUT
            assert not fetcher._semaphore.locked()

            result = await asyncio.wait_for(fetcher.fetch(make_source("fast")), timeout=1)

        assert result.content == DOC_HTML

    @pytest.mark.asyncio
    async def test_fetch_many_return_exceptions(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=0))

        async def request(url):
            if url.endswith("/missing"):
                return ok_result(content="gone", status_code=404)
            return ok_result(content=url)

        sources = [make_source("a"), make_source("missing"), make_source("b")]
        with patch.object(fetcher, "_request", new=request):
            results = await fetcher.fetch_many(sources, return_exceptions=True)

        assert results[0].content == "https://example.com/a"
        assert isinstance(results[1], HttpStatusError)
        assert results[2].content == "https://example.com/b"


class TestContentValidation:

    def test_validate_content(self):
        fetcher = DocumentationFetcher()
        fetcher.validate_content(ok_result())

        with pytest.raises(EmptyContentError):
            fetcher.validate_content(ok_result(content=""))
        with pytest.raises(UnexpectedStatusError) as exc_info:
            fetcher.validate_content(ok_result(status_code=201))
        assert exc_info.value.status_code == 201
        assert str(exc_info.value) == "Unexpected status code: 201"

    @pytest.mark.asyncio
    async def test_non_200_success_is_not_retried(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=3))
        request = AsyncMock(return_value=ok_result(status_code=203))

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(UnexpectedStatusError):
                await fetcher.fetch(make_source())

        assert request.call_count == 1

    @pytest.mark.asyncio
    async def test_empty_body_is_not_retried(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=3))
        request = AsyncMock(return_value=ok_result(content=""))

        with patch.object(fetcher, "_request", new=request):
            with pytest.raises(EmptyContentError):
                await fetcher.fetch(make_source())

        assert request.call_count == 1


class TestResolveLocation:

    def test_github_blob_rewritten(self):
        source = make_source(
            location="https://github.com/acme/widgets/blob/main/docs/guide.md",
            source_type="github"
        )
        assert resolve_location(source) == "https://raw.githubusercontent.com/acme/widgets/main/docs/guide.md"

    def test_other_locations_untouched(self):
        web_source = make_source(location="https://github.com/acme/widgets/blob/main/README.md")
        assert resolve_location(web_source) == web_source.location

        raw = make_source(location="https://raw.githubusercontent.com/acme/widgets/main/README.md",
                          source_type="github")
        assert resolve_location(raw) == raw.location


class TestConfigLoading:

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DOC_INGEST_MAX_CONCURRENT", "7")
        monkeypatch.setenv("DOC_INGEST_TIMEOUT", "2.5")
        config = load_fetcher_config(max_retries=1)
        assert config.max_concurrent == 7
        assert config.timeout == 2.5
        assert config.max_retries == 1

    def test_explicit_override_beats_env(self, monkeypatch):
        monkeypatch.setenv("DOC_INGEST_MAX_CONCURRENT", "7")
        assert load_fetcher_config(max_concurrent=3).max_concurrent == 3
        assert load_fetcher_config(max_concurrent=None).max_concurrent == 7

    def test_parser_env(self, monkeypatch):
        monkeypatch.setenv("DOC_INGEST_CUSTOM_SELECTORS", ".title, [role=heading]")
        monkeypatch.setenv("DOC_INGEST_PRESERVE_FORMATTING", "true")
        config = load_parser_config()
        assert config.custom_selectors == [".title", "[role=heading]"]
        assert config.preserve_formatting is True


class TestLocalServer:

    @pytest.mark.asyncio
    async def test_real_request(self):
        async def page(request):
            return web.Response(text=DOC_HTML, content_type="text/html",
                                headers={"X-Agent": request.headers.get("User-Agent", "")})

        async def missing(request):
            return web.Response(status=404, text="not found")

        app = web.Application()
        app.router.add_get("/page", page)
        app.router.add_get("/missing", missing)

        async with test_utils.TestServer(app) as server:
            async with DocumentationFetcher(fast_config(max_retries=2)) as fetcher:
                result = await fetcher.fetch(make_source(location=str(server.make_url("/page"))))
                with pytest.raises(HttpStatusError) as exc_info:
                    await fetcher.fetch(make_source(location=str(server.make_url("/missing"))))

        assert result.content == DOC_HTML
        assert result.content_type == "text/html"
        assert result.headers["X-Agent"] == "doc-ingest/0.1.0"
        assert result.url.endswith("/page")
        assert exc_info.value.status_code == 404


class TestPipeline:

    @pytest.mark.asyncio
    async def test_process_html(self):
        fetcher = DocumentationFetcher(fast_config())
        source = make_source(location="https://example.com/guide.html#top")

        with patch.object(fetcher, "_request", new=AsyncMock(return_value=ok_result())):
            document = await DocumentationPipeline(fetcher=fetcher).process(source)

        assert isinstance(document, ProcessedDocument)
        assert [s.title for s in document.sections] == ["Intro", "Setup"]
        assert [m.path for m in document.metadata] == [
            "https://example.com/guide.html#intro",
            "https://example.com/guide.html#setup",
        ]
        assert [m.order for m in document.metadata] == [1000, 2000]
        assert document.metadata[0].id == "docs-intro"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("location,content_type", [
        ("https://example.com/README", "text/markdown"),
        ("https://example.com/README.md", "text/plain"),
    ])
    async def test_process_markdown(self, location, content_type):
        fetcher = DocumentationFetcher(fast_config())
        markdown = "# Readme\n\nProject overview text.\n"
        result = ok_result(content=markdown, content_type=content_type)

        with patch.object(fetcher, "_request", new=AsyncMock(return_value=result)):
            document = await DocumentationPipeline(fetcher=fetcher).process(make_source(location=location))

        assert [s.title for s in document.sections] == ["Readme"]

    @pytest.mark.asyncio
    async def test_process_many(self):
        fetcher = DocumentationFetcher(fast_config(max_retries=0))
        pages = {
            "https://example.com/good": ok_result(),
            "https://example.com/bad": ok_result(content="<custom>x</custom>"),
            "https://example.com/notes.md": ok_result(content="no heading here"),
        }

        async def request(url):
            return pages[url]

        sources = [make_source("good"), make_source("bad"), make_source("notes.md")]
        pipeline = DocumentationPipeline(fetcher=fetcher)

        with patch.object(fetcher, "_request", new=request):
            results = await pipeline.process_many(sources, return_exceptions=True)
            with pytest.raises(UnsupportedTagError):
                await pipeline.process_many(sources[:2])

        assert len(results[0].sections) == 2
        assert isinstance(results[1], UnsupportedTagError)
        assert isinstance(results[2], NoHeadingsFoundError)
