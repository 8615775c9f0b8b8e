#!/usr/bin/env python3
"""
CLI script to ingest documentation.

Accepts URLs and local files.  URLs are fetched and parsed through the async
pipeline; local files are parsed directly (Markdown by suffix or --markdown,
HTML otherwise).  Every input produces one JSON record with its sections and
metadata, or the error that stopped it.

Settings not given on the command line come from DOC_INGEST_* environment
variables (a .env file is honoured).
"""

import argparse
import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from doc_ingest.config import load_fetcher_config, load_parser_config
from doc_ingest.exceptions import DocIngestError
from doc_ingest.fetcher import DocumentationFetcher
from doc_ingest.logger import setup_logger
from doc_ingest.main import DocumentationParser
from doc_ingest.metadata import slugify
from doc_ingest.pipeline import DocumentationPipeline
from doc_ingest.schemas import DocumentationSource

URL_PREFIXES = ('http://', 'https://')


def _error_record(item: str, error: Exception) -> dict:
    record = {"input": item, "status": "error", "error": str(error)}
    if isinstance(error, DocIngestError):
        record["kind"] = error.kind.value
    return record


def _source_for(item: str, source_id: str = None) -> DocumentationSource:
    source_type = "github" if "github.com/" in item else "web"
    return DocumentationSource(id=source_id or slugify(item) or "source",
                               location=item, type=source_type)


async def ingest_urls(urls: list[str], parser: DocumentationParser,
                      args: argparse.Namespace) -> list[dict]:
    """Run the pipeline over all URLs concurrently, keeping failures per input."""
    fetcher = DocumentationFetcher(load_fetcher_config(max_concurrent=args.max_concurrent))
    sources = [_source_for(url, args.source_id) for url in urls]

    async with DocumentationPipeline(fetcher=fetcher, parser=parser) as pipeline:
        documents = await pipeline.process_many(sources, return_exceptions=True)

    records = []
    for url, document in zip(urls, documents):
        if isinstance(document, Exception):
            print(f"  ✗ {url}: {document}")
            records.append(_error_record(url, document))
            continue
        print(f"  ✓ {url}: {len(document.sections)} sections")
        records.append({
            "input": url,
            "status": "success",
            "sections": [s.model_dump() for s in document.sections],
            "metadata": [m.model_dump() for m in document.metadata],
        })
    return records


def ingest_file(path: Path, parser: DocumentationParser, args: argparse.Namespace) -> dict:
    """Parse one local file."""
    print(f"Parsing: {path.name}")
    try:
        text = path.read_text(encoding='utf-8', errors='replace')
        if args.markdown:
            sections = parser.parse_markdown(text)
        else:
            sections = parser.parse_file(path)

        source_id = args.source_id or slugify(path.stem) or "source"
        metadata = [parser.generate_metadata(s, source_id, path.as_posix()) for s in sections]
    except (OSError, DocIngestError) as e:
        print(f"  ✗ Error: {e}")
        return _error_record(str(path), e)

    print(f"  ✓ {len(sections)} sections")
    return {
        "input": str(path),
        "status": "success",
        "sections": [s.model_dump() for s in sections],
        "metadata": [m.model_dump() for m in metadata],
    }


def main():
    parser = argparse.ArgumentParser(description="Fetch and split documentation into sections")
    parser.add_argument("inputs", nargs="+", help="URLs or local HTML/Markdown files")
    parser.add_argument("--output", "-o", help="Output JSON file")
    parser.add_argument("--markdown", "-m", action="store_true",
                        help="Treat local files as Markdown regardless of suffix")
    parser.add_argument("--source-id", help="Source id used for metadata (default: derived from input)")
    parser.add_argument("--min-content-length", type=int, help="Drop sections with shorter bodies")
    parser.add_argument("--max-concurrent", type=int, help="Maximum concurrent fetches")
    parser.add_argument("--log-level", help="Log level name, e.g. DEBUG (default: $DOC_INGEST_LOG_LEVEL or INFO)")
    args = parser.parse_args()

    if args.log_level:
        setup_logger(level=args.log_level)

    doc_parser = DocumentationParser(load_parser_config(min_content_length=args.min_content_length))

    urls = [item for item in args.inputs if item.startswith(URL_PREFIXES)]
    files = [item for item in args.inputs if not item.startswith(URL_PREFIXES)]

    results_by_input = {}
    for item in files:
        results_by_input[item] = ingest_file(Path(item), doc_parser, args)

    if urls:
        print(f"Fetching {len(urls)} URL(s)")
        for record in asyncio.run(ingest_urls(urls, doc_parser, args)):
            results_by_input[record["input"]] = record

    # Keep the command-line order in the output
    results = [results_by_input[item] for item in args.inputs if item in results_by_input]

    # ensure_ascii=False preserves unicode characters in the JSON
    output = json.dumps(results, indent=2, ensure_ascii=False, default=str)

    if args.output:
        Path(args.output).write_text(output)
        print(f"\nSaved to: {args.output}")
    else:
        print("\n" + output)


if __name__ == "__main__":
    main()
