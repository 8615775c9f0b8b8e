"""
Pydantic schemas defining the contracts between pipeline stages.

Data flow through the pipeline:
  DocumentationSource → Fetcher → FetchResult
  FetchResult.content → Parser → list[ParsedSection]
  ParsedSection → generate_metadata → DocumentationMetadata
  (all of the above for one source) → ProcessedDocument
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Input: where documentation lives ---

class DocumentationSource(BaseModel):
    """A documentation location registered by an external source registry."""
    model_config = ConfigDict(frozen=True)

    id: str
    location: str                                       # URL (or raw GitHub blob URL)
    type: Literal["web", "github", "local"] = "web"
    last_fetched: Optional[datetime] = None
    version: Optional[str] = None                       # Version tag or commit hash


# --- Fetcher output ---

class FetchResult(BaseModel):
    """Raw response of one successful fetch attempt; consumed once by the parser."""
    content: str
    content_type: str = "text/plain"
    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)
    url: str = ""                                       # Final URL after redirects


# --- Parser output ---

class ParsedSection(BaseModel):
    """
    One heading-delimited unit of documentation.

    Sections are flat: a parent heading's content stops where the next
    heading (of any level) begins.
    """
    title: str
    content: str = Field(description="Plain text, whitespace collapsed")
    code_blocks: list[str] = Field(default_factory=list)
    level: int = Field(ge=1, le=6, description="Heading depth or custom-selector rank")
    original_html: Optional[str] = None                 # Only when preserve_formatting is set


# The extractor and the parser emit the same shape
ExtractedSection = ParsedSection


class DocumentationMetadata(BaseModel):
    """Stable, per-section metadata handed to the knowledge-base stage."""
    model_config = ConfigDict(frozen=True)

    id: str                                             # URL-safe, unique per source
    source_id: str
    title: str
    path: str                                           # base_path + "#" + slug(title)
    order: int                                          # level * 1000; siblings share a value
    topics: list[str] = Field(default_factory=list)


# --- Pipeline output ---

class ProcessedDocument(BaseModel):
    """Everything the pipeline produced for one source."""
    source: DocumentationSource
    fetched_at: datetime
    content_type: str
    sections: list[ParsedSection] = Field(default_factory=list)
    metadata: list[DocumentationMetadata] = Field(default_factory=list)
