"""
Custom exceptions for the doc_ingest pipeline.

Error philosophy:
  - FetchError → RETRY OR FAIL: the fetcher retries errors marked retryable,
    then surfaces the last one to the caller.
  - DocumentationParseError → FAIL HARD: malformed markup is never retried;
    the caller has to fix or pre-clean the source.

Every error carries a machine-readable ``kind`` so callers outside this package
(batch orchestrators, the knowledge-base stage) can branch without parsing
messages.  Underlying library errors are chained with ``raise ... from exc`` and
exposed through ``cause``.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""
    # Fetch side
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    EMPTY_CONTENT = "empty_content"
    UNEXPECTED_STATUS = "unexpected_status"
    # Parse / validation side
    PARSE_ERROR = "parse_error"
    MALFORMED_TAG_SYNTAX = "malformed_tag_syntax"
    UNSUPPORTED_TAG = "unsupported_tag"
    UNMATCHED_CLOSING_TAG = "unmatched_closing_tag"
    UNCLOSED_TAGS = "unclosed_tags"
    NO_TAGS_FOUND = "no_tags_found"
    NO_HEADINGS_FOUND = "no_headings_found"


class DocIngestError(Exception):
    """Base exception for all doc_ingest errors."""

    kind = ErrorKind.PARSE_ERROR

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def cause(self) -> Optional[BaseException]:
        """The underlying exception, if this error was raised from one."""
        return self.__cause__

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly error record."""
        return {
            "error": type(self).__name__,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "cause": repr(self.cause) if self.cause else None,
        }


# --- Fetch errors: may be retried by the fetcher ---

class FetchError(DocIngestError):
    """Raised when a documentation source cannot be fetched."""

    kind = ErrorKind.NETWORK
    retryable = False

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        retryable: Optional[bool] = None
    ):
        super().__init__(message, details)
        # Instance override wins over the class default
        if retryable is not None:
            self.retryable = retryable


class NetworkError(FetchError):
    """No response was received (connection refused, reset, DNS, ...)."""

    kind = ErrorKind.NETWORK
    retryable = True


class FetchTimeoutError(FetchError):
    """A fetch attempt exceeded the configured timeout."""

    kind = ErrorKind.TIMEOUT
    retryable = True


class HttpStatusError(FetchError):
    """The server answered with an error status (4xx/5xx)."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, message: Optional[str] = None,
                 details: Optional[dict] = None):
        # 404 is terminal; every other 4xx/5xx is worth another attempt
        super().__init__(
            message or f"HTTP error {status_code}",
            details,
            retryable=status_code != 404
        )
        self.status_code = status_code


class EmptyContentError(FetchError):
    """A fetch result carried no content."""

    kind = ErrorKind.EMPTY_CONTENT


class UnexpectedStatusError(FetchError):
    """A fetch result carried a status other than 200."""

    kind = ErrorKind.UNEXPECTED_STATUS

    def __init__(self, status_code: int, details: Optional[dict] = None):
        super().__init__(f"Unexpected status code: {status_code}", details)
        self.status_code = status_code


# --- Parse errors: FAIL HARD, never retried ---

class DocumentationParseError(DocIngestError):
    """Raised when documentation content cannot be validated or parsed."""

    kind = ErrorKind.PARSE_ERROR


class MalformedTagSyntaxError(DocumentationParseError):
    kind = ErrorKind.MALFORMED_TAG_SYNTAX


class UnsupportedTagError(DocumentationParseError):
    kind = ErrorKind.UNSUPPORTED_TAG

    def __init__(self, tag: str, details: Optional[dict] = None):
        super().__init__(f'Invalid HTML: unsupported tag "{tag}"', details)
        self.tag = tag


class UnmatchedClosingTagError(DocumentationParseError):
    kind = ErrorKind.UNMATCHED_CLOSING_TAG


class UnclosedTagsError(DocumentationParseError):
    kind = ErrorKind.UNCLOSED_TAGS


class NoTagsFoundError(DocumentationParseError):
    kind = ErrorKind.NO_TAGS_FOUND


class NoHeadingsFoundError(DocumentationParseError):
    kind = ErrorKind.NO_HEADINGS_FOUND
