"""
Custom exceptions for the sixth_degree package.
"""

from typing import List, Optional

from sixth_degree.models import QueryErrorKind


class SixthDegreeException(Exception):
    """Base exception for the package."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


# --- Fetching ---

class FetchError(SixthDegreeException):
    """Raised when the outbound links of a page could not be fetched."""
    def __init__(self, message: str, page_title: str, partial_links: Optional[List[str]] = None):
        self.page_title = page_title
        # Links collected from earlier pages of the response before the failure
        self.partial_links: List[str] = list(partial_links or [])
        super().__init__(message)


class TerminalFetchError(FetchError):
    """Raised when the API gives a definitive rejection. Never retried."""
    def __init__(self, message: str, page_title: str, status_code: Optional[int] = None,
                 partial_links: Optional[List[str]] = None):
        self.status_code = status_code
        super().__init__(message, page_title, partial_links)


class ProtocolViolationError(TerminalFetchError):
    """Raised when a response is not the expected JSON document."""
    def __init__(self, message: str, page_title: str, content_type: Optional[str] = None,
                 status_code: Optional[int] = None, partial_links: Optional[List[str]] = None):
        self.content_type = content_type
        super().__init__(message, page_title, status_code, partial_links)


class RetryExhaustedError(FetchError):
    """Raised when every attempt of a request failed with a transient error."""
    def __init__(self, message: str, page_title: str, attempts: int,
                 last_error: Optional[str] = None, partial_links: Optional[List[str]] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message, page_title, partial_links)


# --- Pipeline-fatal ---

class SeedFileError(SixthDegreeException):
    """Raised when the seed file cannot be opened or read."""
    pass


class GraphWriteError(SixthDegreeException):
    """Raised when the crawled graph cannot be persisted."""
    pass


# --- Serving ---

class GraphLoadError(SixthDegreeException):
    """Raised when the persisted graph is missing or malformed."""
    pass


class PathQueryError(SixthDegreeException):
    """Base class for query-level failures. `kind` is machine-readable."""
    def __init__(self, message: str, kind: QueryErrorKind):
        self.kind = kind
        super().__init__(message)


class NodeNotFoundError(PathQueryError):
    """Raised when the start or end node is not a key of the graph."""
    def __init__(self, node: str, kind: QueryErrorKind):
        self.node = node
        side = "start" if kind == QueryErrorKind.START_NOT_FOUND else "end"
        super().__init__(f"{side} node '{node}' not found in graph", kind)


class NoPathError(PathQueryError):
    """Raised when the search space is exhausted without reaching the end node."""
    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"no path from '{start}' to '{end}'", QueryErrorKind.NO_PATH)
