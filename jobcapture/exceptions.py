"""Error taxonomy for the capture pipeline.

Each error carries the HTTP-equivalent status the entry points report.
Network and parse failures are recovered inside the extractors and are
only raised internally.
"""

from typing import Dict, List, Optional


class CaptureError(Exception):
    """Base class for capture pipeline errors."""

    http_status = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(CaptureError):
    """
    Malformed or missing input fields. Never retried.

    Attributes:
        message: Summary of the failure
        field_errors: Mapping of field name to the problems found with it
    """

    http_status = 400

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None):
        self.field_errors = field_errors or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "errors": self.field_errors}


class AuthenticationError(CaptureError):
    """No acting user for the request."""

    http_status = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NetworkError(CaptureError):
    """A fetch failed, timed out or returned a non-2xx status."""

    http_status = 502

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(message)


class ParseError(CaptureError):
    """
    A single embedded document could not be parsed.

    Attributes:
        message: Error description
        snippet: Leading part of the content that failed to parse
    """

    http_status = 400

    def __init__(self, message: str, snippet: Optional[str] = None):
        self.snippet = snippet[:200] if snippet else None
        super().__init__(message)


class ConfigurationError(CaptureError):
    """Required seed data (e.g. the default job status) is missing."""

    http_status = 500
