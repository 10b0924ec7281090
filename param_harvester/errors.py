#!/usr/bin/env python3
"""
Exception hierarchy for the parameter harvester.

Configuration problems are fatal and stop the run before any request is
made. Everything raised by a single data source derives from SourceError
and is isolated to that source by the aggregator.
"""

from typing import Optional


class HarvesterError(Exception):
    """Base class for all harvester errors."""


class ConfigurationError(HarvesterError):
    """Missing API key, unreadable config file or unreadable domain list."""


class RequestCancelled(HarvesterError):
    """The run context was cancelled while a request was pending."""


class DeadlineExceeded(RequestCancelled):
    """The run context deadline elapsed while a request was pending."""


class SourceError(HarvesterError):
    """A data source could not produce results for a domain."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class RateLimitError(SourceError):
    """The data source answered with HTTP 429."""

    def __init__(self, source: str):
        super().__init__(source, "rate limit reached (429)")


class SourceResponseError(SourceError):
    """Unexpected status code or a response body that could not be parsed."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(source, message)


class SourceRequestError(SourceError):
    """Transport level failure (DNS, connection reset, TLS, read timeout)."""


class WaybackError(SourceError):
    """The Wayback Machine returned an error page with a 200 status."""

    def __init__(self, message: str = "Wayback Machine returned an error response"):
        super().__init__("wayback", message)
