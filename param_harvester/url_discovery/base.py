#!/usr/bin/env python3
"""
Common plumbing for the URL data sources.

Every source shares the same policy:
- a missing API key (for sources that need one) is a silent skip
- HTTP 429 raises RateLimitError
- any other non-200 status raises SourceResponseError
- only URLs carrying a query string are kept
"""

import threading
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from ..context import RunContext
from ..errors import RateLimitError, SourceResponseError
from ..http_client import HTTPRequester


def has_query(url: str) -> bool:
    return '?' in url


class SharedURLSet:
    """Set of URL strings that several worker threads can add to."""

    def __init__(self):
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    def update(self, urls: Iterable[str]):
        with self._lock:
            self._urls.update(urls)

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._urls)

    def __len__(self) -> int:
        with self._lock:
            return len(self._urls)


class URLSource:
    """Base class for a single external URL data source."""

    name = 'base'
    display_name = 'Base'
    requires_api_key = False

    def __init__(self, requester: HTTPRequester, api_key: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the source.

        Args:
            requester: Shared HTTP requester
            api_key: API key for sources that need one
            logger: Logger instance
        """
        self.requester = requester
        self.api_key = api_key or None
        self.logger = logger or logging.getLogger(__name__)

    def fetch_urls(self, ctx: RunContext, domain: str) -> List[str]:
        """
        Fetch candidate URLs with query parameters for a domain.

        Returns an empty list when the source needs an API key and none is
        configured. Raises SourceError subclasses on failure.
        """
        if self.requires_api_key and not self.api_key:
            self.logger.warning(
                f"No {self.display_name} API key provided. Skipping {self.display_name} lookup for {domain}"
            )
            return []
        return self._fetch(ctx, domain)

    def _fetch(self, ctx: RunContext, domain: str) -> List[str]:
        raise NotImplementedError

    def _request(self, ctx: RunContext, url: str, params: Optional[Dict] = None,
                 timeout: Optional[float] = None) -> Tuple[int, str]:
        return self.requester.fetch(ctx, url, params=params, timeout=timeout)

    def _check_status(self, status_code: int):
        if status_code == 429:
            raise RateLimitError(self.name)
        if status_code != 200:
            raise SourceResponseError(
                self.name,
                f"{self.display_name} returned status code {status_code}",
                status_code=status_code
            )

    def _get(self, ctx: RunContext, url: str, params: Optional[Dict] = None,
             timeout: Optional[float] = None) -> str:
        """Request a URL and return its body, applying the shared status policy."""
        status_code, body = self._request(ctx, url, params=params, timeout=timeout)
        self._check_status(status_code)
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
