#!/usr/bin/env python3
"""
URL Cleaner Module

Normalizes harvested URLs for parameter analysis:
- Default port removal (http:80, https:443)
- Static-asset filtering by path extension
- Query value replacement with a placeholder token
- Deduplication of the cleaned result
"""

import threading
from typing import Dict, Iterable, List, Optional, Set, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
import logging

DEFAULT_PLACEHOLDER = 'PLACEHOLDER'

DEFAULT_EXCLUDED_EXTENSIONS = frozenset({
    # Images
    '.jpg', '.jpeg', '.png', '.gif', '.svg', '.webp',
    # Documents and data
    '.pdf', '.json', '.txt',
    # Styles and scripts
    '.css', '.js',
    # Fonts
    '.woff', '.woff2', '.eot', '.ttf', '.otf',
    # Video
    '.mp4',
})

DEFAULT_PORTS = {'http': 80, 'https': 443}


def parse_extensions(value: Union[str, Iterable[str], None]) -> Set[str]:
    """
    Normalize an extension list from config.

    Accepts a comma separated string or a list; entries are lower-cased and
    given a leading dot ("JPG" -> ".jpg").
    """
    if value is None:
        return set()
    if isinstance(value, str):
        items = value.split(',')
    else:
        items = list(value)

    extensions = set()
    for item in items:
        ext = str(item).strip().lower()
        if not ext:
            continue
        if not ext.startswith('.'):
            ext = '.' + ext
        extensions.add(ext)
    return extensions


def path_extension(path: str) -> str:
    """Lower-cased extension of the last path segment, including the dot."""
    segment = path.rsplit('/', 1)[-1]
    idx = segment.rfind('.')
    return segment[idx:].lower() if idx >= 0 else ''


def _strip_default_port(parts) -> str:
    netloc = parts.netloc
    port = parts.port
    if port is not None and DEFAULT_PORTS.get(parts.scheme.lower()) == port:
        netloc = netloc.rsplit(':', 1)[0]
    return netloc


def replace_query_values(query: str, placeholder: str) -> str:
    """Replace every parameter value with the placeholder, keys sorted and kept once."""
    keys = {key for key, _ in parse_qsl(query, keep_blank_values=True)}
    return urlencode([(key, placeholder) for key in sorted(keys)])


def sanitize_url(url: str, extensions: Iterable[str], placeholder: str) -> Optional[str]:
    """
    Clean a single URL.

    Returns None when the URL points at an excluded file type. A URL that
    cannot be parsed is returned as-is.
    """
    try:
        parts = urlsplit(url)
        netloc = _strip_default_port(parts)
    except ValueError:
        return url

    if path_extension(parts.path) in extensions:
        return None

    query = replace_query_values(parts.query, placeholder) if parts.query else parts.query
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


def sanitize(urls: Iterable[str], extensions: Optional[Iterable[str]] = None,
             placeholder: str = DEFAULT_PLACEHOLDER) -> List[str]:
    """
    Clean and deduplicate a collection of URLs.

    Args:
        urls: Raw URLs
        extensions: Excluded path extensions (defaults to DEFAULT_EXCLUDED_EXTENSIONS)
        placeholder: Token substituted for every query value

    Returns:
        Unique cleaned URLs in no particular order
    """
    excluded = set(DEFAULT_EXCLUDED_EXTENSIONS if extensions is None else extensions)
    cleaned = set()
    for url in urls:
        result = sanitize_url(url, excluded, placeholder)
        if result is not None:
            cleaned.add(result)
    return list(cleaned)


class URLCleaner:
    """Applies sanitize() with configured extensions and keeps running statistics."""

    def __init__(self, config: Optional[Dict] = None, placeholder: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize URL Cleaner.

        Args:
            config: Configuration dictionary
            placeholder: Token substituted for query values
            logger: Logger instance
        """
        self.config = config or {}
        self.logger = logger or logging.getLogger(__name__)
        if placeholder is None:
            placeholder = self.config.get('placeholder')
        # An empty placeholder is honoured
        self.placeholder = DEFAULT_PLACEHOLDER if placeholder is None else placeholder
        self.exclude_extensions = self._parse_exclude_extensions()

        self.stats = {
            'total_processed': 0,
            'total_kept': 0,
        }
        self._stats_lock = threading.Lock()

    def _parse_exclude_extensions(self) -> Set[str]:
        """Default excluded extensions plus any configured ones."""
        custom = parse_extensions(self.config.get('exclude_extensions'))
        return set(DEFAULT_EXCLUDED_EXTENSIONS).union(custom)

    def clean(self, urls: Iterable[str]) -> List[str]:
        urls = list(urls)
        cleaned = sanitize(urls, self.exclude_extensions, self.placeholder)

        with self._stats_lock:
            self.stats['total_processed'] += len(urls)
            self.stats['total_kept'] += len(cleaned)
        self.logger.debug(f"Cleaning complete: {len(urls)} -> {len(cleaned)} URLs")
        return cleaned
