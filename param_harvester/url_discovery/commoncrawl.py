#!/usr/bin/env python3
"""
Common Crawl index source.

The index answers with one JSON record per line. Malformed lines are skipped
with a warning; a "no captures found" answer means the domain simply has no
records and is not treated as a failure.
"""

import json
from typing import List, Optional
import logging

from ..context import RunContext
from ..http_client import HTTPRequester
from .base import URLSource, has_query

COMMONCRAWL_BASE_URL = 'http://index.commoncrawl.org'
DEFAULT_INDEX = 'CC-MAIN-2019-51-index'
COMMONCRAWL_FIELDS = 'timestamp,url,mime,status,digest'
COMMONCRAWL_FILTERS = ['!~mime:(warc/revisit)', '!~status:(404)']

NO_CAPTURES = 'no captures found'


def is_no_captures(line: str) -> bool:
    return NO_CAPTURES in line.lower()


class CommonCrawlSource(URLSource):
    """Queries a Common Crawl CDX index for captured URLs."""

    name = 'commoncrawl'
    display_name = 'Common Crawl'

    def __init__(self, requester: HTTPRequester, index: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        super().__init__(requester, logger=logger)
        self.index = index or DEFAULT_INDEX

    @property
    def index_url(self) -> str:
        return f"{COMMONCRAWL_BASE_URL}/{self.index}"

    def _fetch(self, ctx: RunContext, domain: str) -> List[str]:
        params = {
            'output': 'json',
            'fl': COMMONCRAWL_FIELDS,
            'url': f'{domain}/*',
            'filter': COMMONCRAWL_FILTERS,
        }
        self.logger.info(f"Fetching from Common Crawl ({self.index}) for {domain}")

        status_code, body = self._request(ctx, self.index_url, params=params)
        # The index reports an empty result as a 404 with this message
        if status_code == 404 and is_no_captures(body):
            self.logger.info(f"No captures found for {domain}")
            return []
        self._check_status(status_code)

        return self._parse_lines(body, domain)

    def _parse_lines(self, body: str, domain: str) -> List[str]:
        urls = []
        for line in body.splitlines():
            line = line.strip()
            if not line:
                continue

            if is_no_captures(line):
                self.logger.info(f"No captures found for {domain}")
                break

            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                self.logger.warning(f"Failed to parse JSON from Common Crawl line: {e}")
                continue

            if not isinstance(entry, dict):
                continue
            url = entry.get('url')
            if isinstance(url, str) and has_query(url):
                urls.append(url)

        return list(dict.fromkeys(urls))
