#!/usr/bin/env python3
"""
Wayback Machine CDX source.

The CDX endpoint can return very large listings, so this source runs in its
own nested context with a two minute budget (still bounded by the run
deadline) instead of the default per-request timeout.
"""

import re
from typing import List

from ..context import RunContext
from ..errors import WaybackError
from .base import URLSource, has_query

WAYBACK_CDX_URL = 'https://web.archive.org/cdx/search/cdx'
WAYBACK_TIMEOUT = 120.0
WAYBACK_FIELDS = 'timestamp,original,mimetype,statuscode,digest'

ERROR_PHRASES = (
    'wayback machine has not archived that url',
    'snapshot cannot be displayed due to an internal error',
)

# Archived URLs sometimes keep an encoded trailing newline plus junk after it
_ENCODED_NEWLINE = re.compile(r'%0a', re.IGNORECASE)


def fix_archive_url(url: str) -> str:
    """Cut an archived URL at the first encoded newline."""
    match = _ENCODED_NEWLINE.search(url)
    if match and match.start() > 0:
        return url[:match.start()]
    return url


def parse_cdx_lines(body: str) -> List[str]:
    """Extract unique parameterized URLs from a CDX text listing."""
    urls = set()
    for line in body.splitlines():
        fields = line.split()
        if len(fields) < 2:
            continue
        original = fix_archive_url(fields[1])
        if has_query(original):
            urls.add(original)
    return list(urls)


class WaybackSource(URLSource):
    """Queries the Wayback Machine CDX API for archived URLs."""

    name = 'wayback'
    display_name = 'Wayback Machine'

    def _fetch(self, ctx: RunContext, domain: str) -> List[str]:
        params = {
            'url': f'{domain}/*',
            'fl': WAYBACK_FIELDS,
        }
        self.logger.info(f"Fetching from Wayback Machine for {domain}")

        scope = ctx.child(WAYBACK_TIMEOUT)
        body = self._get(scope, WAYBACK_CDX_URL, params=params, timeout=WAYBACK_TIMEOUT)

        lowered = body.lower()
        if any(phrase in lowered for phrase in ERROR_PHRASES):
            raise WaybackError()

        urls = parse_cdx_lines(body)
        self.logger.debug(f"Wayback Machine returned {len(urls)} parameterized URLs for {domain}")
        return urls
