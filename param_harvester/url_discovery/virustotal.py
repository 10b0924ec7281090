#!/usr/bin/env python3
"""
VirusTotal domain report source (API v2).

The report lists URLs in two shapes: detected_urls is a list of objects with
a "url" field, undetected_urls is a list of loosely typed arrays whose first
element is the URL. Both are flattened here so nothing outside this module
sees the difference.
"""

import json
from typing import Any, Dict, Iterator, List

from ..context import RunContext
from ..errors import SourceResponseError
from .base import URLSource, has_query

VIRUSTOTAL_REPORT_URL = 'https://www.virustotal.com/vtapi/v2/domain/report'


def iter_report_urls(report: Dict[str, Any]) -> Iterator[str]:
    """Yield every URL string found in a domain report."""
    for entry in report.get('detected_urls') or []:
        if isinstance(entry, dict):
            url = entry.get('url')
            if isinstance(url, str) and url:
                yield url

    for entry in report.get('undetected_urls') or []:
        if isinstance(entry, (list, tuple)) and entry:
            url = entry[0]
            if isinstance(url, str) and url:
                yield url


class VirusTotalSource(URLSource):
    """Queries the VirusTotal domain report for known URLs."""

    name = 'virustotal'
    display_name = 'VirusTotal'
    requires_api_key = True

    def _fetch(self, ctx: RunContext, domain: str) -> List[str]:
        self.logger.info(f"Fetching from VirusTotal for domain: {domain}")

        body = self._get(ctx, VIRUSTOTAL_REPORT_URL, params={'apikey': self.api_key, 'domain': domain})

        try:
            report = json.loads(body)
        except json.JSONDecodeError as e:
            raise SourceResponseError(self.name, f"error parsing VirusTotal JSON: {e}")
        if not isinstance(report, dict):
            raise SourceResponseError(self.name, "unexpected VirusTotal JSON document")

        urls = {url for url in iter_report_urls(report) if has_query(url)}
        return list(urls)
