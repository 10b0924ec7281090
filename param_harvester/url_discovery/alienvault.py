#!/usr/bin/env python3
"""
AlienVault OTX source.

OTX pages its url_list endpoint at 500 records per page. A first request
with showNumPages=True reports the total record count; the pages are then
fetched concurrently and merged into one shared set.
"""

import concurrent.futures
import json
import math
from typing import Dict, List, Optional
from urllib.parse import quote
import logging

from ..context import RunContext
from ..errors import SourceResponseError
from ..http_client import HTTPRequester
from .base import SharedURLSet, URLSource, has_query

ALIENVAULT_URL_TEMPLATE = 'https://otx.alienvault.com/api/v1/indicators/{type}/{domain}/url_list'
PAGE_SIZE = 500
DEFAULT_PAGE_WORKERS = 20


def indicator_type(domain: str) -> str:
    """OTX files subdomains under 'hostname' and registered domains under 'domain'."""
    return 'hostname' if len(domain.split('.')) > 2 else 'domain'


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    if total <= 0:
        return 0
    return int(math.ceil(total / float(page_size)))


class AlienVaultSource(URLSource):
    """Queries AlienVault OTX for URLs observed on a domain or hostname."""

    name = 'alienvault'
    display_name = 'Alien Vault'
    requires_api_key = True

    def __init__(self, requester: HTTPRequester, api_key: Optional[str] = None,
                 page_workers: int = DEFAULT_PAGE_WORKERS, logger: Optional[logging.Logger] = None):
        super().__init__(requester, api_key=api_key, logger=logger)
        self.page_workers = max(1, int(page_workers or DEFAULT_PAGE_WORKERS))

    def list_url(self, domain: str) -> str:
        return ALIENVAULT_URL_TEMPLATE.format(type=indicator_type(domain), domain=quote(domain, safe=''))

    def _decode(self, body: str) -> Dict:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise SourceResponseError(self.name, f"error parsing Alien Vault JSON: {e}")
        if not isinstance(data, dict):
            raise SourceResponseError(self.name, "unexpected Alien Vault JSON document")
        return data

    def _fetch(self, ctx: RunContext, domain: str) -> List[str]:
        base_url = self.list_url(domain)
        self.logger.info(f"Fetching Alien Vault page count for {domain}")

        body = self._get(ctx, base_url, params={'limit': PAGE_SIZE, 'showNumPages': 'True'})
        data = self._decode(body)

        try:
            total = int(data.get('full_size') or 0)
        except (TypeError, ValueError):
            raise SourceResponseError(self.name, f"invalid full_size value: {data.get('full_size')!r}")

        if total <= 0:
            self.logger.info(f"Alien Vault returned zero results for {domain}")
            return []

        pages = page_count(total)
        self.logger.info(f"Alien Vault reports {total} results over {pages} pages for {domain}")

        found = SharedURLSet()

        def process(page: int):
            found.update(self._fetch_page(ctx, base_url, page, domain))

        with concurrent.futures.ThreadPoolExecutor(max_workers=min(pages, self.page_workers)) as executor:
            futures = {executor.submit(process, page): page for page in range(1, pages + 1)}

            for future in concurrent.futures.as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    self.logger.warning(f"Error processing Alien Vault page {futures[future]} for {domain}: {e}")

        return list(found.snapshot())

    def _fetch_page(self, ctx: RunContext, base_url: str, page: int, domain: str) -> List[str]:
        self.logger.debug(f"Processing Alien Vault page {page} for {domain}")
        body = self._get(ctx, base_url, params={'limit': PAGE_SIZE, 'page': page})

        if not body.strip():
            self.logger.warning(f"Alien Vault page {page} for {domain} returned an empty response")
            return []

        data = self._decode(body)
        target = domain.lower()

        urls = []
        for entry in data.get('url_list') or []:
            if not isinstance(entry, dict):
                continue
            url = entry.get('url')
            if not isinstance(url, str) or not url:
                continue
            if has_query(url) and target in url.lower():
                urls.append(url)
        return urls
