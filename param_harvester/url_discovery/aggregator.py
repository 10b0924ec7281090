#!/usr/bin/env python3
"""
URL Aggregator

Runs every configured data source for a domain in parallel and merges the
results into one deduplicated set. A failing source (network error, bad
status, rate limit, malformed response, elapsed deadline) is logged and
recorded, never propagated: the merged set simply lacks its URLs.
"""

import concurrent.futures
import threading
import time
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Set
import logging

from ..context import RunContext
from ..errors import RateLimitError
from .base import SharedURLSet, URLSource


class URLAggregator:
    """Fans a domain out to all data sources and unions their results."""

    def __init__(self, sources: List[URLSource], logger: Optional[logging.Logger] = None,
                 max_workers: Optional[int] = None):
        """
        Initialize the aggregator.

        Args:
            sources: Data sources to query for every domain
            logger: Logger instance
            max_workers: Thread count per domain (defaults to one per source)
        """
        self.sources = list(sources)
        self.logger = logger or logging.getLogger(__name__)
        self.max_workers = max_workers or max(1, len(self.sources))

        # Written from concurrent domain workers
        self._lock = threading.Lock()
        self.errors: List[Dict] = []
        self.discovery_stats: Dict[str, Dict[str, Dict]] = defaultdict(dict)

    def aggregate(self, ctx: RunContext, domain: str) -> Set[str]:
        """
        Query all sources for a domain.

        Args:
            ctx: Run context shared by the whole run
            domain: Target domain

        Returns:
            Union of the URLs returned by every source that succeeded
        """
        self.logger.info(f"Querying {len(self.sources)} sources for {domain}")
        merged = SharedURLSet()

        if not self.sources:
            return merged.snapshot()

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._run_source, source, ctx, domain): source
                for source in self.sources
            }

            for future in concurrent.futures.as_completed(futures):
                source = futures[future]
                try:
                    merged.update(future.result())
                except RateLimitError as e:
                    self._record_error(domain, source, e, rate_limited=True)
                except Exception as e:
                    self._record_error(domain, source, e)

        urls = merged.snapshot()
        self.logger.info(f"Collected {len(urls)} unique URLs for {domain}")
        return urls

    def _run_source(self, source: URLSource, ctx: RunContext, domain: str) -> List[str]:
        start_time = time.time()
        urls = source.fetch_urls(ctx, domain)
        duration = time.time() - start_time

        self.logger.debug(f"{source.display_name} returned {len(urls)} URLs for {domain} in {duration:.2f}s")
        with self._lock:
            self.discovery_stats[domain][source.name] = {
                'urls': len(urls),
                'duration': duration,
            }
        return urls

    def _record_error(self, domain: str, source: URLSource, error: Exception, rate_limited: bool = False):
        if rate_limited:
            self.logger.warning(f"{source.display_name} rate limited the lookup for {domain}: {error}")
        else:
            self.logger.warning(f"An API error occurred ({source.display_name}, {domain}): {error}")

        with self._lock:
            self.errors.append({
                'domain': domain,
                'source': source.name,
                'error': str(error),
                'rate_limited': rate_limited,
                'timestamp': datetime.now().isoformat()
            })

    def get_statistics(self) -> Dict:
        """Summarise per-source results and failures."""
        with self._lock:
            per_source = defaultdict(lambda: {'urls': 0, 'domains': 0})
            for stats in self.discovery_stats.values():
                for name, entry in stats.items():
                    per_source[name]['urls'] += entry['urls']
                    per_source[name]['domains'] += 1

            return {
                'domains_with_results': len(self.discovery_stats),
                'sources': [source.name for source in self.sources],
                'per_source': dict(per_source),
                'errors_count': len(self.errors),
                'rate_limited': sum(1 for error in self.errors if error['rate_limited']),
            }
