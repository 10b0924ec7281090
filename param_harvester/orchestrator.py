#!/usr/bin/env python3
"""
Harvest Orchestrator

Drives one harvesting run over a list of domains:
1. A single run deadline shared by every request
2. At most N domains in flight, gated by a counting semaphore
3. Per domain: aggregate all sources, then clean the merged URLs
4. Results collected into one domain -> URLs map under a lock
"""

import concurrent.futures
import os
import threading
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional
import logging

from .context import RunContext
from .http_client import HTTPRequester
from .url_discovery import URLAggregator, URLCleaner, build_sources

DEFAULT_CONCURRENCY = 5
DEFAULT_RUN_TIMEOUT = 300.0


class HarvestRunner:
    """Runs aggregation and cleaning for many domains concurrently."""

    def __init__(self, config: Dict, requester: Optional[HTTPRequester] = None,
                 aggregator: Optional[URLAggregator] = None, cleaner: Optional[URLCleaner] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the runner.

        Args:
            config: Validated configuration dictionary
            requester: Shared HTTP requester (created from config when omitted)
            aggregator: Source aggregator (built from config when omitted)
            cleaner: URL cleaner (built from config when omitted)
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self._owns_requester = requester is None
        self.requester = requester or HTTPRequester(config, logger=self.logger)
        self.aggregator = aggregator or URLAggregator(
            build_sources(self.requester, config, logger=self.logger),
            logger=self.logger
        )
        self.cleaner = cleaner or URLCleaner(config, logger=self.logger)

        self.run_id = f"harvest_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{os.getpid()}"
        self._ctx: Optional[RunContext] = None

        self._results_lock = threading.Lock()
        self.results: Dict[str, List[str]] = {}

    def run(self, domains: Iterable[str], concurrency: Optional[int] = None,
            time_budget: Optional[float] = None) -> Dict[str, List[str]]:
        """
        Harvest parameterized URLs for every domain.

        Args:
            domains: Target domains (duplicates are processed once)
            concurrency: Maximum domains processed at the same time
            time_budget: Seconds before all outstanding requests are abandoned

        Returns:
            Mapping of domain to cleaned URLs
        """
        targets = list(dict.fromkeys(d.strip() for d in domains if d and d.strip()))
        concurrency = max(1, int(concurrency or self.config.get('concurrency') or DEFAULT_CONCURRENCY))
        if time_budget is None:
            time_budget = float(self.config.get('run_timeout') or DEFAULT_RUN_TIMEOUT)

        self.results = {}
        if not targets:
            return {}

        self.logger.info(
            f"Starting run {self.run_id}: {len(targets)} domains, "
            f"concurrency {concurrency}, time budget {time_budget:.0f}s"
        )
        start_time = time.time()

        ctx = RunContext(timeout=time_budget)
        self._ctx = ctx
        slots = threading.BoundedSemaphore(concurrency)

        with concurrent.futures.ThreadPoolExecutor(max_workers=concurrency) as executor:
            futures = {}
            try:
                for domain in targets:
                    slots.acquire()
                    try:
                        future = executor.submit(self._process_domain, ctx, domain)
                    except BaseException:
                        slots.release()
                        raise
                    future.add_done_callback(lambda _: slots.release())
                    futures[future] = domain

                for future in concurrent.futures.as_completed(futures):
                    domain = futures[future]
                    try:
                        future.result()
                    except Exception as e:
                        self.logger.error(f"Error processing {domain}: {e}")
                        self._store(domain, [])
            except BaseException:
                # Interrupted: abort outstanding requests before the pool joins
                ctx.cancel()
                raise

        if ctx.expired:
            self.logger.warning(f"Run deadline of {time_budget:.0f}s elapsed; results may be partial")

        duration = time.time() - start_time
        total = sum(len(urls) for urls in self.results.values())
        self.logger.info(f"Run {self.run_id} finished in {duration:.2f}s with {total} URLs")
        return dict(self.results)

    def _process_domain(self, ctx: RunContext, domain: str):
        self.logger.info(f"Processing domain: {domain}")
        urls = self.aggregator.aggregate(ctx, domain)
        cleaned = self.cleaner.clean(urls)
        self.logger.info(f"{domain}: {len(urls)} raw URLs, {len(cleaned)} after cleaning")
        self._store(domain, cleaned)

    def _store(self, domain: str, urls: List[str]):
        with self._results_lock:
            self.results[domain] = urls

    def cancel(self):
        """Abort the run in progress, keeping results gathered so far."""
        if self._ctx is not None:
            self._ctx.cancel()

    def get_statistics(self) -> Dict:
        return {
            'run_id': self.run_id,
            'domains': len(self.results),
            'total_urls': sum(len(urls) for urls in self.results.values()),
            'requests': dict(self.requester.stats),
            'sources': self.aggregator.get_statistics(),
            'cleaning': dict(self.cleaner.stats),
        }

    def close(self):
        """Release the HTTP session if this runner created it."""
        if self._owns_requester:
            self.requester.close()
