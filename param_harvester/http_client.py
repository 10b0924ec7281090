#!/usr/bin/env python3
"""
HTTP Requester

Single entry point for every outbound request made by the data sources:
1. One pooled requests.Session shared by all worker threads
2. Randomized User-Agent per request from the configured pool
3. Socket timeouts bounded by the run context deadline
4. Streaming body reads that abort once the context is done
5. Optional request spacing from the configured rate limit hint
"""

import random
import threading
import time
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse
import logging

import requests
from requests.adapters import HTTPAdapter

from .context import RunContext
from .errors import DeadlineExceeded, SourceRequestError

DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible)'
DEFAULT_REQUEST_TIMEOUT = 15.0
CHUNK_SIZE = 64 * 1024


class RequestThrottle:
    """Spaces requests evenly to honour a requests-per-minute hint."""

    def __init__(self, requests_per_minute: int = 0):
        self.interval = 60.0 / requests_per_minute if requests_per_minute and requests_per_minute > 0 else 0.0
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self, ctx: RunContext):
        """Block until the next request slot, or raise if the context ends first."""
        if not self.interval:
            return
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
        delay = slot - now
        if delay > 0:
            ctx.sleep(delay)


class HTTPRequester:
    """Issues GET requests for the data sources over one shared session."""

    def __init__(self, config: Dict, session: Optional[requests.Session] = None,
                 rng: Optional[random.Random] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize the requester.

        Args:
            config: Configuration dictionary
            session: Pre-built session (a pooled session is created when omitted)
            rng: Random generator used for User-Agent selection
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

        self.user_agents = [ua for ua in (config.get('user_agents') or []) if ua]
        self.timeout = float(config.get('request_timeout') or DEFAULT_REQUEST_TIMEOUT)
        self.verify_ssl = config.get('verify_ssl_certificates', True)
        self.throttle = RequestThrottle(config.get('rate_limit', 0))

        # Seeded once for the requester's lifetime
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

        self._owns_session = session is None
        self.session = session or self._create_session()

        self.stats = {
            'requests_made': 0,
            'failed': 0,
            'timeouts': 0,
        }
        self._stats_lock = threading.Lock()

    def _create_session(self) -> requests.Session:
        """Create a pooled session without automatic retries."""
        session = requests.Session()

        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=10,
            pool_maxsize=50,
            pool_block=False
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'Accept': 'application/json, text/plain, */*',
            'Accept-Language': 'en-US,en;q=0.9',
        })

        proxy_url = self.config.get('proxy_url')
        if proxy_url:
            session.proxies.update({'http': proxy_url, 'https': proxy_url})
            self.logger.info(f"Using proxy: {proxy_url}")

        return session

    def pick_user_agent(self) -> str:
        """Return a random User-Agent from the pool, or the generic default."""
        if not self.user_agents:
            return DEFAULT_USER_AGENT
        with self._rng_lock:
            return self._rng.choice(self.user_agents)

    def _count(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def fetch(self, ctx: RunContext, url: str, params: Optional[Dict] = None,
              timeout: Optional[float] = None) -> Tuple[int, str]:
        """
        Perform one GET request.

        Args:
            ctx: Run context bounding the request
            url: Request URL
            params: Query parameters
            timeout: Socket timeout override in seconds

        Returns:
            Tuple of (status_code, body_text)

        Raises:
            RequestCancelled / DeadlineExceeded: context ended before or during the request
            SourceRequestError: transport failure
        """
        ctx.check()
        self.throttle.wait(ctx)

        socket_timeout = timeout or self.timeout
        remaining = ctx.remaining()
        if remaining is not None:
            socket_timeout = min(socket_timeout, remaining)
        if socket_timeout <= 0:
            raise DeadlineExceeded(f"no time left to request {url}")

        self._count('requests_made')
        self.logger.debug(f"GET {url}")

        try:
            response = self.session.get(
                url,
                params=params,
                headers={'User-Agent': self.pick_user_agent()},
                timeout=socket_timeout,
                verify=self.verify_ssl,
                stream=True
            )
        except requests.exceptions.Timeout as e:
            self._count('timeouts')
            if ctx.done():
                raise DeadlineExceeded(f"deadline exceeded requesting {url}") from e
            raise SourceRequestError(_host_of(url), f"timeout requesting {url}") from e
        except requests.exceptions.RequestException as e:
            self._count('failed')
            raise SourceRequestError(_host_of(url), _redact(f"request to {url} failed: {e}", params)) from e

        try:
            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                ctx.check()
                if chunk:
                    chunks.append(chunk)
        except requests.exceptions.RequestException as e:
            self._count('failed')
            if ctx.done():
                raise DeadlineExceeded(f"deadline exceeded reading {url}") from e
            raise SourceRequestError(_host_of(url), _redact(f"error reading response from {url}: {e}", params)) from e
        finally:
            response.close()

        body = b''.join(chunks).decode('utf-8', errors='replace')
        self.logger.debug(f"Response: {response.status_code} for {url} ({len(body)} chars)")
        return response.status_code, body

    def close(self):
        """Close the session if this requester created it."""
        if self._owns_session:
            self.session.close()


def _host_of(url: str) -> str:
    return urlparse(url).netloc or url


def _redact(message: str, params: Optional[Dict]) -> str:
    """Hide API key values that requests may echo back in error messages."""
    for key, value in (params or {}).items():
        if 'key' in key.lower() and isinstance(value, str) and value:
            message = message.replace(value, '***')
    return message
