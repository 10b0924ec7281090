"""Shared fakes for the harvester tests. Nothing here touches the network."""

import threading

import pytest

from param_harvester.context import RunContext


class FakeRequester:
    """
    Stands in for HTTPRequester.

    ``handler`` receives (url, params) and returns (status, body) or raises.
    Every call is recorded in ``calls``.
    """

    def __init__(self, handler):
        self.handler = handler
        self.calls = []
        self.stats = {'requests_made': 0, 'failed': 0, 'timeouts': 0}
        self._lock = threading.Lock()
        self.closed = False

    def fetch(self, ctx, url, params=None, timeout=None):
        with self._lock:
            self.calls.append({'url': url, 'params': dict(params or {}), 'timeout': timeout})
            self.stats['requests_made'] += 1
        ctx.check()
        return self.handler(url, params or {})

    def close(self):
        self.closed = True


class StaticSource:
    """Data source returning a fixed list, or raising a fixed error."""

    requires_api_key = False

    def __init__(self, name, urls=None, error=None):
        self.name = name
        self.display_name = name.title()
        self.urls = list(urls or [])
        self.error = error
        self.calls = []

    def fetch_urls(self, ctx, domain):
        self.calls.append(domain)
        if self.error is not None:
            raise self.error
        return list(self.urls)


@pytest.fixture
def ctx():
    return RunContext(timeout=30)


@pytest.fixture
def make_requester():
    def factory(handler):
        return FakeRequester(handler)
    return factory


@pytest.fixture
def make_source():
    def factory(name, urls=None, error=None):
        return StaticSource(name, urls=urls, error=error)
    return factory
