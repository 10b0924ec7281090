"""Tests for the individual URL data sources, driven through a fake requester."""

import json

import pytest

from param_harvester.errors import (
    DeadlineExceeded,
    RateLimitError,
    SourceResponseError,
    WaybackError,
)
from param_harvester.url_discovery.alienvault import (
    AlienVaultSource,
    indicator_type,
    page_count,
)
from param_harvester.url_discovery.commoncrawl import (
    COMMONCRAWL_FILTERS,
    CommonCrawlSource,
)
from param_harvester.url_discovery.virustotal import (
    VIRUSTOTAL_REPORT_URL,
    VirusTotalSource,
    iter_report_urls,
)
from param_harvester.url_discovery.wayback import (
    WAYBACK_TIMEOUT,
    WaybackSource,
    fix_archive_url,
)


# Wayback Machine

def test_wayback_parses_cdx_and_cuts_encoded_newline(ctx, make_requester):
    body = (
        "20200101000000 http://x.com/a?b=1%0Ajunk text/html 200 ABC\n"
        "20200101000000 http://x.com/plain text/html 200 DEF\n"
    )
    requester = make_requester(lambda url, params: (200, body))

    urls = WaybackSource(requester).fetch_urls(ctx, 'x.com')

    assert urls == ['http://x.com/a?b=1']
    call = requester.calls[0]
    assert call['params']['url'] == 'x.com/*'
    assert call['timeout'] == WAYBACK_TIMEOUT


def test_wayback_ignores_short_lines_and_deduplicates(ctx, make_requester):
    body = (
        "\n"
        "lonely\n"
        "1 http://x.com/q?id=1 text/html 200 A\n"
        "2 http://x.com/q?id=1 text/html 200 B\n"
    )
    requester = make_requester(lambda url, params: (200, body))

    assert WaybackSource(requester).fetch_urls(ctx, 'x.com') == ['http://x.com/q?id=1']


def test_fix_archive_url_keeps_leading_match():
    assert fix_archive_url('%0Ahttp://x.com/?a=1') == '%0Ahttp://x.com/?a=1'
    assert fix_archive_url('http://x.com/?a=1%0a%0a') == 'http://x.com/?a=1'
    assert fix_archive_url('http://x.com/?a=1') == 'http://x.com/?a=1'


@pytest.mark.parametrize('phrase', [
    'Wayback Machine has not archived that URL.',
    'This snapshot cannot be displayed due to an internal error',
])
def test_wayback_error_page_is_an_error(ctx, make_requester, phrase):
    requester = make_requester(lambda url, params: (200, f"<html>{phrase}</html>"))

    with pytest.raises(WaybackError):
        WaybackSource(requester).fetch_urls(ctx, 'x.com')


def test_wayback_rate_limit(ctx, make_requester):
    requester = make_requester(lambda url, params: (429, ''))

    with pytest.raises(RateLimitError) as exc_info:
        WaybackSource(requester).fetch_urls(ctx, 'x.com')
    assert exc_info.value.source == 'wayback'


def test_wayback_bad_status(ctx, make_requester):
    requester = make_requester(lambda url, params: (503, 'down'))

    with pytest.raises(SourceResponseError) as exc_info:
        WaybackSource(requester).fetch_urls(ctx, 'x.com')
    assert exc_info.value.status_code == 503
    assert '503' in str(exc_info.value)


# Common Crawl

def test_commoncrawl_no_captures_first_line_is_empty(ctx, make_requester):
    body = 'No Captures found for: x.com/*\n'
    requester = make_requester(lambda url, params: (200, body))

    assert CommonCrawlSource(requester).fetch_urls(ctx, 'x.com') == []


def test_commoncrawl_no_captures_404_is_empty(ctx, make_requester):
    requester = make_requester(lambda url, params: (404, '{"message": "No Captures found for: x.com/*"}'))

    assert CommonCrawlSource(requester).fetch_urls(ctx, 'x.com') == []


def test_commoncrawl_skips_malformed_lines(ctx, make_requester):
    body = "\n".join([
        json.dumps({'url': 'http://x.com/a?id=1'}),
        '{not json',
        json.dumps({'url': 'http://x.com/static'}),
        json.dumps(['http://x.com/list?x=1']),
        json.dumps({'url': 'http://x.com/a?id=1'}),
        json.dumps({'url': 'http://x.com/b?q=2'}),
    ])
    requester = make_requester(lambda url, params: (200, body))

    urls = CommonCrawlSource(requester).fetch_urls(ctx, 'x.com')

    assert urls == ['http://x.com/a?id=1', 'http://x.com/b?q=2']


def test_commoncrawl_request_shape(ctx, make_requester):
    requester = make_requester(lambda url, params: (200, ''))

    CommonCrawlSource(requester, index='CC-MAIN-2024-10-index').fetch_urls(ctx, 'x.com')

    call = requester.calls[0]
    assert call['url'] == 'http://index.commoncrawl.org/CC-MAIN-2024-10-index'
    assert call['params']['output'] == 'json'
    assert call['params']['url'] == 'x.com/*'
    assert call['params']['filter'] == COMMONCRAWL_FILTERS


def test_commoncrawl_other_404_is_an_error(ctx, make_requester):
    requester = make_requester(lambda url, params: (404, 'index not found'))

    with pytest.raises(SourceResponseError):
        CommonCrawlSource(requester).fetch_urls(ctx, 'x.com')


# AlienVault OTX

def test_indicator_type():
    assert indicator_type('example.com') == 'domain'
    assert indicator_type('api.example.com') == 'hostname'


def test_page_count():
    assert page_count(0) == 0
    assert page_count(1) == 1
    assert page_count(500) == 1
    assert page_count(501) == 2


def _alienvault_handler(total, pages):
    def handler(url, params):
        if params.get('showNumPages'):
            return 200, json.dumps({'full_size': total})
        return 200, json.dumps({'url_list': [{'url': u} for u in pages.get(params['page'], [])]})
    return handler


def test_alienvault_fetches_every_page(ctx, make_requester):
    pages = {
        1: ['http://sub.x.com/a?id=1', 'http://sub.x.com/plain', 'http://other.com/a?id=1'],
        2: ['http://SUB.X.COM/b?q=1', 'http://sub.x.com/a?id=1'],
    }
    requester = make_requester(_alienvault_handler(700, pages))

    urls = AlienVaultSource(requester, api_key='k').fetch_urls(ctx, 'sub.x.com')

    assert sorted(urls) == ['http://SUB.X.COM/b?q=1', 'http://sub.x.com/a?id=1']
    assert requester.calls[0]['url'] == 'https://otx.alienvault.com/api/v1/indicators/hostname/sub.x.com/url_list'
    page_params = sorted(c['params']['page'] for c in requester.calls if 'page' in c['params'])
    assert page_params == [1, 2]


def test_alienvault_zero_results_stops_after_count(ctx, make_requester):
    requester = make_requester(_alienvault_handler(0, {}))

    assert AlienVaultSource(requester, api_key='k').fetch_urls(ctx, 'x.com') == []
    assert len(requester.calls) == 1


def test_alienvault_failed_page_is_skipped(ctx, make_requester):
    def handler(url, params):
        if params.get('showNumPages'):
            return 200, json.dumps({'full_size': 1000})
        if params['page'] == 1:
            return 500, 'error'
        return 200, json.dumps({'url_list': [{'url': 'http://x.com/ok?id=1'}]})
    requester = make_requester(handler)

    assert AlienVaultSource(requester, api_key='k').fetch_urls(ctx, 'x.com') == ['http://x.com/ok?id=1']


def test_alienvault_bad_count_json(ctx, make_requester):
    requester = make_requester(lambda url, params: (200, 'not json'))

    with pytest.raises(SourceResponseError):
        AlienVaultSource(requester, api_key='k').fetch_urls(ctx, 'x.com')


def test_alienvault_without_key_is_skipped(ctx, make_requester):
    requester = make_requester(lambda url, params: (200, '{}'))

    assert AlienVaultSource(requester).fetch_urls(ctx, 'x.com') == []
    assert requester.calls == []


# VirusTotal

def test_virustotal_reads_both_collections(ctx, make_requester):
    report = {
        'detected_urls': [
            {'url': 'http://x.com/a?id=1', 'positives': 2},
            {'url': 'http://x.com/nothing'},
            'garbage',
        ],
        'undetected_urls': [
            ['http://x.com/b?q=1', 'sha', 0, 70, '2020-01-01'],
            [],
            [42],
        ],
    }
    requester = make_requester(lambda url, params: (200, json.dumps(report)))

    urls = VirusTotalSource(requester, api_key='secret').fetch_urls(ctx, 'x.com')

    assert sorted(urls) == ['http://x.com/a?id=1', 'http://x.com/b?q=1']
    call = requester.calls[0]
    assert call['url'] == VIRUSTOTAL_REPORT_URL
    assert call['params'] == {'apikey': 'secret', 'domain': 'x.com'}


def test_virustotal_missing_collections():
    assert list(iter_report_urls({'response_code': 0})) == []


def test_virustotal_without_key_is_skipped(ctx, make_requester):
    requester = make_requester(lambda url, params: (200, '{}'))

    assert VirusTotalSource(requester, api_key='').fetch_urls(ctx, 'x.com') == []
    assert requester.calls == []


def test_virustotal_rate_limit(ctx, make_requester):
    requester = make_requester(lambda url, params: (429, ''))

    with pytest.raises(RateLimitError):
        VirusTotalSource(requester, api_key='k').fetch_urls(ctx, 'x.com')


def test_source_respects_expired_context(make_requester):
    from param_harvester.context import RunContext

    expired = RunContext(timeout=0)
    requester = make_requester(lambda url, params: (200, ''))

    with pytest.raises(DeadlineExceeded):
        WaybackSource(requester).fetch_urls(expired, 'x.com')


def test_alienvault_negative_count_is_empty(ctx, make_requester):
    requester = make_requester(_alienvault_handler(-3, {}))

    assert AlienVaultSource(requester, api_key='k').fetch_urls(ctx, 'x.com') == []
    assert len(requester.calls) == 1
