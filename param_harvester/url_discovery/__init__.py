"""
URL Discovery Module

This module queries public URL archives and threat-intelligence services
for URLs with query parameters belonging to target domains, merges the
results and cleans them for parameter analysis.
"""

from typing import Dict, List, Optional
import logging

from ..http_client import HTTPRequester
from .aggregator import URLAggregator
from .alienvault import AlienVaultSource
from .base import URLSource
from .commoncrawl import CommonCrawlSource
from .url_cleaner import URLCleaner, sanitize
from .virustotal import VirusTotalSource
from .wayback import WaybackSource

__all__ = [
    'URLAggregator',
    'URLCleaner',
    'URLSource',
    'WaybackSource',
    'CommonCrawlSource',
    'AlienVaultSource',
    'VirusTotalSource',
    'build_sources',
    'sanitize',
]

__version__ = '1.0.0'


def build_sources(requester: HTTPRequester, config: Dict,
                  logger: Optional[logging.Logger] = None) -> List[URLSource]:
    """Create the data sources enabled in the configuration."""
    sources: List[URLSource] = []

    if config.get('enable_wayback', True):
        sources.append(WaybackSource(requester, logger=logger))

    if config.get('enable_commoncrawl', True):
        sources.append(CommonCrawlSource(requester, index=config.get('commoncrawl_index'), logger=logger))

    if config.get('enable_virustotal', True):
        sources.append(VirusTotalSource(requester, api_key=config.get('virustotal_api_key'), logger=logger))

    if config.get('enable_alienvault', True):
        sources.append(AlienVaultSource(
            requester,
            api_key=config.get('alienvault_api_key'),
            page_workers=config.get('alienvault_page_workers'),
            logger=logger
        ))

    return sources
