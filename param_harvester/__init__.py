"""
param_harvester

Harvests parameterized URLs for target domains from the Wayback Machine,
Common Crawl, VirusTotal and AlienVault OTX, then cleans them for parameter
analysis.
"""

__version__ = '1.0.0'
