# site_crawl/__init__.py
"""
SiteCrawl package initializer.
Defines package version; the CLI lives in :mod:`site_crawl.cli`.
"""
__version__ = "0.1.0"
