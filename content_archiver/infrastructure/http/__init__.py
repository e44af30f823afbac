"""
Outbound HTTP fetching of archive sources.
"""

from .fetcher import FetcherConfig, HttpContentFetcher, create_content_fetcher

__all__ = ["FetcherConfig", "HttpContentFetcher", "create_content_fetcher"]
