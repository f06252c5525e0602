# Crawler module
from tour_crawler.crawler.frontier import Frontier, QueueItem, VisitedEntry
from tour_crawler.crawler.http_client import FetchFailure, FetchResult, HttpClient
from tour_crawler.crawler.orchestrator import CrawlOrchestrator, crawl_source
from tour_crawler.crawler.rate_limiter import RateLimiter
from tour_crawler.crawler.url_normalizer import normalize_url, same_host

__all__ = [
    "CrawlOrchestrator",
    "FetchFailure",
    "FetchResult",
    "Frontier",
    "HttpClient",
    "QueueItem",
    "RateLimiter",
    "VisitedEntry",
    "crawl_source",
    "normalize_url",
    "same_host",
]
