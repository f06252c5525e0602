"""
Crawl orchestrator.
Runs one breadth-first crawl of a source: fetch, classify, extract, store,
discover links, repeat until the queue or the page budget runs out.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.crawler.frontier import FAILED, SUCCESS, Frontier, QueueItem
from tour_crawler.crawler.http_client import FetchResult, HttpClient
from tour_crawler.crawler.rate_limiter import RateLimiter
from tour_crawler.crawler.url_normalizer import normalize_url
from tour_crawler.database.repository import PersistenceSink, SourceDescriptor
from tour_crawler.logging_config import get_source_logger
from tour_crawler.package.classifier import PackageClassifier
from tour_crawler.package.extractor import PackageExtractor
from tour_crawler.package.strategies import parse_html

PROGRESS_EVERY = 10


class CrawlOrchestrator:
    """
    Crawls a single source.

    All crawl state (frontier, visited map, counters, rate limiter) lives on
    the instance, so build a new orchestrator for every crawl.
    """

    def __init__(
        self,
        source: SourceDescriptor,
        sink: PersistenceSink,
        http_client: Optional[HttpClient] = None,
        classifier: Optional[PackageClassifier] = None,
        extractor: Optional[PackageExtractor] = None,
        config: Optional[CrawlerConfig] = None
    ):
        self.source = source
        self.sink = sink
        self.config = config or get_config()

        self.http_client = http_client or HttpClient(
            user_agent=source.user_agent,
            timeout=source.timeout_ms / 1000,
        )
        self.classifier = classifier or PackageClassifier(self.config)
        self.extractor = extractor or PackageExtractor(self.config)

        self.seed_url = normalize_url(source.seed_url)
        self.frontier = Frontier(self.seed_url, source.max_depth, source.max_pages)
        self.rate_limiter = RateLimiter(source.request_delay_ms / 1000)
        self.extracted = 0
        self.logger = get_source_logger("crawler.orchestrator", source.name)

    @property
    def visited(self) -> int:
        return len(self.frontier.visited)

    def get_stats(self) -> Dict[str, Any]:
        """Counters of the crawl so far."""
        return {
            "source": self.source.name,
            "visited": self.visited,
            "succeeded": self.frontier.count(SUCCESS),
            "failed": self.frontier.count(FAILED),
            "extracted": self.extracted,
            "queued": self.frontier.pending,
            "enqueued_total": self.frontier.enqueued_count,
        }

    async def crawl(self) -> bool:
        """
        Run the crawl to completion.

        Returns:
            True when the crawl finished (page failures included),
            False when it was aborted by an unexpected error
        """
        try:
            self.logger.info(
                f"Starting crawl of {self.source.url}",
                extra={"url": self.seed_url}
            )
            self.sink.append_log(
                "INFO",
                f'Crawl of source "{self.source.name}" started',
                f"URL: {self.source.url}, depth: {self.source.max_depth}, "
                f"max pages: {self.source.max_pages}"
            )

            self.sink.delete_records_for_source(self.source.id)

            self.frontier.push(self.seed_url, 0)

            async with self.http_client as client:
                while True:
                    item = self.frontier.pop()
                    if item is None:
                        break
                    if self.frontier.is_visited(item.url):
                        continue

                    await self._process(client, item)

                    if self.visited % PROGRESS_EVERY == 0:
                        self._report_progress()

            self.sink.update_last_crawled(self.source.id, datetime.now(timezone.utc))

            stats = self.get_stats()
            self.logger.info(
                f"Crawl finished: {stats['extracted']} packages from "
                f"{stats['visited']} pages ({stats['failed']} failed)",
                extra={
                    "visited": stats["visited"],
                    "extracted": stats["extracted"],
                    "queued": stats["queued"],
                }
            )
            self.sink.append_log(
                "INFO",
                f'Crawl of source "{self.source.name}" completed',
                f"Packages extracted: {stats['extracted']}, pages visited: {stats['visited']}, "
                f"failed pages: {stats['failed']}"
            )
            return True

        except Exception as e:
            self.logger.exception(f"Crawl aborted: {e}")
            try:
                self.sink.append_log(
                    "ERROR",
                    f'Crawl of source "{self.source.name}" failed',
                    f"{type(e).__name__}: {e}"
                )
            except Exception as log_error:
                self.logger.error(f"Could not record crawl failure: {log_error}")
            return False

    async def _process(self, client: HttpClient, item: QueueItem) -> None:
        """Fetch one queue item and handle the page."""
        self.logger.debug(
            "Crawling page",
            extra={"url": item.url, "depth": item.depth}
        )

        result: FetchResult = await self.rate_limiter.run(client.get, item.url)

        if not result.ok:
            self._record_failure(item, result.error or "fetch failed", result.http_code)
            return

        soup = parse_html(result.content or "")
        verdict = self.classifier.classify(item.url, soup)

        if not verdict:
            self.frontier.record(item.url, SUCCESS, extracted=False)
        else:
            self._store_package(item, soup, verdict, result.http_code)

        self._discover_links(soup, item)

    def _store_package(self, item: QueueItem, soup, verdict, http_code: int) -> None:
        record = self.extractor.extract(item.url, soup, self.source.id)
        if not record.title.strip():
            self._record_failure(item, "page has no package title", http_code)
            return

        self.sink.create_record(record)
        self.extracted += 1
        self.frontier.record(item.url, SUCCESS, extracted=True)
        self.logger.info(
            f"Package page ({verdict.reason}): {record.title[:50]}",
            extra={"url": item.url, "depth": item.depth, "extracted": self.extracted}
        )

    def _record_failure(self, item: QueueItem, error: str, http_code: int = 0) -> None:
        self.frontier.record(item.url, FAILED)
        self.logger.warning(
            f"Page failed: {error}",
            extra={"url": item.url, "depth": item.depth, "http_code": http_code}
        )
        self.sink.append_log(
            "WARNING",
            f'Page of source "{self.source.name}" failed',
            f"URL: {item.url}, error: {error}"
        )

    def _discover_links(self, soup, item: QueueItem) -> int:
        """Queue same-host links of a page one level deeper."""
        if not self.source.follow_internal_links:
            return 0

        depth = item.depth + 1
        if depth > self.source.max_depth:
            return 0

        added = 0
        for anchor in soup.find_all("a", href=True):
            url = normalize_url(anchor["href"], item.url, self.seed_url)
            if self.frontier.push(url, depth, item.url):
                added += 1

        if added:
            self.logger.debug(
                f"Queued {added} links",
                extra={"url": item.url, "depth": depth, "queued": self.frontier.pending}
            )
        return added

    def _report_progress(self) -> None:
        stats = self.get_stats()
        self.logger.info(
            "Crawl progress",
            extra={
                "visited": stats["visited"],
                "extracted": stats["extracted"],
                "queued": stats["queued"],
            }
        )
        self.sink.append_log(
            "INFO",
            f'Crawl progress of source "{self.source.name}"',
            f"Pages visited: {stats['visited']}, packages extracted: {stats['extracted']}, "
            f"queued: {stats['queued']}"
        )


async def crawl_source(
    source: SourceDescriptor,
    sink: PersistenceSink,
    config: Optional[CrawlerConfig] = None
) -> bool:
    """Crawl one source with a fresh orchestrator."""
    return await CrawlOrchestrator(source, sink, config=config).crawl()
