"""
Tour Package Crawler - CLI

Command-line interface for crawler operations.
"""

import asyncio
import argparse
import sys
import json
from dataclasses import asdict

from tour_crawler.config import get_config
from tour_crawler.logging_config import setup_logging, get_logger
from tour_crawler.crawler.http_client import HttpClient
from tour_crawler.crawler.orchestrator import CrawlOrchestrator
from tour_crawler.crawler.url_normalizer import normalize_url
from tour_crawler.database.repository import MemoryRepository, SourceDescriptor, get_repository
from tour_crawler.package.classifier import PackageClassifier
from tour_crawler.package.extractor import PackageExtractor
from tour_crawler.package.strategies import parse_html


def _run(coro):
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    return asyncio.run(coro)


def _source_from_args(args) -> SourceDescriptor:
    """Build an ad-hoc source from command-line options."""
    config = get_config()
    data = {
        "id": None,
        "name": args.name or args.url,
        "url": args.url,
        "max_depth": args.max_depth,
        "max_pages": args.max_pages,
        "request_delay_ms": args.delay_ms,
        "timeout_ms": args.timeout_ms,
    }
    return SourceDescriptor.from_dict(data, config)


def _print_summary(orchestrator: CrawlOrchestrator, success: bool):
    stats = orchestrator.get_stats()
    print("\n" + "=" * 50)
    print(f"CRAWL RESULTS: {stats['source']}")
    print("=" * 50)
    print(f"Status:           {'completed' if success else 'aborted'}")
    print(f"Pages visited:    {stats['visited']}")
    print(f"Pages failed:     {stats['failed']}")
    print(f"Packages saved:   {stats['extracted']}")
    print(f"Left in queue:    {stats['queued']}")
    print("=" * 50)


def crawl(args):
    """Crawl one source."""
    config = get_config()
    setup_logging(level=args.log_level or config.log_level, json_format=args.json_logs)
    logger = get_logger("cli")

    if args.source_id:
        repo = get_repository()
        source = repo.get_source(args.source_id)
        if source is None:
            logger.error(f"Unknown source: {args.source_id}")
            sys.exit(1)
        sink = MemoryRepository() if args.dry_run else repo
    elif args.url:
        source = _source_from_args(args)
        if args.dry_run:
            sink = MemoryRepository()
        else:
            sink = get_repository()
            source = sink.register_source(source)
    else:
        logger.error("Either --url or --source-id is required")
        sys.exit(1)

    orchestrator = CrawlOrchestrator(source, sink, config=config)
    success = _run(orchestrator.crawl())
    _print_summary(orchestrator, success)

    if args.dry_run:
        for record in sink.records:
            print(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))

    if not success:
        sys.exit(1)


def crawl_all(args):
    """Crawl every active source, one after another."""
    config = get_config()
    setup_logging(level=args.log_level or config.log_level, json_format=args.json_logs)
    logger = get_logger("cli")

    repo = get_repository()
    sources = repo.get_active_sources()
    if not sources:
        logger.warning("No active sources to crawl")
        return

    async def _crawl_all():
        results = {}
        for source in sources:
            orchestrator = CrawlOrchestrator(source, repo, config=config)
            results[source.name] = await orchestrator.crawl()
            _print_summary(orchestrator, results[source.name])
        return results

    results = _run(_crawl_all())
    failed = [name for name, ok in results.items() if not ok]
    if failed:
        logger.error(f"{len(failed)} of {len(results)} crawls aborted: {', '.join(failed)}")
        sys.exit(1)


def extract(args):
    """Fetch one page and show what would be extracted from it."""
    config = get_config()
    setup_logging(level=args.log_level or "WARNING")
    logger = get_logger("cli")

    url = normalize_url(args.url)

    async def _fetch():
        async with HttpClient(
            user_agent=config.user_agent,
            timeout=config.timeout_ms / 1000
        ) as client:
            return await client.get(url)

    result = _run(_fetch())
    if not result.ok:
        logger.error(f"Fetch failed: {result.error}", extra={"url": url, "http_code": result.http_code})
        sys.exit(1)

    soup = parse_html(result.content)
    verdict = PackageClassifier(config).classify(url, soup)
    package = PackageExtractor(config).extract_package(url, soup)

    output = {
        "url": url,
        "is_package": verdict.is_package,
        "reason": verdict.reason,
        "destination": package.destination,
        "record": asdict(package.record),
    }
    print(json.dumps(output, ensure_ascii=False, indent=2))


def show_sources(args):
    """Show stored sources."""
    setup_logging(level="WARNING")
    repo = get_repository()

    print("\n" + "=" * 50)
    print("TOUR SOURCES")
    print("=" * 50)

    for source in repo.get_all_sources():
        status = "✓ Active" if source.is_active else "✗ Inactive"
        print(f"\n{source.name} ({status})")
        print(f"  Id:        {source.id}")
        print(f"  URL:       {source.url}")
        print(f"  Bounds:    depth {source.max_depth}, {source.max_pages} pages")
        print(f"  Delay:     {source.request_delay_ms} ms")

    print("\n" + "=" * 50)


def show_packages(args):
    """Show stored packages of a source."""
    setup_logging(level="WARNING")
    repo = get_repository()

    packages = repo.get_packages(args.source_id, limit=args.limit)
    print(f"\n{len(packages)} packages of source {args.source_id}")
    for package in packages:
        print(f"\n{package['title']}")
        print(f"  Price:     {package.get('price')}")
        print(f"  Duration:  {package.get('duration')}")
        print(f"  URL:       {package['original_url']}")


def init_db(args):
    """Initialize database tables."""
    from tour_crawler.database.init_tables import init_tables
    init_tables()


def main():
    """CLI main entry point."""
    parser = argparse.ArgumentParser(
        description="Tour Package Crawler CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # crawl command
    crawl_parser = subparsers.add_parser(
        "crawl",
        help="Crawl a single source"
    )
    crawl_parser.add_argument("--url", help="Seed URL of an ad-hoc source")
    crawl_parser.add_argument("--source-id", help="Id of a stored source")
    crawl_parser.add_argument("--name", help="Display name of an ad-hoc source")
    crawl_parser.add_argument("--max-depth", type=int, help="Maximum link depth")
    crawl_parser.add_argument("--max-pages", type=int, help="Maximum pages to visit")
    crawl_parser.add_argument("--delay-ms", type=int, help="Minimum delay between requests")
    crawl_parser.add_argument("--timeout-ms", type=int, help="Per-request timeout")
    crawl_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Don't save to database, print extracted packages instead"
    )
    crawl_parser.set_defaults(func=crawl)

    # crawl-all command
    crawl_all_parser = subparsers.add_parser(
        "crawl-all",
        help="Crawl all active sources"
    )
    crawl_all_parser.set_defaults(func=crawl_all)

    # extract command
    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract a package from one page without storing it"
    )
    extract_parser.add_argument("url", help="Page URL")
    extract_parser.set_defaults(func=extract)

    # sources command
    sources_parser = subparsers.add_parser(
        "sources",
        help="Show stored sources"
    )
    sources_parser.set_defaults(func=show_sources)

    # packages command
    packages_parser = subparsers.add_parser(
        "packages",
        help="Show stored packages of a source"
    )
    packages_parser.add_argument("source_id", help="Id of a stored source")
    packages_parser.add_argument("--limit", type=int, default=100, help="Maximum packages to show")
    packages_parser.set_defaults(func=show_packages)

    # init-db command
    init_parser = subparsers.add_parser(
        "init-db",
        help="Show database initialization SQL"
    )
    init_parser.set_defaults(func=init_db)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
