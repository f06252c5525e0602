"""
Crawl orchestrator tests with an offline HTTP client and the in-memory sink.
"""

import asyncio
import time

from conftest import FakeHttpClient, html_page
from tour_crawler.crawler.frontier import FAILED, SUCCESS
from tour_crawler.crawler.http_client import FetchFailure
from tour_crawler.crawler.orchestrator import CrawlOrchestrator
from tour_crawler.database.repository import ExtractedRecord, MemoryRepository

SEED = "https://agency.example"


def run_crawl(source, pages, config, sink=None, **kwargs):
    client = FakeHttpClient(pages)
    sink = sink if sink is not None else MemoryRepository()
    orchestrator = CrawlOrchestrator(source, sink, http_client=client, config=config, **kwargs)
    ok = asyncio.run(orchestrator.crawl())
    return orchestrator, ok, client, sink


class FailingRecordSink(MemoryRepository):
    """Accepts ``limit`` records, then the store goes away."""

    def __init__(self, limit: int = 0, fail_error_log: bool = False):
        super().__init__()
        self.limit = limit
        self.fail_error_log = fail_error_log

    def create_record(self, record):
        if len(self.records) >= self.limit:
            raise ConnectionError("database unavailable")
        return super().create_record(record)

    def append_log(self, level, message, detail=None):
        if level == "ERROR" and self.fail_error_log:
            raise ConnectionError("database unavailable")
        return super().append_log(level, message, detail)


class BlankTitleExtractor:
    def extract(self, url, html, source_id=None):
        return ExtractedRecord(
            source_id=source_id, title="  ", description="", price="", duration="",
            image_url="", original_url=url,
        )


def test_scenario_a_only_same_host_links_are_queued(config, make_source):
    pages = {
        SEED: html_page(links=[
            "/a", "/b", "c",
            "https://other.example/x", "http://elsewhere.example/y",
        ]),
        f"{SEED}/a": html_page(links=["/deeper"]),
        f"{SEED}/b": html_page(),
        f"{SEED}/c": html_page(),
    }
    orchestrator, ok, client, _ = run_crawl(make_source(max_depth=1), pages, config)

    assert ok
    assert orchestrator.frontier.enqueued_count == 4  # seed + 3 at depth 1
    assert orchestrator.frontier.deepest_enqueued == 1
    assert client.requested == [SEED, f"{SEED}/a", f"{SEED}/b", f"{SEED}/c"]
    assert not any("other.example" in url or "elsewhere" in url for url in client.requested)


def test_scenario_b_single_non_package_page(config, make_source):
    pages = {SEED: html_page(title="About", body="<p>Family business since 1990.</p>")}
    orchestrator, ok, _, sink = run_crawl(make_source(), pages, config)

    assert ok
    assert orchestrator.visited == 1
    assert orchestrator.extracted == 0
    entry = orchestrator.frontier.visited[SEED]
    assert entry.outcome == SUCCESS
    assert not entry.extracted
    assert sink.records == []
    assert sink.deleted_sources == ["source-1"]
    assert "source-1" in sink.last_crawled
    messages = [message for message, _ in sink.logs_at("INFO")]
    assert "started" in messages[0]
    assert "completed" in messages[-1]


def test_scenario_c_page_budget_stops_dequeuing(config, make_source):
    pages = {SEED: html_page(links=[f"/page-{n}" for n in range(5)])}
    orchestrator, ok, client, _ = run_crawl(make_source(max_pages=1), pages, config)

    assert ok
    assert client.requested == [SEED]
    assert orchestrator.visited == 1
    assert orchestrator.frontier.pending == 5


def test_scenario_d_timeout_is_recorded_and_crawl_continues(config, make_source):
    pages = {
        SEED: html_page(links=["/slow", "/fine"]),
        f"{SEED}/slow": FetchFailure.TIMEOUT,
        f"{SEED}/fine": html_page(),
    }
    orchestrator, ok, client, sink = run_crawl(make_source(), pages, config)

    assert ok
    assert client.requested == [SEED, f"{SEED}/slow", f"{SEED}/fine"]
    assert orchestrator.frontier.visited[f"{SEED}/slow"].outcome == FAILED
    assert orchestrator.frontier.visited[f"{SEED}/fine"].outcome == SUCCESS
    warnings = sink.logs_at("WARNING")
    assert len(warnings) == 1
    assert f"{SEED}/slow" in warnings[0][1]
    assert orchestrator.get_stats()["failed"] == 1


def test_package_page_is_extracted_and_stored(config, make_source):
    tour_url = f"{SEED}/tour/istanbul"
    pages = {
        SEED: html_page(links=["/tour/istanbul/", "/about"]),
        tour_url: html_page(
            title="Istanbul",
            body='<h1>Istanbul Spring Tour</h1><div class="price">900 USD</div>',
        ),
        f"{SEED}/about": html_page(title="About"),
    }
    orchestrator, ok, _, sink = run_crawl(make_source(), pages, config)

    assert ok
    assert orchestrator.extracted == 1
    assert len(sink.records) == 1
    record = sink.records[0]
    assert record.original_url == tour_url
    assert record.source_id == "source-1"
    assert record.title == "Istanbul Spring Tour"
    assert record.price == "900 USD"
    assert orchestrator.frontier.visited[tour_url].extracted
    assert not orchestrator.frontier.visited[f"{SEED}/about"].extracted


def test_no_url_is_fetched_twice(config, make_source):
    pages = {
        SEED: html_page(links=["/a", "/b", "/a#top", "/a?x=1", "/"]),
        f"{SEED}/a": html_page(links=["/b", "/", "/a"]),
        f"{SEED}/b": html_page(links=["/a", SEED + "/"]),
    }
    orchestrator, ok, client, _ = run_crawl(make_source(), pages, config)

    assert ok
    assert len(client.requested) == len(set(client.requested)) == 3
    assert len(orchestrator.frontier.visited) == 3


def test_bounds_hold_on_a_wide_site(config, make_source):
    pages = {SEED: html_page(links=[f"/l1-{n}" for n in range(8)])}
    for n in range(8):
        pages[f"{SEED}/l1-{n}"] = html_page(links=[f"/l2-{n}-{m}" for m in range(8)])

    orchestrator, ok, client, _ = run_crawl(make_source(max_depth=2, max_pages=20), pages, config)

    assert ok
    assert orchestrator.visited == 20
    assert len(client.requested) == 20
    assert orchestrator.frontier.deepest_enqueued <= 2
    assert all(entry.url.startswith(SEED) for entry in orchestrator.frontier.visited.values())


def test_max_depth_zero_follows_no_links(config, make_source):
    pages = {SEED: html_page(links=["/a", "/b"]), f"{SEED}/a": html_page()}
    orchestrator, ok, client, _ = run_crawl(make_source(max_depth=0), pages, config)

    assert ok
    assert client.requested == [SEED]
    assert orchestrator.frontier.pending == 0


def test_follow_internal_links_disabled(config, make_source):
    pages = {SEED: html_page(links=["/a"]), f"{SEED}/a": html_page()}
    _, ok, client, _ = run_crawl(make_source(follow_internal_links=False), pages, config)

    assert ok
    assert client.requested == [SEED]


def test_blank_title_is_a_page_failure(config, make_source):
    pages = {SEED: html_page(links=["/tour/x"]), f"{SEED}/tour/x": html_page()}
    orchestrator, ok, _, sink = run_crawl(
        make_source(), pages, config, extractor=BlankTitleExtractor()
    )

    assert ok
    assert orchestrator.frontier.visited[f"{SEED}/tour/x"].outcome == FAILED
    assert sink.records == []
    assert len(sink.logs_at("WARNING")) == 1


def test_blank_title_page_still_has_its_links_followed(config, make_source):
    pages = {
        SEED: html_page(links=["/tour/x"]),
        f"{SEED}/tour/x": html_page(links=["/next"]),
        f"{SEED}/next": html_page(),
    }
    orchestrator, ok, client, _ = run_crawl(
        make_source(), pages, config, extractor=BlankTitleExtractor()
    )

    assert ok
    assert orchestrator.frontier.visited[f"{SEED}/tour/x"].outcome == FAILED
    assert client.requested == [SEED, f"{SEED}/tour/x", f"{SEED}/next"]


def test_malformed_image_url_does_not_abort_crawl(config, make_source):
    pages = {
        SEED: html_page(links=["/tour/a", "/tour/b"]),
        f"{SEED}/tour/a": html_page(body='<h1>Kish Island Tour</h1><img src="http://[broken">'),
        f"{SEED}/tour/b": html_page(body="<h1>Mashhad Pilgrimage Tour</h1>"),
    }
    _, ok, client, sink = run_crawl(make_source(), pages, config)

    assert ok
    assert client.requested == [SEED, f"{SEED}/tour/a", f"{SEED}/tour/b"]
    assert [r.title for r in sink.records] == ["Kish Island Tour", "Mashhad Pilgrimage Tour"]
    assert sink.records[0].image_url == ""
    assert sink.logs_at("ERROR") == []


def test_sink_failure_aborts_and_keeps_stored_records(config, make_source):
    pages = {
        SEED: html_page(links=["/tour/a", "/tour/b", "/tour/c"]),
        f"{SEED}/tour/a": html_page(body="<h1>First package</h1>"),
        f"{SEED}/tour/b": html_page(body="<h1>Second package</h1>"),
        f"{SEED}/tour/c": html_page(body="<h1>Third package</h1>"),
    }
    sink = FailingRecordSink(limit=1)
    orchestrator, ok, client, _ = run_crawl(make_source(), pages, config, sink=sink)

    assert ok is False
    assert [r.title for r in sink.records] == ["First package"]
    assert f"{SEED}/tour/c" not in client.requested
    errors = sink.logs_at("ERROR")
    assert len(errors) == 1
    assert "database unavailable" in errors[0][1]
    assert sink.last_crawled == {}
    assert client.exited == 1


def test_failed_error_log_still_returns_false(config, make_source):
    pages = {SEED: html_page(links=["/tour/a"]), f"{SEED}/tour/a": html_page(body="<h1>Package A</h1>")}
    sink = FailingRecordSink(limit=0, fail_error_log=True)
    _, ok, _, _ = run_crawl(make_source(), pages, config, sink=sink)

    assert ok is False


def test_progress_is_logged_every_ten_pages(config, make_source):
    pages = {SEED: html_page(links=[f"/p{n}" for n in range(11)])}
    for n in range(11):
        pages[f"{SEED}/p{n}"] = html_page()

    orchestrator, ok, _, sink = run_crawl(make_source(), pages, config)

    assert ok
    assert orchestrator.visited == 12
    progress = [detail for message, detail in sink.logs_at("INFO") if "progress" in message]
    assert len(progress) == 1
    assert "Pages visited: 10" in progress[0]


def test_fetches_are_spaced_by_request_delay(config, make_source):
    delay_ms = 50
    starts = []

    class TimedClient(FakeHttpClient):
        async def get(self, url):
            starts.append(time.monotonic())
            return await super().get(url)

    pages = {SEED: html_page(links=["/a", "/b"]), f"{SEED}/a": html_page(), f"{SEED}/b": html_page()}
    orchestrator = CrawlOrchestrator(
        make_source(request_delay_ms=delay_ms),
        MemoryRepository(),
        http_client=TimedClient(pages),
        config=config,
    )
    assert asyncio.run(orchestrator.crawl())

    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert len(gaps) == 2
    assert all(gap >= delay_ms / 1000 - 0.002 for gap in gaps)


def test_each_crawl_has_its_own_state(config, make_source):
    pages = {SEED: html_page(links=["/a"]), f"{SEED}/a": html_page()}
    first, _, _, _ = run_crawl(make_source(), pages, config)
    second, _, client, _ = run_crawl(make_source(), pages, config)

    assert first.frontier is not second.frontier
    assert first.rate_limiter is not second.rate_limiter
    assert client.requested == [SEED, f"{SEED}/a"]
