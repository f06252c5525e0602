"""
Shared fixtures: an offline HTTP client and a config that never touches
environment variables or the database.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tour_crawler.config import CrawlerConfig, PROJECT_ROOT  # noqa: E402
from tour_crawler.crawler.http_client import FetchFailure, FetchResult  # noqa: E402
from tour_crawler.database.repository import SourceDescriptor  # noqa: E402


class FakeHttpClient:
    """
    Serves pages from a dict. A page given as a FetchFailure is returned as
    that failure; an unknown URL is a 404.
    """

    def __init__(self, pages: Dict[str, Union[str, FetchFailure]]):
        self.pages = pages
        self.requested: List[str] = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1

    async def get(self, url: str) -> FetchResult:
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            return FetchResult.failed(url, FetchFailure.HTTP_STATUS, "HTTP 404", 404)
        if isinstance(page, FetchFailure):
            return FetchResult.failed(url, page, page.value)
        return FetchResult.success(url, page)


def html_page(
    title: str = "Home",
    body: str = "",
    links: Optional[List[str]] = None
) -> str:
    """Small HTML document with the given title, body markup and anchors."""
    anchors = "".join(f'<a href="{href}">link</a>' for href in links or [])
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body>{body}{anchors}</body></html>"
    )


@pytest.fixture
def config() -> CrawlerConfig:
    return CrawlerConfig(
        request_delay_ms=0,
        gazetteer_path=PROJECT_ROOT / "config" / "gazetteer.yaml",
    )


@pytest.fixture
def make_source():
    def _make(url: str = "https://agency.example/", **overrides) -> SourceDescriptor:
        values = {
            "id": "source-1",
            "name": "Example Agency",
            "url": url,
            "max_depth": 3,
            "max_pages": 50,
            "request_delay_ms": 0,
            "timeout_ms": 1000,
            "user_agent": "test-agent",
        }
        values.update(overrides)
        return SourceDescriptor(**values)
    return _make
