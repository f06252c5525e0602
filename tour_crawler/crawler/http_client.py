"""
Async HTTP client for fetching candidate package pages.
"""

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict
import aiohttp
from fake_useragent import UserAgent

from tour_crawler.logging_config import get_logger

logger = get_logger("crawler.http_client")


class FetchFailure(str, Enum):
    """Why a page could not be fetched."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"


@dataclass
class FetchResult:
    """Outcome of a single GET."""
    url: str
    content: Optional[str] = None
    http_code: int = 0
    failure: Optional[FetchFailure] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, url: str, content: str, http_code: int = 200) -> "FetchResult":
        return cls(url=url, content=content, http_code=http_code)

    @classmethod
    def failed(
        cls,
        url: str,
        failure: FetchFailure,
        error: str,
        http_code: int = 0
    ) -> "FetchResult":
        return cls(url=url, http_code=http_code, failure=failure, error=error)


class HttpClient:
    """
    HTTP client for crawling one source.
    Features:
    - Per-request timeout
    - Fixed user agent, or a random browser one when none is configured
    - Failures returned as values, never retried
    """

    FALLBACK_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ]

    def __init__(
        self,
        user_agent: str = "",
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self._session = session
        self._own_session = session is None
        self.timeout = timeout
        self.user_agent = user_agent or self._random_user_agent()

    async def __aenter__(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._own_session and self._session:
            await self._session.close()
            self._session = None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("Session not initialized. Use async context manager.")
        return self._session

    def _random_user_agent(self) -> str:
        """Get a random browser user agent string."""
        try:
            return UserAgent().random
        except Exception:
            # fake-useragent ships its data file; fall back if it cannot load
            return random.choice(self.FALLBACK_AGENTS)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "fa-IR,fa;q=0.9,en-US;q=0.8,en;q=0.7",
        }

    async def get(self, url: str) -> FetchResult:
        """
        Fetch a URL once.

        Args:
            url: Normalized URL to fetch

        Returns:
            FetchResult with the HTML on success or a classified failure
        """
        try:
            async with self.session.get(
                url,
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                http_code = response.status

                if not (200 <= http_code < 300):
                    logger.warning(
                        "Page fetch failed",
                        extra={"url": url, "http_code": http_code}
                    )
                    return FetchResult.failed(
                        url, FetchFailure.HTTP_STATUS, f"HTTP {http_code}", http_code
                    )

                content = await response.text(errors="replace")

                logger.debug(
                    "Fetched successfully",
                    extra={"url": url, "http_code": http_code}
                )
                return FetchResult.success(url, content, http_code)

        except asyncio.TimeoutError:
            logger.error("Request timeout", extra={"url": url})
            return FetchResult.failed(url, FetchFailure.TIMEOUT, "Timeout")
        except aiohttp.ClientError as e:
            logger.error(f"Request failed: {e}", extra={"url": url})
            return FetchResult.failed(url, FetchFailure.NETWORK, str(e) or type(e).__name__)
