"""
Breadth-first crawl frontier with visited tracking.
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Set

from tour_crawler.crawler.url_normalizer import same_host

SUCCESS = "success"
FAILED = "failed"


@dataclass(frozen=True)
class QueueItem:
    """A URL waiting to be fetched."""
    url: str
    depth: int
    parent_url: Optional[str] = None


@dataclass
class VisitedEntry:
    """Outcome of a dequeued URL."""
    url: str
    outcome: str
    extracted: bool = False


class Frontier:
    """
    FIFO queue of normalized URLs plus the set of URLs already dequeued.

    A URL is accepted at most once per crawl: it is refused while queued and
    after it has been visited. The visited map is the page budget.
    """

    def __init__(self, seed_url: str, max_depth: int, max_pages: int):
        self.seed_url = seed_url
        self.max_depth = max_depth
        self.max_pages = max_pages

        self._queue: Deque[QueueItem] = deque()
        self._queued: Set[str] = set()
        self.visited: Dict[str, VisitedEntry] = {}
        self.enqueued_count = 0
        self.dequeued_count = 0
        self.deepest_enqueued = -1

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def has_capacity(self) -> bool:
        """True while more pages may be visited."""
        return len(self.visited) < self.max_pages

    def push(self, url: str, depth: int, parent_url: Optional[str] = None) -> bool:
        """
        Enqueue an already-normalized URL.

        Returns:
            True if the URL was accepted
        """
        if depth > self.max_depth:
            return False
        if not same_host(url, self.seed_url):
            return False
        if url in self.visited or url in self._queued:
            return False

        self._queue.append(QueueItem(url=url, depth=depth, parent_url=parent_url))
        self._queued.add(url)
        self.enqueued_count += 1
        self.deepest_enqueued = max(self.deepest_enqueued, depth)
        return True

    def pop(self) -> Optional[QueueItem]:
        """Dequeue the oldest item, or None when empty or out of budget."""
        if not self._queue or not self.has_capacity:
            return None
        item = self._queue.popleft()
        self._queued.discard(item.url)
        self.dequeued_count += 1
        return item

    def is_visited(self, url: str) -> bool:
        return url in self.visited

    def record(self, url: str, outcome: str, extracted: bool = False) -> VisitedEntry:
        """Mark a dequeued URL as visited."""
        if url in self.visited:
            raise ValueError(f"URL already visited: {url}")
        entry = VisitedEntry(url=url, outcome=outcome, extracted=extracted)
        self.visited[url] = entry
        return entry

    def count(self, outcome: str) -> int:
        return sum(1 for entry in self.visited.values() if entry.outcome == outcome)
