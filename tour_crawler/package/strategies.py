"""
Building blocks for heuristic field extraction.

A field is read by an ordered list of strategies. Each strategy looks at a
parsed page and either returns a value or ``None``; the first value that
passes the field's validity check wins, otherwise the field default is used.
"""

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Callable, Generic, Iterator, List, Optional, Sequence, TypeVar
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

T = TypeVar("T")

Strategy = Callable[["ParsedPage"], Optional[Any]]

_MISSING = object()

# Tags whose text never counts as page content
_SKIP_PARENTS = {"script", "style", "noscript", "template"}


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML with lxml."""
    return BeautifulSoup(html, "lxml")


def clean_text(text: str) -> str:
    """Collapse whitespace."""
    return re.sub(r"\s+", " ", text).strip()


def contains_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def unique(items: Sequence[str]) -> List[str]:
    """Drop empty and repeated items, keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        item = clean_text(item)
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class ParsedPage:
    """A fetched page and lazily computed views of it."""
    url: str
    soup: BeautifulSoup
    # Package title once the title chain has run
    title: Optional[str] = None

    @cached_property
    def body_text(self) -> str:
        """Visible text, one line per block of markup."""
        root = self.soup.body or self.soup
        lines = (clean_text(s) for s in text_nodes(root))
        return "\n".join(line for line in lines if line)

    @cached_property
    def title_text(self) -> str:
        if self.soup.title:
            return clean_text(self.soup.title.get_text())
        return ""

    def absolute(self, src: str) -> Optional[str]:
        """``src`` resolved against the page URL, or ``None`` when it is malformed."""
        try:
            return urljoin(self.url, src.strip())
        except ValueError:
            return None


def text_nodes(root: Tag) -> Iterator[NavigableString]:
    """Text nodes under ``root`` that are not code or comments."""
    for node in root.find_all(string=True):
        if isinstance(node, Comment):
            continue
        if node.parent is not None and node.parent.name in _SKIP_PARENTS:
            continue
        yield node


def elements_containing(soup: BeautifulSoup, keywords: Sequence[str]) -> Iterator[Tag]:
    """Innermost body elements whose own text mentions any keyword, in document order."""
    for node in text_nodes(soup.body or soup):
        if contains_any(str(node), keywords) and isinstance(node.parent, Tag):
            yield node.parent


def first_valid(
    strategies: Sequence[Strategy],
    page: ParsedPage,
    is_valid: Callable[[Any], bool],
    default: Any = None,
) -> Any:
    """Run strategies in order; return the first valid result or ``default``."""
    for strategy in strategies:
        value = strategy(page)
        if value is not None and is_valid(value):
            return value
    return default


@dataclass
class FieldRule(Generic[T]):
    """Strategy chain, validity check and default for one field."""
    name: str
    strategies: Sequence[Strategy]
    is_valid: Callable[[T], bool]
    default: Callable[[ParsedPage], T]
    clean: Optional[Callable[[T], T]] = None

    def extract(self, page: ParsedPage) -> T:
        value = first_valid(self.strategies, page, self.is_valid, _MISSING)
        if value is _MISSING:
            return self.default(page)
        return self.clean(value) if self.clean else value


# ==================== STRATEGY FACTORIES ====================

def select_text(selector: str) -> Strategy:
    """Text of the first element matching ``selector``."""
    def strategy(page: ParsedPage) -> Optional[str]:
        elem = page.soup.select_one(selector)
        if elem is None:
            return None
        return clean_text(elem.get_text(" ", strip=True)) or None
    return strategy


def select_attr(selector: str, *attrs: str) -> Strategy:
    """First non-empty attribute among ``attrs`` of the first match."""
    def strategy(page: ParsedPage) -> Optional[str]:
        elem = page.soup.select_one(selector)
        if elem is None:
            return None
        for attr in attrs:
            value = elem.get(attr)
            if value and value.strip():
                return value.strip()
        return None
    return strategy


def select_image(selector: str) -> Strategy:
    """Absolute image URL of the first match, honoring lazy-load attributes."""
    attr_strategy = select_attr(selector, "src", "data-src", "content")

    def strategy(page: ParsedPage) -> Optional[str]:
        src = attr_strategy(page)
        if not src or src.startswith("data:"):
            return None
        return page.absolute(src)
    return strategy


def select_paragraphs(selector: str, limit: int = 3) -> Strategy:
    """The first ``limit`` paragraphs matching ``selector`` joined together."""
    def strategy(page: ParsedPage) -> Optional[str]:
        paragraphs = page.soup.select(selector)[:limit]
        text = " ".join(p.get_text(" ", strip=True) for p in paragraphs)
        return clean_text(text) or None
    return strategy


def select_list(selector: str) -> Strategy:
    """De-duplicated texts of all elements matching ``selector``."""
    def strategy(page: ParsedPage) -> Optional[List[str]]:
        items = unique([li.get_text(" ", strip=True) for li in page.soup.select(selector)])
        return items or None
    return strategy


def list_after_heading(keywords: Sequence[str]) -> Strategy:
    """
    List items following an element that mentions one of ``keywords``.

    Looks at the next sibling list first, then at lists inside the closest
    enclosing container.
    """
    def strategy(page: ParsedPage) -> Optional[List[str]]:
        for elem in elements_containing(page.soup, keywords):
            items = _items_near(elem)
            if items:
                return items
        return None
    return strategy


def _items_near(elem: Tag) -> List[str]:
    lst = elem.find_next_sibling(["ul", "ol"])
    if lst is None and elem.parent is not None and elem.parent.name not in ("body", "html"):
        lst = elem.parent.find_next_sibling(["ul", "ol"])
    if lst is not None:
        items = unique([li.get_text(" ", strip=True) for li in lst.find_all("li")])
        if items:
            return items

    container = elem.find_parent(["div", "section"])
    if container is not None:
        return unique([li.get_text(" ", strip=True) for li in container.find_all("li")])
    return []


def text_near_keyword(
    keywords: Sequence[str],
    required: Callable[[str], bool],
    max_length: int = 120,
) -> Strategy:
    """
    Short text of an element mentioning ``keywords`` that also satisfies
    ``required``. The element itself is tried before its parent.
    """
    def strategy(page: ParsedPage) -> Optional[str]:
        for elem in elements_containing(page.soup, keywords):
            for candidate in (elem, elem.parent):
                if candidate is None or candidate.name in ("body", "html", "[document]"):
                    continue
                text = clean_text(candidate.get_text(" ", strip=True))
                if len(text) <= max_length and required(text):
                    return text
        return None
    return strategy


def regex_in_body(pattern: "re.Pattern[str]", group: int = 0) -> Strategy:
    """First regex match in the page's visible text."""
    def strategy(page: ParsedPage) -> Optional[str]:
        match = pattern.search(page.body_text)
        if not match:
            return None
        return clean_text(match.group(group)) or None
    return strategy
