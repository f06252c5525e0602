"""
Tour package extractor.
Pulls package fields out of inconsistent travel-agency HTML.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Union
from bs4 import BeautifulSoup

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.database.repository import ExtractedRecord, Hotel
from tour_crawler.logging_config import get_logger
from tour_crawler.package.destination import DestinationClassifier
from tour_crawler.package.strategies import (
    FieldRule,
    ParsedPage,
    clean_text,
    contains_any,
    elements_containing,
    list_after_heading,
    parse_html,
    regex_in_body,
    select_attr,
    select_image,
    select_list,
    select_paragraphs,
    select_text,
    text_near_keyword,
)

logger = get_logger("package.extractor")

DEFAULT_TITLE = "Untitled package"
DEFAULT_DESCRIPTION = "More details are available on the agency website."
DEFAULT_PRICE = "Price varies"
DEFAULT_HOTEL_NAME = "Featured tour hotel"
DEFAULT_HOTEL_RATING = "Good"
DEFAULT_HOTEL_STARS = 4
DEFAULT_SERVICES = [
    "Hotel accommodation",
    "Travel insurance",
    "Airport transfer",
    "Tour guide",
]

CURRENCY_KEYWORDS = ["تومان", "ریال", "toman", "rial", "usd", "eur", "$", "€"]
PRICE_LABELS = ["قیمت", "price", "cost"]
DURATION_LABELS = ["مدت", "duration"]
SERVICE_HEADINGS = ["خدمات تور", "خدمات شامل", "tour services", "services include", "included services"]
HOTEL_HEADINGS = ["هتل‌ها", "هتل ها", "محل اقامت", "hotels", "accommodation"]
DOCUMENT_HEADINGS = ["مدارک مورد نیاز", "مدارک لازم", "required documents", "documents required"]
CANCELLATION_LABELS = [
    "سیاست کنسلی",
    "قوانین کنسلی",
    "شرایط کنسلی",
    "cancellation policy",
    "cancellation terms",
]
CANCELLATION_KEYWORDS = ["کنسل", "cancel"]

CURRENCY_PATTERN = re.compile(r"تومان|ریال|\$|€|(?<![a-z])(?:tomans?|rials?|usd|eur)(?![a-z])", re.IGNORECASE)
DAY_NIGHT_PATTERN = re.compile(r"روز|شب|(?<![a-z])(?:days?|nights?)(?![a-z])", re.IGNORECASE)
DURATION_PATTERN = re.compile(r"\d+\s*(?:روز|شب|days?|nights?)", re.IGNORECASE)
THOUSANDS_PATTERN = re.compile(r"(?<=\d)[,\s]+(?=\d{3}(?!\d))")
STARS_PATTERN = re.compile(r"(\d)\s*(?:ستاره|stars?|\*|★)", re.IGNORECASE)
HOTEL_IN_TEXT_PATTERNS = [
    re.compile(r"هتل[ \t]+([^\d\n,،.|:()]{2,40})"),
    re.compile(r"\bHotel[ \t]+([A-Z][\w'&-]*(?:[ \t]+[A-Z][\w'&-]*){0,3})"),
]
HOTEL_IN_TITLE_PATTERN = re.compile(r"(?:هتل|hotel)\s+(\S+)", re.IGNORECASE)


def clean_price(price: str) -> str:
    """Collapse whitespace and re-join digit groups with commas."""
    return THOUSANDS_PATTERN.sub(",", clean_text(price))


def clamp_stars(value: int) -> int:
    return max(1, min(5, value))


def _has_currency(text: str) -> bool:
    return bool(CURRENCY_PATTERN.search(text))


def _has_day_or_night(text: str) -> bool:
    return bool(DAY_NIGHT_PATTERN.search(text))


@dataclass
class ExtractedPackage:
    """Result of the extraction-only path."""
    record: ExtractedRecord
    destination: str


class PackageExtractor:
    """
    Extracts a package record from HTML.

    Every field has its own ordered strategy chain; a field that no strategy
    can read falls back to its default, so extraction never fails as a whole.
    """

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        destinations: Optional[DestinationClassifier] = None
    ):
        self.config = config or get_config()
        self.destinations = destinations or DestinationClassifier(config=self.config)
        self.title_suffixes = self.config.title_suffixes

        self.title_rule = FieldRule(
            name="title",
            strategies=[
                select_text("h1"),
                select_text(".tour-title"),
                select_text(".product-title"),
                select_text(".entry-title"),
                self._title_from_head,
            ],
            is_valid=lambda value: len(value) > 3,
            default=lambda page: DEFAULT_TITLE,
        )
        self.description_rule = FieldRule(
            name="description",
            strategies=[
                select_text(".tour-description"),
                select_text(".product-description"),
                select_text(".description"),
                select_paragraphs(".content-area p"),
                select_paragraphs(".entry-content p"),
                select_paragraphs("body p"),
                select_attr("meta[name='description']", "content"),
                select_attr("meta[property='og:description']", "content"),
            ],
            is_valid=lambda value: len(value) > 10,
            default=lambda page: DEFAULT_DESCRIPTION,
        )
        self.price_rule = FieldRule(
            name="price",
            strategies=[
                select_text(".tour-price"),
                select_text(".price"),
                select_text(".product-price"),
                text_near_keyword(PRICE_LABELS, _has_currency),
                text_near_keyword(CURRENCY_KEYWORDS, _has_currency),
            ],
            is_valid=_has_currency,
            default=lambda page: DEFAULT_PRICE,
            clean=clean_price,
        )
        self.duration_rule = FieldRule(
            name="duration",
            strategies=[
                select_text(".tour-duration"),
                select_text(".duration"),
                text_near_keyword(DURATION_LABELS, _has_day_or_night, max_length=50),
                regex_in_body(DURATION_PATTERN),
            ],
            is_valid=_has_day_or_night,
            default=lambda page: "",
        )
        self.image_rule = FieldRule(
            name="image_url",
            strategies=[
                select_image(".tour-image img"),
                select_image(".product-image img"),
                select_image(".gallery img"),
                select_image(".wp-post-image"),
                select_image(".featured-image img"),
                select_image("meta[property='og:image']"),
                select_image("img"),
            ],
            is_valid=bool,
            default=lambda page: "",
        )
        self.services_rule = FieldRule(
            name="services",
            strategies=[
                select_list(".tour-services li"),
                select_list(".services li"),
                list_after_heading(SERVICE_HEADINGS),
            ],
            is_valid=bool,
            default=lambda page: list(DEFAULT_SERVICES),
        )
        self.hotels_rule = FieldRule(
            name="hotels",
            strategies=[
                self._hotel_blocks,
                self._hotels_after_heading,
                self._hotel_in_body,
                self._hotel_in_title,
            ],
            is_valid=bool,
            default=lambda page: [Hotel(name=DEFAULT_HOTEL_NAME, stars=DEFAULT_HOTEL_STARS)],
        )
        self.documents_rule = FieldRule(
            name="required_documents",
            strategies=[
                select_list(".required-documents li"),
                select_list(".documents li"),
                list_after_heading(DOCUMENT_HEADINGS),
            ],
            is_valid=bool,
            default=lambda page: self.destinations.default_documents(self.extract_title(page)),
        )
        self.cancellation_rule = FieldRule(
            name="cancellation_policy",
            strategies=[
                select_text(".cancellation-policy"),
                self._cancellation_near_label,
            ],
            is_valid=lambda value: len(value) > 20 and contains_any(value, CANCELLATION_KEYWORDS),
            default=lambda page: None,
            clean=self._strip_cancellation_labels,
        )

    # ==================== TITLE ====================

    def _title_from_head(self, page: ParsedPage) -> Optional[str]:
        """<title> text without the site-name suffix."""
        title = page.title_text
        for suffix in self.title_suffixes:
            title = title.replace(suffix, "")
        return clean_text(title) or None

    def extract_title(self, page: ParsedPage) -> str:
        if page.title is None:
            page.title = self.title_rule.extract(page)
        return page.title

    # ==================== HOTELS ====================

    def _hotel_blocks(self, page: ParsedPage) -> Optional[List[Hotel]]:
        """Hotels laid out as ``.hotel-item`` cards."""
        hotels = []
        for block in page.soup.select(".hotel-item"):
            name_elem = block.select_one(".hotel-name")
            name = clean_text(name_elem.get_text(" ", strip=True)) if name_elem else ""
            if not name:
                continue

            stars_elem = block.select_one(".hotel-stars")
            stars = DEFAULT_HOTEL_STARS
            if stars_elem is not None:
                digits = re.search(r"\d", stars_elem.get_text())
                if digits:
                    stars = int(digits.group())
                elif "★" in stars_elem.get_text():
                    stars = stars_elem.get_text().count("★")

            rating_elem = block.select_one(".hotel-rating")
            price_elem = block.select_one(".hotel-price")
            img = block.select_one("img")

            hotels.append(Hotel(
                name=name,
                image_url=self._hotel_image(page, img),
                rating=clean_text(rating_elem.get_text()) if rating_elem else DEFAULT_HOTEL_RATING,
                stars=clamp_stars(stars),
                price=clean_price(price_elem.get_text()) if price_elem else DEFAULT_PRICE,
            ))
        return hotels or None

    @staticmethod
    def _hotel_image(page: ParsedPage, img) -> str:
        if img is None or not img.get("src"):
            return ""
        return page.absolute(img["src"]) or ""

    def _hotels_after_heading(self, page: ParsedPage) -> Optional[List[Hotel]]:
        """List items under a hotels heading, with "N stars" parsed out."""
        items = list_after_heading(HOTEL_HEADINGS)(page)
        if not items:
            return None

        hotels = []
        for text in items:
            match = STARS_PATTERN.search(text)
            stars = int(match.group(1)) if match else DEFAULT_HOTEL_STARS
            name = clean_text(STARS_PATTERN.sub("", text))
            if name:
                hotels.append(Hotel(name=name, stars=clamp_stars(stars)))
        return hotels or None

    def _hotel_in_body(self, page: ParsedPage) -> Optional[List[Hotel]]:
        """A "hotel <name>" mention anywhere in the page text."""
        for pattern in HOTEL_IN_TEXT_PATTERNS:
            match = pattern.search(page.body_text)
            if match:
                name = clean_text(match.group(1))
                if len(name) >= 2:
                    return [Hotel(name=name)]
        return None

    def _hotel_in_title(self, page: ParsedPage) -> Optional[List[Hotel]]:
        match = HOTEL_IN_TITLE_PATTERN.search(self.extract_title(page))
        if match:
            return [Hotel(name=match.group(1).strip())]
        return None

    # ==================== CANCELLATION ====================

    def _cancellation_near_label(self, page: ParsedPage) -> Optional[str]:
        """Text of the block that carries a cancellation heading."""
        for elem in elements_containing(page.soup, CANCELLATION_LABELS):
            container = elem.parent
            if container is not None and container.name not in ("body", "html", "[document]"):
                text = clean_text(container.get_text(" ", strip=True))
                if len(text) <= 1500:
                    return text

            # Heading and policy are siblings of a large container
            parts = [elem.get_text(" ", strip=True)]
            sibling = elem.find_next_sibling()
            if sibling is not None:
                parts.append(sibling.get_text(" ", strip=True))
            return clean_text(" ".join(parts))
        return None

    @staticmethod
    def _strip_cancellation_labels(policy: str) -> str:
        for label in CANCELLATION_LABELS:
            policy = re.sub(re.escape(label), "", policy, flags=re.IGNORECASE)
        return clean_text(policy).lstrip(":-– ").strip()

    # ==================== PUBLIC API ====================

    def extract(
        self,
        url: str,
        html: Union[str, BeautifulSoup],
        source_id: Optional[str] = None
    ) -> ExtractedRecord:
        """
        Extract a package record from a page.

        Args:
            url: Normalized page URL, stored as the record's original URL
            html: Page HTML or an already parsed soup
            source_id: Id of the source being crawled

        Returns:
            ExtractedRecord with every field filled or defaulted
        """
        soup = html if isinstance(html, BeautifulSoup) else parse_html(html)
        page = ParsedPage(url, soup)

        title = self.extract_title(page)

        record = ExtractedRecord(
            source_id=source_id,
            title=title,
            description=self.description_rule.extract(page),
            price=self.price_rule.extract(page),
            duration=self.duration_rule.extract(page),
            image_url=self.image_rule.extract(page),
            original_url=url,
            services=self.services_rule.extract(page),
            hotels=self.hotels_rule.extract(page),
            required_documents=self.documents_rule.extract(page),
            cancellation_policy=self.cancellation_rule.extract(page),
            is_published=True,
        )

        logger.info(
            f"Extracted package: {title[:50]}",
            extra={"url": url}
        )
        return record

    def extract_package(
        self,
        url: str,
        html: Union[str, BeautifulSoup],
        source_id: Optional[str] = None
    ) -> ExtractedPackage:
        """Extract a record and flag its destination as foreign or domestic."""
        record = self.extract(url, html, source_id)
        return ExtractedPackage(
            record=record,
            destination=self.destinations.classify(record.title),
        )
