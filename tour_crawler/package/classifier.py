"""
Package page classifier - checks if a page sells a travel package.
"""

from dataclasses import dataclass
from typing import Optional
from bs4 import BeautifulSoup

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.logging_config import get_logger
from tour_crawler.package.strategies import ParsedPage, contains_any

logger = get_logger("package.classifier")


@dataclass
class Classification:
    """Classifier verdict and the signal that produced it."""
    is_package: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_package


class PackageClassifier:
    """
    Decides whether a page is a package page.
    Any one of URL marker, title keyword or body keyword is enough.
    """

    URL_MARKERS = ["/tour/", "/tours/", "product"]

    TITLE_KEYWORDS = ["تور ", " tour", "tour "]

    BODY_KEYWORDS = [
        "خدمات تور",
        "قیمت تور",
        "مدت اقامت",
        "هتل",
        "بلیط هواپیما",
        "ترانسفر",
        "tour price",
        "tour services",
        "hotel",
        "flight ticket",
        "airport transfer",
    ]

    def __init__(self, config: Optional[CrawlerConfig] = None):
        self.config = config or get_config()
        self.url_markers = self.config.url_markers or self.URL_MARKERS
        self.title_keywords = self.config.title_keywords or self.TITLE_KEYWORDS
        self.body_keywords = self.config.body_keywords or self.BODY_KEYWORDS

    def classify(self, url: str, soup: BeautifulSoup) -> Classification:
        """
        Classify a fetched page.

        Args:
            url: Normalized page URL
            soup: Parsed page

        Returns:
            Classification with the first matching signal as reason
        """
        url_lower = url.lower()
        for marker in self.url_markers:
            if marker.lower() in url_lower:
                return Classification(True, f"url marker '{marker}'")

        page = ParsedPage(url, soup)

        # Pad so " tour" and "tour " match at either end of the title
        title = f" {page.title_text.lower()} "
        for keyword in self.title_keywords:
            if keyword.lower() in title:
                return Classification(True, f"title keyword '{keyword.strip()}'")

        if contains_any(page.body_text, self.body_keywords):
            return Classification(True, "body keyword")

        logger.debug("Not a package page", extra={"url": url})
        return Classification(False)

    def is_package_page(self, url: str, soup: BeautifulSoup) -> bool:
        return self.classify(url, soup).is_package
