"""
Configuration loader for the tour package crawler.
Handles environment variables and YAML defaults configuration.
Sources are loaded from the database or given on the command line.
"""

import os
from pathlib import Path
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field
import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class CrawlerConfig:
    """Main crawler configuration."""
    # Supabase settings (only needed by the database repository)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Crawl defaults for sources that do not set their own bounds
    max_depth: int = 3
    max_pages: int = 50
    request_delay_ms: int = 1000
    timeout_ms: int = 30000
    user_agent: str = DEFAULT_USER_AGENT

    # Logging
    log_level: str = "INFO"

    # Page classifier keyword sets (empty = built-in lists)
    url_markers: List[str] = field(default_factory=list)
    title_keywords: List[str] = field(default_factory=list)
    body_keywords: List[str] = field(default_factory=list)

    # Suffixes stripped from <title> when it is used as the package title
    title_suffixes: List[str] = field(default_factory=list)

    gazetteer_path: Path = PROJECT_ROOT / "config" / "gazetteer.yaml"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "CrawlerConfig":
        """Load configuration from environment and YAML file."""
        supabase_url = os.getenv("SUPABASE_URL")
        supabase_service_key = os.getenv("SUPABASE_SERVICE_KEY")

        # Default values
        max_depth = int(os.getenv("CRAWL_MAX_DEPTH", "3"))
        max_pages = int(os.getenv("CRAWL_MAX_PAGES", "50"))
        request_delay_ms = int(os.getenv("CRAWL_REQUEST_DELAY_MS", "1000"))
        timeout_ms = int(os.getenv("CRAWL_TIMEOUT_MS", "30000"))
        user_agent = os.getenv("CRAWL_USER_AGENT", DEFAULT_USER_AGENT)
        log_level = os.getenv("LOG_LEVEL", "INFO")
        gazetteer_path = os.getenv("GAZETTEER_PATH")

        if config_path is None:
            config_path = PROJECT_ROOT / "config" / "crawler.yaml"
        else:
            config_path = Path(config_path)

        url_markers: List[str] = []
        title_keywords: List[str] = []
        body_keywords: List[str] = []
        title_suffixes: List[str] = []

        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}

            defaults = yaml_config.get("defaults", {})
            max_depth = defaults.get("max_depth", max_depth)
            max_pages = defaults.get("max_pages", max_pages)
            request_delay_ms = defaults.get("request_delay_ms", request_delay_ms)
            timeout_ms = defaults.get("timeout_ms", timeout_ms)
            user_agent = defaults.get("user_agent", user_agent)

            classifier = yaml_config.get("classifier", {})
            url_markers = classifier.get("url_markers", [])
            title_keywords = classifier.get("title_keywords", [])
            body_keywords = classifier.get("body_keywords", [])

            extraction = yaml_config.get("extraction", {})
            title_suffixes = extraction.get("title_suffixes", [])

            if not gazetteer_path and yaml_config.get("gazetteer_path"):
                gazetteer_path = str(PROJECT_ROOT / yaml_config["gazetteer_path"])

        return cls(
            supabase_url=supabase_url,
            supabase_service_key=supabase_service_key,
            max_depth=max_depth,
            max_pages=max_pages,
            request_delay_ms=request_delay_ms,
            timeout_ms=timeout_ms,
            user_agent=user_agent,
            log_level=log_level,
            url_markers=url_markers,
            title_keywords=title_keywords,
            body_keywords=body_keywords,
            title_suffixes=title_suffixes,
            gazetteer_path=Path(gazetteer_path) if gazetteer_path
            else PROJECT_ROOT / "config" / "gazetteer.yaml",
        )

    def source_defaults(self) -> Dict[str, Any]:
        """Tunables applied to a source that does not override them."""
        return {
            "max_depth": self.max_depth,
            "max_pages": self.max_pages,
            "request_delay_ms": self.request_delay_ms,
            "timeout_ms": self.timeout_ms,
            "user_agent": self.user_agent,
        }


# Global config instance
_config: Optional[CrawlerConfig] = None


def get_config(config_path: Optional[str] = None) -> CrawlerConfig:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = CrawlerConfig.load(config_path)
    return _config


def reload_config(config_path: Optional[str] = None) -> CrawlerConfig:
    """Force reload the configuration."""
    global _config
    _config = CrawlerConfig.load(config_path)
    return _config
