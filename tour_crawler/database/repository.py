"""
Data access repository for the crawler.
Defines the entities handed to storage and the sink the crawler writes to.
"""

from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Protocol, Tuple
from dataclasses import dataclass, field, asdict, replace

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.logging_config import get_logger

logger = get_logger("database.repository")


@dataclass(frozen=True)
class SourceDescriptor:
    """A site to crawl and the bounds to crawl it under."""
    id: Optional[str] = None
    name: str = ""
    url: str = ""
    is_active: bool = True
    max_depth: int = 3
    max_pages: int = 50
    request_delay_ms: int = 1000
    timeout_ms: int = 30000
    user_agent: str = ""
    follow_internal_links: bool = True

    @property
    def seed_url(self) -> str:
        return self.url

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        config: Optional[CrawlerConfig] = None
    ) -> "SourceDescriptor":
        """Build a descriptor from a row, filling unset tunables from config."""
        defaults = (config or get_config()).source_defaults()

        def pick(key: str):
            value = data.get(key)
            return defaults[key] if value is None else value

        return cls(
            id=data.get("id"),
            name=data.get("name") or data["url"],
            url=data["url"],
            is_active=data.get("is_active", True),
            max_depth=int(pick("max_depth")),
            max_pages=int(pick("max_pages")),
            request_delay_ms=int(pick("request_delay_ms")),
            timeout_ms=int(pick("timeout_ms")),
            user_agent=pick("user_agent") or "",
            follow_internal_links=data.get("follow_internal_links", True),
        )


@dataclass
class Hotel:
    """Hotel offered as part of a package."""
    name: str
    image_url: str = ""
    rating: str = "Good"
    stars: int = 4
    price: str = "Price varies"


@dataclass
class ExtractedRecord:
    """A travel package pulled out of one page."""
    source_id: Optional[str]
    title: str
    description: str
    price: str
    duration: str
    image_url: str
    original_url: str
    services: List[str] = field(default_factory=list)
    hotels: List[Hotel] = field(default_factory=list)
    required_documents: List[str] = field(default_factory=list)
    cancellation_policy: Optional[str] = None
    is_published: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TourLog:
    """Operator-facing log entry."""
    level: str
    message: str
    detail: Optional[str] = None
    created_at: Optional[str] = None


class PersistenceSink(Protocol):
    """Everything the crawler writes goes through these four calls."""

    def delete_records_for_source(self, source_id: Optional[str]) -> int:
        ...

    def create_record(self, record: ExtractedRecord) -> Any:
        ...

    def update_last_crawled(self, source_id: Optional[str], timestamp: datetime) -> None:
        ...

    def append_log(self, level: str, message: str, detail: Optional[str] = None) -> Any:
        ...


class Repository:
    """
    Supabase-backed data access layer.
    All database interactions go through this class.
    """

    def __init__(self, db=None):
        if db is None:
            from tour_crawler.database.supabase_client import get_supabase
            db = get_supabase()
        self.db = db

    # ==================== SOURCES ====================

    def get_all_sources(self) -> List[SourceDescriptor]:
        """Get all registered sources."""
        result = self.db.table("tour_sources").select("*").execute()
        return [SourceDescriptor.from_dict(row) for row in result.data]

    def get_active_sources(self) -> List[SourceDescriptor]:
        """Get only active sources."""
        result = self.db.table("tour_sources").select("*").eq("is_active", True).execute()
        return [SourceDescriptor.from_dict(row) for row in result.data]

    def get_source(self, source_id: str) -> Optional[SourceDescriptor]:
        """Get a source by id."""
        result = self.db.table("tour_sources").select("*").eq("id", source_id).limit(1).execute()
        if result.data:
            return SourceDescriptor.from_dict(result.data[0])
        return None

    def register_source(self, source: SourceDescriptor) -> SourceDescriptor:
        """
        Give an ad-hoc source the id of its ``tour_sources`` row.

        The row is looked up by URL and inserted when missing. The bounds of
        ``source`` are kept either way.
        """
        result = self.db.table("tour_sources").select("id").eq("url", source.url).limit(1).execute()
        if not result.data:
            data = {
                "name": source.name,
                "url": source.url,
                "max_depth": source.max_depth,
                "max_pages": source.max_pages,
                "request_delay_ms": source.request_delay_ms,
                "timeout_ms": source.timeout_ms,
                "user_agent": source.user_agent or None,
                "follow_internal_links": source.follow_internal_links,
            }
            result = self.db.table("tour_sources").insert(data).execute()
            if not result.data:
                raise RuntimeError(f"Failed to register source: {source.url}")
            logger.info(f"Registered source {source.name}", extra={"url": source.url})

        return replace(source, id=result.data[0]["id"])

    def update_last_crawled(self, source_id: Optional[str], timestamp: datetime) -> None:
        """Stamp the source with the time its crawl finished."""
        self.db.table("tour_sources").update(
            {"last_crawled_at": timestamp.isoformat()}
        ).eq("id", source_id).execute()

    # ==================== PACKAGES ====================

    def delete_records_for_source(self, source_id: Optional[str]) -> int:
        """Remove previously extracted packages of a source."""
        result = self.db.table("tour_packages").delete().eq("source_id", source_id).execute()
        deleted = len(result.data or [])
        logger.info(f"Deleted {deleted} stale packages", extra={"source": source_id})
        return deleted

    def create_record(self, record: ExtractedRecord) -> Dict[str, Any]:
        """Insert one extracted package."""
        data = record.to_dict()
        data["created_at"] = datetime.now(timezone.utc).isoformat()

        result = self.db.table("tour_packages").insert(data).execute()

        if result.data:
            logger.info(f"Saved package: {record.title[:50]}", extra={"url": record.original_url})
            return result.data[0]
        raise RuntimeError(f"Failed to save package: {record.original_url}")

    def get_packages(self, source_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Get stored packages of a source."""
        result = self.db.table("tour_packages").select("*").eq(
            "source_id", source_id
        ).limit(limit).execute()
        return result.data

    # ==================== LOGS ====================

    def append_log(self, level: str, message: str, detail: Optional[str] = None) -> TourLog:
        """Append an operator-facing log entry."""
        data = {"level": level, "message": message, "detail": detail}

        result = self.db.table("tour_logs").insert(data).execute()

        if result.data:
            row = result.data[0]
            return TourLog(
                level=row["level"],
                message=row["message"],
                detail=row.get("detail"),
                created_at=row.get("created_at"),
            )
        raise RuntimeError("Failed to append log entry")


class MemoryRepository:
    """
    In-memory sink used for dry runs and tests.
    Keeps everything in lists so callers can inspect what a crawl wrote.
    """

    def __init__(self):
        self.records: List[ExtractedRecord] = []
        self.logs: List[TourLog] = []
        self.last_crawled: Dict[Optional[str], datetime] = {}
        self.deleted_sources: List[Optional[str]] = []

    def delete_records_for_source(self, source_id: Optional[str]) -> int:
        self.deleted_sources.append(source_id)
        kept = [r for r in self.records if r.source_id != source_id]
        deleted = len(self.records) - len(kept)
        self.records = kept
        return deleted

    def create_record(self, record: ExtractedRecord) -> ExtractedRecord:
        self.records.append(record)
        return record

    def update_last_crawled(self, source_id: Optional[str], timestamp: datetime) -> None:
        self.last_crawled[source_id] = timestamp

    def append_log(self, level: str, message: str, detail: Optional[str] = None) -> TourLog:
        entry = TourLog(
            level=level,
            message=message,
            detail=detail,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.logs.append(entry)
        return entry

    def logs_at(self, level: str) -> List[Tuple[str, Optional[str]]]:
        """(message, detail) pairs logged at the given level."""
        return [(log.message, log.detail) for log in self.logs if log.level == level]


# Global repository instance
_repository: Optional[Repository] = None


def get_repository() -> Repository:
    """Get or create the repository singleton."""
    global _repository
    if _repository is None:
        _repository = Repository()
    return _repository
