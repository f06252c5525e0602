# Database module
from tour_crawler.database.repository import (
    ExtractedRecord,
    Hotel,
    MemoryRepository,
    PersistenceSink,
    Repository,
    SourceDescriptor,
    TourLog,
    get_repository,
)

__all__ = [
    "ExtractedRecord",
    "Hotel",
    "MemoryRepository",
    "PersistenceSink",
    "Repository",
    "SourceDescriptor",
    "TourLog",
    "get_repository",
]
