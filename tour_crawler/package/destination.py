"""
Destination detector.
Tells domestic from foreign packages using a place-name gazetteer.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.logging_config import get_logger

logger = get_logger("package.destination")

DOMESTIC = "domestic"
FOREIGN = "foreign"


@dataclass
class Gazetteer:
    """Place names per destination class and the documents each class needs."""
    domestic: List[str] = field(default_factory=list)
    foreign: List[str] = field(default_factory=list)
    documents: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Gazetteer":
        """Load a gazetteer YAML file."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        gazetteer = cls(
            domestic=[str(name) for name in data.get("domestic", [])],
            foreign=[str(name) for name in data.get("foreign", [])],
            documents={
                key: [str(doc) for doc in docs]
                for key, docs in (data.get("documents") or {}).items()
            },
        )
        logger.debug(
            f"Loaded gazetteer with {len(gazetteer.domestic)} domestic and "
            f"{len(gazetteer.foreign)} foreign places"
        )
        return gazetteer


class DestinationClassifier:
    """
    Classifies a package title as domestic or foreign.
    A domestic match always wins over a foreign one.
    """

    def __init__(
        self,
        gazetteer: Optional[Gazetteer] = None,
        config: Optional[CrawlerConfig] = None
    ):
        if gazetteer is None:
            config = config or get_config()
            gazetteer = Gazetteer.load(config.gazetteer_path)
        self.gazetteer = gazetteer
        self._domestic = [name.lower() for name in gazetteer.domestic]
        self._foreign = [name.lower() for name in gazetteer.foreign]

    def classify(self, title: str) -> str:
        """
        Args:
            title: Package title

        Returns:
            "foreign" or "domestic"
        """
        text = title.strip().lower()

        if any(name in text for name in self._domestic):
            return DOMESTIC
        if any(name in text for name in self._foreign):
            return FOREIGN
        return DOMESTIC

    def is_foreign(self, title: str) -> bool:
        return self.classify(title) == FOREIGN

    def default_documents(self, title: str) -> List[str]:
        """Documents usually required for the title's destination class."""
        return list(self.gazetteer.documents.get(self.classify(title), []))
