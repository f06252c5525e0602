# Package extraction module
from tour_crawler.package.classifier import Classification, PackageClassifier
from tour_crawler.package.destination import DestinationClassifier, Gazetteer
from tour_crawler.package.extractor import ExtractedPackage, PackageExtractor

__all__ = [
    "Classification",
    "DestinationClassifier",
    "ExtractedPackage",
    "Gazetteer",
    "PackageClassifier",
    "PackageExtractor",
]
