"""
Tour package crawler.
Discovers travel-package pages on an agency site and extracts them into
structured records.
"""

__version__ = "1.0.0"
