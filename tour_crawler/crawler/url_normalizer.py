"""
URL canonicalization for crawl deduplication.
"""

from typing import Optional
from urllib.parse import urljoin, urlsplit


def _strip_fragment_and_query(href: str) -> str:
    return href.split("#", 1)[0].split("?", 1)[0]


def _base_directory(base_url: str) -> str:
    """Base URL up to and including the last "/" of its path."""
    parts = urlsplit(_strip_fragment_and_query(base_url))
    if parts.scheme and parts.netloc:
        directory = parts.path[:parts.path.rfind("/") + 1] or "/"
        return f"{parts.scheme}://{parts.netloc}{directory}"
    return base_url[:base_url.rfind("/") + 1]


def normalize_url(href: str, base_url: Optional[str] = None, seed_url: Optional[str] = None) -> str:
    """
    Canonicalize a link into a comparable absolute URL.

    Fragment and query are dropped, trailing slashes removed, root-relative
    links resolved against the base (or seed) origin and plain relative links
    against the base directory. Never raises: an unparsable href comes back
    unchanged.

    Args:
        href: Raw link as found in the page
        base_url: URL of the page the link was found on
        seed_url: Fallback origin for root-relative links without a base

    Returns:
        Normalized URL string
    """
    raw = href
    try:
        clean = _strip_fragment_and_query(href.strip())

        if clean.startswith("//"):
            origin = urlsplit(base_url or seed_url or "")
            scheme = origin.scheme or "https"
            resolved = f"{scheme}:{clean}"
        elif clean.startswith("/"):
            origin = urlsplit(base_url or seed_url or "")
            if not origin.scheme or not origin.netloc:
                return clean.rstrip("/") or clean
            resolved = f"{origin.scheme}://{origin.netloc}{clean}"
        elif urlsplit(clean).scheme:
            # Absolute, or a non-HTTP scheme such as mailto:
            resolved = clean
        elif base_url:
            if not clean:
                resolved = _strip_fragment_and_query(base_url)
            else:
                resolved = urljoin(_base_directory(base_url), clean)
        else:
            resolved = clean

        # Never strip into the "scheme://" separator
        stripped = resolved.rstrip("/")
        if stripped.endswith(":") or stripped.endswith(":/"):
            return resolved
        return stripped
    except ValueError:
        return raw


def url_host(url: str) -> str:
    """Lower-cased host[:port] of a URL, empty when it has none."""
    try:
        return urlsplit(url).netloc.lower()
    except ValueError:
        return ""


def same_host(url: str, seed_url: str) -> bool:
    """True when ``url`` lives on the seed's host."""
    host = url_host(url)
    return bool(host) and host == url_host(seed_url)
