"""
Supabase connection for the package store.
One client per process, created on first use from the crawler config.
"""

from typing import Optional
from supabase import create_client, Client

from tour_crawler.config import CrawlerConfig, get_config
from tour_crawler.logging_config import get_logger

logger = get_logger("database.supabase")

_client: Optional[Client] = None


def connect(config: CrawlerConfig) -> Client:
    """Open a new client with the service key."""
    if not config.supabase_url:
        raise ValueError("SUPABASE_URL is not set")
    if not config.supabase_service_key:
        raise ValueError("SUPABASE_SERVICE_KEY is not set")

    client = create_client(config.supabase_url, config.supabase_service_key)
    logger.info("Supabase client initialized")
    return client


def get_supabase(config: Optional[CrawlerConfig] = None) -> Client:
    """Get the shared Supabase client, connecting on first call."""
    global _client
    if _client is None:
        _client = connect(config or get_config())
    return _client


def reset_supabase():
    """Drop the shared client, e.g. after the config was reloaded."""
    global _client
    _client = None
