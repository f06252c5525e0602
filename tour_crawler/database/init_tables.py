"""
Database table initialization script for Supabase.
Run this to print the SQL that creates the crawler tables.
"""

from tour_crawler.logging_config import setup_logging, get_logger

logger = get_logger("database.init")

CREATE_TOUR_SOURCES_TABLE = """
CREATE TABLE IF NOT EXISTS tour_sources (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    name TEXT NOT NULL,
    url TEXT UNIQUE NOT NULL,
    is_active BOOLEAN DEFAULT true,
    max_depth INTEGER,
    max_pages INTEGER,
    request_delay_ms INTEGER,
    timeout_ms INTEGER,
    user_agent TEXT,
    follow_internal_links BOOLEAN DEFAULT true,
    last_crawled_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ DEFAULT NOW()
);
"""

CREATE_TOUR_PACKAGES_TABLE = """
CREATE TABLE IF NOT EXISTS tour_packages (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    source_id UUID REFERENCES tour_sources(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT,
    price TEXT,
    duration TEXT,
    image_url TEXT,
    original_url TEXT NOT NULL,
    services JSONB DEFAULT '[]'::jsonb,
    hotels JSONB DEFAULT '[]'::jsonb,
    required_documents JSONB DEFAULT '[]'::jsonb,
    cancellation_policy TEXT,
    is_published BOOLEAN DEFAULT true,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_tour_packages_source ON tour_packages(source_id);
"""

CREATE_TOUR_LOGS_TABLE = """
CREATE TABLE IF NOT EXISTS tour_logs (
    id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
    level TEXT NOT NULL,
    message TEXT NOT NULL,
    detail TEXT,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_tour_logs_level ON tour_logs(level);
"""

TABLES = [
    ("TOUR SOURCES TABLE", CREATE_TOUR_SOURCES_TABLE),
    ("TOUR PACKAGES TABLE", CREATE_TOUR_PACKAGES_TABLE),
    ("TOUR LOGS TABLE", CREATE_TOUR_LOGS_TABLE),
]


def init_tables():
    """
    Print the table definitions.

    Note: Supabase tables are created via the dashboard or migrations,
    so the SQL is printed for manual execution.
    """
    print("=" * 60)
    print("DATABASE INITIALIZATION")
    print("=" * 60)
    print()
    print("Please run the following SQL in your Supabase SQL Editor:")
    print()
    for title, sql in TABLES:
        print("-" * 60)
        print(f"-- {title}")
        print("-" * 60)
        print(sql)
        print()
    print("=" * 60)
    print("After running the SQL, your tables will be ready.")
    print("=" * 60)


if __name__ == "__main__":
    setup_logging()
    init_tables()
