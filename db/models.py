from dataclasses import dataclass
from datetime import datetime

from core.scanner import SearchSpec


@dataclass
class Query:
    id: int | None
    chat_id: int
    term: str
    radius: int
    city: int
    city_name: str
    max_price: int | None
    min_price: int | None
    created_at: datetime
    updated_at: datetime

    def to_search_spec(self, page: int = 1) -> SearchSpec:
        return SearchSpec(
            term=self.term,
            city_code=self.city,
            radius_km=self.radius,
            max_price=self.max_price,
            min_price=self.min_price,
            page=page,
        )


@dataclass
class Ad:
    id: int | None
    external_id: str
    query_id: int
    location: str
    created_at: datetime


SCHEMA = """
CREATE TABLE IF NOT EXISTS queries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id INTEGER NOT NULL,
    term TEXT NOT NULL,
    radius INTEGER NOT NULL,
    city INTEGER NOT NULL,
    city_name TEXT NOT NULL,
    max_price INTEGER,
    min_price INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS ads (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    external_id TEXT NOT NULL,
    query_id INTEGER NOT NULL,
    location TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    FOREIGN KEY (query_id) REFERENCES queries(id) ON DELETE CASCADE,
    UNIQUE(query_id, external_id)
);

CREATE INDEX IF NOT EXISTS idx_queries_chat ON queries(chat_id);
CREATE INDEX IF NOT EXISTS idx_ads_query ON ads(query_id);
"""
