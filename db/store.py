import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from config import settings
from db.models import SCHEMA, Ad, Query

log = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Store:
    def __init__(self, db_path: Path | str | None = None):
        path = db_path or settings.database_path
        self.db_path = Path(path) if isinstance(path, str) else path
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._connection.executescript(SCHEMA)
        await self._connection.commit()

    async def close(self) -> None:
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    # === Queries ===

    async def add_query(
        self,
        chat_id: int,
        term: str,
        radius: int,
        city: int,
        city_name: str,
        max_price: int | None = None,
        min_price: int | None = None,
    ) -> int:
        now = _now()
        cursor = await self.conn.execute(
            """
            INSERT INTO queries
            (chat_id, term, radius, city, city_name, max_price, min_price, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (chat_id, term, radius, city, city_name, max_price, min_price, now, now),
        )
        await self.conn.commit()
        return cursor.lastrowid  # type: ignore

    async def get_query(self, query_id: int) -> Query | None:
        cursor = await self.conn.execute("SELECT * FROM queries WHERE id = ?", (query_id,))
        row = await cursor.fetchone()
        return self._row_to_query(row) if row else None

    async def get_queries(self, chat_id: int | None = None) -> list[Query]:
        sql = "SELECT * FROM queries"
        params: list = []
        if chat_id is not None:
            sql += " WHERE chat_id = ?"
            params.append(chat_id)
        sql += " ORDER BY id"
        cursor = await self.conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_query(row) for row in rows]

    async def delete_query(self, query_id: int) -> bool:
        """Delete a query together with all ads stored for it."""
        conn = self.conn
        try:
            await conn.execute("BEGIN")
            await conn.execute("DELETE FROM ads WHERE query_id = ?", (query_id,))
            cursor = await conn.execute("DELETE FROM queries WHERE id = ?", (query_id,))
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
        deleted = cursor.rowcount > 0
        if deleted:
            log.info(f"Deleted query #{query_id} and its ads")
        return deleted

    def _row_to_query(self, row: aiosqlite.Row) -> Query:
        return Query(
            id=row["id"],
            chat_id=row["chat_id"],
            term=row["term"],
            radius=row["radius"],
            city=row["city"],
            city_name=row["city_name"],
            max_price=row["max_price"],
            min_price=row["min_price"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    # === Ads ===

    async def add_ad(self, query_id: int, external_id: str, location: str = "") -> bool:
        cursor = await self.conn.execute(
            """
            INSERT INTO ads (external_id, query_id, location, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(query_id, external_id) DO NOTHING
            """,
            (external_id, query_id, location, _now()),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def is_ad_known(self, query_id: int, external_id: str) -> bool:
        cursor = await self.conn.execute(
            "SELECT 1 FROM ads WHERE query_id = ? AND external_id = ?",
            (query_id, external_id),
        )
        return await cursor.fetchone() is not None

    async def get_known_ad_ids(self, query_id: int) -> set[str]:
        cursor = await self.conn.execute(
            "SELECT external_id FROM ads WHERE query_id = ?", (query_id,)
        )
        rows = await cursor.fetchall()
        return {row["external_id"] for row in rows}

    async def get_ads(self, query_id: int) -> list[Ad]:
        cursor = await self.conn.execute(
            "SELECT * FROM ads WHERE query_id = ? ORDER BY id", (query_id,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_ad(row) for row in rows]

    async def count_ads(self, query_id: int | None = None) -> int:
        if query_id is None:
            cursor = await self.conn.execute("SELECT COUNT(*) FROM ads")
        else:
            cursor = await self.conn.execute(
                "SELECT COUNT(*) FROM ads WHERE query_id = ?", (query_id,)
            )
        return (await cursor.fetchone())[0]

    def _row_to_ad(self, row: aiosqlite.Row) -> Ad:
        return Ad(
            id=row["id"],
            external_id=row["external_id"],
            query_id=row["query_id"],
            location=row["location"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


store = Store()
