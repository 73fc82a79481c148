"""Async SQLite persistence for user-authored compliance summaries."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosqlite

from .schemas import Summary, SummaryCreate


def _utc_now() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds")


def _row_to_summary(row: Dict[str, Any]) -> Summary:
    return Summary(
        id=int(row["id"]),
        title=row["title"],
        content=row["content"],
        extract_ids=json.loads(row["extract_ids"] or "[]"),
        keywords=json.loads(row["keywords"] or "[]"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class SummaryStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._init_lock = asyncio.Lock()
        self._initialized = False

    async def init(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(self.db_path)
            try:
                await conn.execute("PRAGMA journal_mode=WAL;")
                await conn.execute("PRAGMA synchronous=NORMAL;")

                await conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS summaries (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        title TEXT NOT NULL,
                        content TEXT NOT NULL,
                        extract_ids TEXT NOT NULL,
                        keywords TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )
                await conn.execute("CREATE INDEX IF NOT EXISTS idx_summaries_created ON summaries(created_at)")

                await conn.commit()
            finally:
                await conn.close()
            self._initialized = True

    async def _conn(self) -> aiosqlite.Connection:
        await self.init()
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        return conn

    async def create_summary(self, payload: SummaryCreate) -> Summary:
        now = _utc_now()
        conn = await self._conn()
        try:
            cur = await conn.execute(
                """
                INSERT INTO summaries (title, content, extract_ids, keywords, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    payload.title,
                    payload.content,
                    json.dumps(payload.extract_ids),
                    json.dumps(payload.keywords),
                    now,
                    now,
                ),
            )
            summary_id = cur.lastrowid
            await cur.close()
            await conn.commit()
        finally:
            await conn.close()
        return Summary(
            id=int(summary_id),
            title=payload.title,
            content=payload.content,
            extract_ids=list(payload.extract_ids),
            keywords=list(payload.keywords),
            created_at=now,
            updated_at=now,
        )

    async def get_summary(self, summary_id: int) -> Optional[Summary]:
        conn = await self._conn()
        try:
            cur = await conn.execute("SELECT * FROM summaries WHERE id=?", (summary_id,))
            row = await cur.fetchone()
            await cur.close()
            return _row_to_summary(dict(row)) if row else None
        finally:
            await conn.close()

    async def list_summaries(self) -> List[Summary]:
        conn = await self._conn()
        try:
            cur = await conn.execute("SELECT * FROM summaries ORDER BY id DESC")
            rows = await cur.fetchall()
            await cur.close()
            return [_row_to_summary(dict(r)) for r in rows]
        finally:
            await conn.close()

    async def count_summaries(self) -> int:
        conn = await self._conn()
        try:
            cur = await conn.execute("SELECT COUNT(*) FROM summaries")
            row = await cur.fetchone()
            await cur.close()
            return int(row[0] if row else 0)
        finally:
            await conn.close()
