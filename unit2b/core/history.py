"""Journal des commandes et des echanges avec le LLM."""

from __future__ import annotations

import asyncio
import re
import sqlite3
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable

import aiosqlite

from .schemas import HistoryEntry, HistoryType

__all__ = ["HistoryStore", "normalize_content"]

_SPACES_RE = re.compile(r"\s+")


def normalize_content(value: str | None) -> str:
    return _SPACES_RE.sub(" ", (value or "").strip()).lower()


def _row_to_entry(row: aiosqlite.Row) -> HistoryEntry:
    return HistoryEntry(
        id=int(row["id"]),
        timestamp=float(row["timestamp"]),
        type=HistoryType(row["type"]),
        command=row["command"] or "",
        question=row["question"],
        response=row["response"],
        short=row["short"],
        expandable=bool(row["expandable"]),
    )


class HistoryStore:
    """Historique en ajout seul, stocke dans SQLite."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        dedup_window: float = 3.0,
        short_max_len: int = 80,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_path = Path(db_path)
        self.dedup_window = dedup_window
        self.short_max_len = short_max_len
        self._clock = clock
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _open_db(self) -> AsyncIterator[aiosqlite.Connection]:
        """Ouvre la base de données et active le mode WAL."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA journal_mode=WAL")
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                type TEXT NOT NULL,
                command TEXT NOT NULL DEFAULT '',
                question TEXT,
                response TEXT,
                short TEXT,
                expandable INTEGER NOT NULL DEFAULT 0,
                timestamp REAL NOT NULL
            )
            """,
        )
        try:
            yield db
        finally:
            await db.close()

    async def ping(self) -> bool:
        """Vérifie que la base de données est accessible."""
        try:
            async with self._open_db() as db:
                await db.execute("SELECT 1")
            return True
        except Exception:
            return False

    async def record_command(self, phrase: str) -> HistoryEntry:
        entry = HistoryEntry(
            id=None,
            timestamp=self._clock(),
            type=HistoryType.COMMAND,
            command=phrase.strip(),
        )
        return await self.record(entry)

    async def record_interaction(self, question: str, response: str) -> HistoryEntry:
        entry = HistoryEntry(
            id=None,
            timestamp=self._clock(),
            type=HistoryType.LLM,
            question=(question or "").strip(),
            response=(response or "").strip(),
        )
        return await self.record(entry)

    async def record(self, entry: HistoryEntry) -> HistoryEntry:
        """Ajoute une entrée, ou rafraîchit la précédente si elle est identique et récente."""
        display = entry.display
        if len(display) > self.short_max_len:
            entry.short = display[: self.short_max_len] + "..."
            entry.expandable = True

        async with self._lock:
            async with self._open_db() as db:
                async with db.execute(
                    "SELECT * FROM history ORDER BY id DESC LIMIT 1"
                ) as cursor:
                    row = await cursor.fetchone()
                if row is not None:
                    last = _row_to_entry(row)
                    if (
                        last.type is entry.type
                        and normalize_content(last.display) == normalize_content(display)
                        and abs(entry.timestamp - last.timestamp) < self.dedup_window
                    ):
                        await db.execute(
                            "UPDATE history SET timestamp = ? WHERE id = ?",
                            (entry.timestamp, last.id),
                        )
                        await db.commit()
                        last.timestamp = entry.timestamp
                        return last

                cursor = await db.execute(
                    """
                    INSERT INTO history(type, command, question, response, short, expandable, timestamp)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.type.value,
                        entry.command,
                        entry.question,
                        entry.response,
                        entry.short,
                        int(entry.expandable),
                        entry.timestamp,
                    ),
                )
                await db.commit()
                entry.id = cursor.lastrowid
        return entry

    async def read(
        self,
        *,
        query: str | None = None,
        entry_type: HistoryType | str | None = None,
        limit: int = 100,
    ) -> list[HistoryEntry]:
        """Retourne les entrées les plus récentes, filtrées si demandé."""
        where: list[str] = []
        params: list[object] = []
        if query and query.strip():
            needle = f"%{query.strip().lower()}%"
            where.append("(lower(command) LIKE ? OR lower(question) LIKE ? OR lower(response) LIKE ?)")
            params.extend([needle, needle, needle])
        if entry_type:
            where.append("type = ?")
            params.append(HistoryType(entry_type).value)
        clause = (" WHERE " + " AND ".join(where)) if where else ""
        async with self._open_db() as db:
            async with db.execute(
                f"SELECT * FROM history{clause} ORDER BY id DESC LIMIT ?",
                [*params, limit],
            ) as cursor:
                rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    async def clear(self) -> None:
        """Supprime l'historique tout en gérant un éventuel verrou SQLite."""
        for attempt in range(3):
            try:
                async with self._open_db() as db:
                    await db.execute("DELETE FROM history")
                    await db.commit()
                return
            except sqlite3.OperationalError as exc:
                if "locked" not in str(exc).lower() or attempt == 2:
                    raise
                await asyncio.sleep(0.2 * (attempt + 1))
