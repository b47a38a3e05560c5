from __future__ import annotations

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from stockwatch.schemas.quote import HistoryEntry, PriceRecord

DEFAULT_HISTORY_LIMIT = 5000

_SCHEMA = """
CREATE TABLE IF NOT EXISTS price_history (
    symbol TEXT,
    timestamp DATETIME,
    price REAL,
    change REAL,
    change_percent REAL,
    PRIMARY KEY (symbol, timestamp)
);

CREATE INDEX IF NOT EXISTS idx_symbol_timestamp
ON price_history(symbol, timestamp);
"""


def utc_timestamp(now: datetime | None = None) -> str:
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class HistoryStore:
    """Append-mostly price history in SQLite, keyed by (symbol, timestamp)."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, timeout=2, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock:
            self._conn.executescript(_SCHEMA)
            self._conn.commit()

    def append(self, entry: HistoryEntry) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO price_history (symbol, timestamp, price, change, change_percent)
                VALUES (?, ?, ?, ?, ?)
                """,
                (entry.symbol, entry.timestamp, entry.price, entry.change, entry.change_percent),
            )

    def append_record(self, record: PriceRecord, *, now: datetime | None = None) -> HistoryEntry:
        entry = HistoryEntry(
            symbol=record.symbol,
            timestamp=utc_timestamp(now),
            price=record.price,
            change=record.change,
            change_percent=record.change_percent,
        )
        self.append(entry)
        return entry

    def query_recent(self, symbol: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryEntry]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT symbol, timestamp, price, change, change_percent
                FROM price_history
                WHERE symbol = ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (symbol, int(limit)),
            ).fetchall()
        return [self._to_entry(r) for r in rows]

    def query_latest(self, symbol: str) -> HistoryEntry | None:
        rows = self.query_recent(symbol, limit=1)
        return rows[0] if rows else None

    def count(self, symbol: str | None = None) -> int:
        with self._lock:
            if symbol is None:
                row = self._conn.execute("SELECT COUNT(*) FROM price_history").fetchone()
            else:
                row = self._conn.execute(
                    "SELECT COUNT(*) FROM price_history WHERE symbol = ?", (symbol,)
                ).fetchone()
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _to_entry(row: sqlite3.Row) -> HistoryEntry:
        return HistoryEntry(
            symbol=str(row["symbol"]),
            timestamp=str(row["timestamp"]),
            price=float(row["price"]),
            change=row["change"],
            change_percent=row["change_percent"],
        )
