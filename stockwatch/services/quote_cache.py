from __future__ import annotations

import threading
import time
from datetime import datetime

from stockwatch.schemas.quote import CachedPrice, HistoryEntry, PriceRecord


def record_from_history(entry: HistoryEntry) -> PriceRecord:
    return PriceRecord(
        symbol=entry.symbol,
        price=entry.price,
        change=entry.change or 0.0,
        change_percent=entry.change_percent,
        regular_market_price=entry.price,
        regular_market_change=entry.change,
        regular_market_change_percent=entry.change_percent,
        company_name=entry.symbol,
    )


class LatestPriceCache:
    """Latest canonical price per symbol; records are replaced, never mutated."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, CachedPrice] = {}

    def upsert(self, record: PriceRecord, *, updated_at: int | None = None, source: str = "poll") -> CachedPrice:
        row = CachedPrice(
            record=record,
            updated_at=int(time.time()) if updated_at is None else updated_at,
            source=source,
        )
        with self._lock:
            self._rows[record.symbol] = row
        return row

    def get(self, symbol: str) -> CachedPrice | None:
        with self._lock:
            return self._rows.get(symbol)

    def list_many(self, symbols: list[str]) -> list[CachedPrice]:
        out: list[CachedPrice] = []
        for s in symbols:
            row = self.get(s)
            if row:
                out.append(row)
        return out

    def list_all(self) -> list[CachedPrice]:
        with self._lock:
            return list(self._rows.values())

    def symbols(self) -> list[str]:
        with self._lock:
            return list(self._rows)

    def evict_many(self, symbols: list[str]) -> int:
        removed = 0
        with self._lock:
            for s in symbols:
                if self._rows.pop(s, None) is not None:
                    removed += 1
        return removed

    def seed_from_history(self, symbols: list[str], history_store) -> int:
        """Fill missing entries from the latest persisted observation."""
        seeded = 0
        for symbol in symbols:
            if self.get(symbol) is not None:
                continue
            try:
                entry = history_store.query_latest(symbol)
            except Exception as exc:
                print(f"[CACHE][seed_error] symbol={symbol} error={exc}", flush=True)
                continue
            if entry is None:
                continue
            with self._lock:
                # a live poll may have landed while we were reading the store
                if symbol in self._rows:
                    continue
                self._rows[symbol] = CachedPrice(
                    record=record_from_history(entry),
                    updated_at=_epoch_from_iso(entry.timestamp),
                    source="history",
                )
            seeded += 1
        if seeded:
            print(f"[CACHE][seed] seeded={seeded} requested={len(symbols)}", flush=True)
        return seeded


def _epoch_from_iso(ts: str) -> int:
    try:
        return int(datetime.fromisoformat(ts.replace("Z", "+00:00")).timestamp())
    except ValueError:
        return int(time.time())
