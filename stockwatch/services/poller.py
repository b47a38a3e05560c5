from __future__ import annotations

import threading
from enum import Enum

from stockwatch.config.watchlist import diff_watchlist
from stockwatch.schemas.quote import PriceRecord
from stockwatch.services.market_state import MarketStateTracker
from stockwatch.services.price_normalizer import normalize
from stockwatch.services.quote_cache import LatestPriceCache

DEFAULT_POLL_INTERVAL_SEC = 10.0


class SchedulerState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    RELOADING = "RELOADING"
    STOPPED = "STOPPED"


class PollingScheduler:
    """Round-robin poller: one symbol per tick, strictly sequential.

    Each run owns a worker thread and a stop event. A reload sets the old
    run's event (interrupting its wait at once) and arms a fresh run; a fetch
    still in flight in the old run is allowed to finish and write its result,
    but it no longer moves the cursor of the new run.
    """

    def __init__(
        self,
        *,
        quote_source,
        history_store,
        cache: LatestPriceCache | None = None,
        market_states: MarketStateTracker | None = None,
        interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
    ) -> None:
        if interval_sec <= 0:
            raise ValueError("interval_sec must be greater than zero")
        self.quote_source = quote_source
        self.history_store = history_store
        self.cache = cache if cache is not None else LatestPriceCache()
        self.market_states = market_states if market_states is not None else MarketStateTracker()
        self.interval_sec = interval_sec

        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._watchlist: list[str] = []
        self._cursor = 0
        self._generation = 0
        self._run_stop: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self.watchlist_version = 0
        self._metrics = {
            "ticks": 0,
            "fetch_ok": 0,
            "fetch_failed": 0,
            "store_failed": 0,
            "reloads": 0,
        }

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def watchlist(self) -> list[str]:
        with self._lock:
            return list(self._watchlist)

    def _inc(self, key: str, value: int = 1) -> None:
        with self._lock:
            self._metrics[key] = self._metrics.get(key, 0) + value

    def start(self, watchlist: list[str]) -> None:
        symbols = list(watchlist)
        self.cache.seed_from_history(symbols, self.history_store)
        with self._lock:
            self._watchlist = symbols
            self._cursor = 0
            if not symbols:
                self._disarm_locked()
                self._state = SchedulerState.IDLE
                print("[POLL][idle] reason=empty_watchlist", flush=True)
                return
            self._arm_locked()

        print(
            f"[POLL][start] symbols={len(symbols)} interval_sec={self.interval_sec} "
            f"cycle_sec={len(symbols) * self.interval_sec}",
            flush=True,
        )

    def reload(self, watchlist: list[str]) -> bool:
        """Swap in a new watchlist; returns False when membership is unchanged."""
        symbols = list(watchlist)
        with self._lock:
            if self._state is SchedulerState.STOPPED:
                return False
            diff = diff_watchlist(self._watchlist, symbols)
            if not diff.changed:
                print("[POLL][reload_noop] reason=same_symbols", flush=True)
                return False

            self._state = SchedulerState.RELOADING
            self.cache.evict_many(diff.removed)
            self.market_states.clear()
            self.cache.seed_from_history(diff.added, self.history_store)

            self._watchlist = symbols
            self._cursor = 0
            self.watchlist_version += 1
            self._metrics["reloads"] += 1

            if symbols:
                self._arm_locked()
            else:
                self._disarm_locked()
                self._state = SchedulerState.IDLE

        print(
            f"[POLL][reload] version={self.watchlist_version} added={','.join(diff.added) or '-'} "
            f"removed={','.join(diff.removed) or '-'} symbols={len(symbols)}",
            flush=True,
        )
        return True

    def stop(self) -> None:
        with self._lock:
            thread = self._thread
            self._disarm_locked()
            self._state = SchedulerState.STOPPED
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        print("[POLL][stop]", flush=True)

    def _arm_locked(self) -> None:
        self._disarm_locked()
        self._generation += 1
        stop_event = threading.Event()
        self._run_stop = stop_event
        self._state = SchedulerState.RUNNING
        self._thread = threading.Thread(
            target=self._run,
            args=(self._generation, stop_event),
            daemon=True,
            name=f"poller-{self._generation}",
        )
        self._thread.start()

    def _disarm_locked(self) -> None:
        if self._run_stop is not None:
            self._run_stop.set()
        self._run_stop = None
        self._thread = None

    def _run(self, generation: int, stop_event: threading.Event) -> None:
        with self._lock:
            first = self._watchlist[0] if self._watchlist and generation == self._generation else None
        if first is not None and not stop_event.is_set():
            # out-of-band warm-up, the cursor stays at 0
            self.poll_symbol(first)

        while not stop_event.wait(self.interval_sec):
            self.tick(generation=generation)

    def tick(self, *, generation: int | None = None) -> PriceRecord | None:
        """Poll the symbol under the cursor, then advance the cursor."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return None
            if not self._watchlist:
                return None
            gen = self._generation
            symbol = self._watchlist[self._cursor]

        try:
            return self.poll_symbol(symbol)
        finally:
            with self._lock:
                self._metrics["ticks"] += 1
                if gen == self._generation and self._watchlist:
                    self._cursor = (self._cursor + 1) % len(self._watchlist)

    def poll_symbol(self, symbol: str) -> PriceRecord | None:
        try:
            snapshot = self.quote_source.get_quote(symbol)
        except Exception as exc:
            self._inc("fetch_failed")
            print(f"[POLL][tick_error] symbol={symbol} error={exc}", flush=True)
            return None

        record = normalize(snapshot)
        self._inc("fetch_ok")

        try:
            self.history_store.append_record(record)
        except Exception as exc:
            # keep the dashboard live even when the store is degraded
            self._inc("store_failed")
            print(f"[STORE][append_error] symbol={symbol} error={exc}", flush=True)

        self.cache.upsert(record)
        self.market_states.record_price(record)
        print(
            f"[POLL][updated] symbol={symbol} price={record.price} change={record.change} "
            f"session={record.session.value} market_state={record.market_state.value if record.market_state else '-'}",
            flush=True,
        )
        return record

    def status(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "cursor": self._cursor,
                "watchlist": list(self._watchlist),
                "watchlist_version": self.watchlist_version,
                "interval_sec": self.interval_sec,
                **self._metrics,
            }
