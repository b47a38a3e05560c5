from __future__ import annotations

import threading

from stockwatch.schemas.quote import MarketState, MarketStatus, PriceRecord


class MarketStateTracker:
    """Last observed market state per exchange display name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, MarketState] = {}

    def record(self, display_name: str | None, market_state: MarketState | None) -> bool:
        if not display_name or market_state is None:
            return False
        with self._lock:
            self._states[display_name] = MarketState(market_state)
        return True

    def record_price(self, record: PriceRecord) -> bool:
        # OTC tiers normalize to exchange_name=None and are skipped here
        return self.record(record.exchange_name, record.market_state)

    def get(self, display_name: str) -> MarketState | None:
        with self._lock:
            return self._states.get(display_name)

    def clear(self) -> None:
        with self._lock:
            self._states = {}

    def list_states(self) -> list[MarketStatus]:
        with self._lock:
            items = list(self._states.items())
        return [MarketStatus(display_name=name, market_state=state) for name, state in items]

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
