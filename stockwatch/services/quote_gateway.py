from __future__ import annotations

import time

from stockwatch.errors import QuoteUnavailableError
from stockwatch.schemas.quote import CachedPrice, MarketState, QuoteView
from stockwatch.services.price_normalizer import extract_fundamentals, normalize
from stockwatch.services.quote_cache import LatestPriceCache


class QuoteGatewayService:
    """Live-first quote lookup for API requests with cache fallback."""

    def __init__(self, *, quote_cache: LatestPriceCache, quote_source) -> None:
        self.quote_cache = quote_cache
        self.quote_source = quote_source
        self.live_fetches = 0
        self.live_failures = 0
        self.cache_fallbacks = 0

    @staticmethod
    def _from_cache(cached: CachedPrice) -> QuoteView:
        record = cached.record
        return QuoteView(
            symbol=record.symbol,
            company_name=record.company_name or record.symbol,
            price=record.price,
            change=record.change,
            change_percent=record.change_percent,
            is_extended_hours=False,
            market_state=record.market_state or MarketState.CLOSED,
            exchange_name=record.exchange_name,
            from_cache=True,
            updated_at=cached.updated_at,
        )

    def get_quote(self, symbol: str) -> QuoteView:
        self.live_fetches += 1
        try:
            snapshot = self.quote_source.get_quote(symbol)
        except Exception as exc:
            self.live_failures += 1
            cached = self.quote_cache.get(symbol)
            if cached is None:
                print(f"[QUOTE][live_error] symbol={symbol} cached=0 error={exc}", flush=True)
                raise QuoteUnavailableError("QUOTE_UNAVAILABLE") from exc
            self.cache_fallbacks += 1
            print(f"[QUOTE][cache_fallback] symbol={symbol} error={exc}", flush=True)
            return self._from_cache(cached)

        record = normalize(snapshot)
        return QuoteView(
            symbol=record.symbol,
            company_name=record.company_name or record.symbol,
            price=record.price,
            change=record.change,
            change_percent=record.change_percent,
            is_extended_hours=record.is_extended_hours,
            extended_hours_price=record.extended_hours_price,
            extended_hours_change=record.extended_hours_change,
            market_state=record.market_state,
            exchange_name=record.exchange_name,
            fundamentals=extract_fundamentals(snapshot),
            from_cache=False,
            updated_at=int(time.time()),
        )

    def metrics(self) -> dict[str, int]:
        return {
            "live_fetches": self.live_fetches,
            "live_failures": self.live_failures,
            "cache_fallbacks": self.cache_fallbacks,
        }
