from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MarketState(str, Enum):
    PRE = "PRE"
    REGULAR = "REGULAR"
    POST = "POST"
    PREPRE = "PREPRE"
    POSTPOST = "POSTPOST"
    CLOSED = "CLOSED"


class SessionKind(str, Enum):
    REGULAR = "REGULAR"
    PRE_MARKET = "PRE_MARKET"
    POST_MARKET = "POST_MARKET"


class Fundamentals(BaseModel):
    market_cap: float | None = None
    fifty_two_week_high: float | None = None
    fifty_two_week_low: float | None = None
    trailing_pe: float | None = None
    forward_pe: float | None = None
    regular_market_volume: float | None = None
    average_volume: float | None = None


class QuoteSnapshot(BaseModel):
    symbol: str
    regular_market_price: float
    regular_market_previous_close: float | None = None
    regular_market_change: float | None = None
    regular_market_change_percent: float | None = None
    pre_market_price: float | None = None
    pre_market_change: float | None = None
    post_market_price: float | None = None
    post_market_change: float | None = None
    market_state: MarketState = MarketState.CLOSED
    exchange: str | None = None
    full_exchange_name: str | None = None
    long_name: str | None = None
    short_name: str | None = None
    fundamentals: Fundamentals = Fundamentals()


class PriceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float
    change: float
    change_percent: float | None
    regular_market_price: float
    regular_market_change: float | None = None
    regular_market_change_percent: float | None = None
    session: SessionKind = SessionKind.REGULAR
    is_extended_hours: bool = False
    extended_hours_price: float | None = None
    extended_hours_change: float | None = None
    market_state: MarketState | None = None
    exchange: str | None = None
    exchange_name: str | None = None
    company_name: str | None = None


class HistoryEntry(BaseModel):
    symbol: str
    timestamp: str
    price: float
    change: float | None = None
    change_percent: float | None = None


class CachedPrice(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: PriceRecord
    updated_at: int
    source: str = "poll"


class MarketStatus(BaseModel):
    display_name: str
    market_state: MarketState


class QuoteView(BaseModel):
    symbol: str
    company_name: str
    price: float
    change: float
    change_percent: float | None
    is_extended_hours: bool
    extended_hours_price: float | None = None
    extended_hours_change: float | None = None
    market_state: MarketState | None = None
    exchange_name: str | None = None
    fundamentals: Fundamentals | None = None
    from_cache: bool = False
    updated_at: int
