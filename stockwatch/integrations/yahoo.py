from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from stockwatch.errors import QuoteFetchError
from stockwatch.schemas.quote import Fundamentals, MarketState, QuoteSnapshot

_MARKET_STATES = {s.value for s in MarketState}


def _to_float(value: Any) -> float | None:
    try:
        if value is None or value == "":
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


def parse_quote(symbol: str, info: Dict[str, Any]) -> QuoteSnapshot:
    """Map a Yahoo quote payload (camelCase keys) into a QuoteSnapshot."""
    if not isinstance(info, dict) or not info:
        raise QuoteFetchError(f"empty quote payload for {symbol}")

    price = _to_float(info.get("regularMarketPrice"))
    if price is None:
        price = _to_float(info.get("currentPrice"))
    if price is None:
        raise QuoteFetchError(f"missing regularMarketPrice for {symbol}")

    state = str(info.get("marketState") or "CLOSED").upper()
    if state not in _MARKET_STATES:
        state = MarketState.CLOSED.value

    pre_price = _to_float(info.get("preMarketPrice"))
    post_price = _to_float(info.get("postMarketPrice"))
    if pre_price is not None and post_price is not None:
        # never both: keep the session the exchange reports
        if state in ("POST", "POSTPOST"):
            pre_price = None
        else:
            post_price = None

    previous_close = _to_float(info.get("regularMarketPreviousClose"))
    if previous_close is None:
        previous_close = _to_float(info.get("previousClose"))

    return QuoteSnapshot(
        symbol=symbol,
        regular_market_price=price,
        regular_market_previous_close=previous_close,
        regular_market_change=_to_float(info.get("regularMarketChange")),
        regular_market_change_percent=_to_float(info.get("regularMarketChangePercent")),
        pre_market_price=pre_price,
        pre_market_change=_to_float(info.get("preMarketChange")) if pre_price is not None else None,
        post_market_price=post_price,
        post_market_change=_to_float(info.get("postMarketChange")) if post_price is not None else None,
        market_state=MarketState(state),
        exchange=_to_str(info.get("exchange")),
        full_exchange_name=_to_str(info.get("fullExchangeName")),
        long_name=_to_str(info.get("longName")),
        short_name=_to_str(info.get("shortName")),
        fundamentals=Fundamentals(
            market_cap=_to_float(info.get("marketCap")),
            fifty_two_week_high=_to_float(info.get("fiftyTwoWeekHigh")),
            fifty_two_week_low=_to_float(info.get("fiftyTwoWeekLow")),
            trailing_pe=_to_float(info.get("trailingPE")),
            forward_pe=_to_float(info.get("forwardPE")),
            regular_market_volume=_to_float(info.get("regularMarketVolume")),
            average_volume=_to_float(info.get("averageVolume")),
        ),
    )


class YahooQuoteClient:
    """Yahoo Finance quote source backed by yfinance."""

    def __init__(self, *, ticker_factory: Optional[Callable[[str], Any]] = None) -> None:
        self._ticker_factory = ticker_factory or self._default_ticker_factory

    @staticmethod
    def _default_ticker_factory(symbol: str) -> Any:
        import yfinance as yf

        return yf.Ticker(symbol)

    def _fetch_info(self, symbol: str) -> Dict[str, Any]:
        ticker = self._ticker_factory(symbol)
        return ticker.info

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        try:
            info = self._fetch_info(symbol)
        except Exception as exc:
            raise QuoteFetchError(f"yahoo quote failed for {symbol}: {exc}") from exc
        return parse_quote(symbol, info)
