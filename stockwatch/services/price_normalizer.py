from __future__ import annotations

import math

from stockwatch.schemas.quote import Fundamentals, PriceRecord, QuoteSnapshot, SessionKind

EXCHANGE_DISPLAY_NAMES = {
    "NMS": "NASDAQ",
    "NGM": "NASDAQ",
    "NCM": "NASDAQ",
    "NAS": "NASDAQ",
    "NYQ": "NYSE",
    "NYS": "NYSE",
    "PCX": "NYSE Arca",
    "ASE": "NYSE American",
    "BTS": "Cboe",
    "CCC": "Crypto",
    "CXI": "Crypto",
    "TOR": "TSX",
    "VAN": "TSXV",
    "LSE": "LSE",
    "GER": "XETRA",
}

OTC_EXCHANGE_CODES = {"PNK", "OQB", "OQX", "OBB", "OTC", "OEM", "OGM"}


def is_otc_exchange(code: str | None, full_name: str | None = None) -> bool:
    if code and code.upper() in OTC_EXCHANGE_CODES:
        return True
    name = (full_name or "").lower()
    return "otc" in name or "pink" in name


def resolve_exchange_name(code: str | None, full_name: str | None = None) -> str | None:
    """Map a raw exchange code to its display name; None for OTC tiers."""
    if is_otc_exchange(code, full_name):
        return None
    if code and code.upper() in EXCHANGE_DISPLAY_NAMES:
        return EXCHANGE_DISPLAY_NAMES[code.upper()]
    return full_name or code or None


def select_session(snapshot: QuoteSnapshot) -> tuple[SessionKind, float | None, float | None]:
    if snapshot.pre_market_price is not None:
        return SessionKind.PRE_MARKET, snapshot.pre_market_price, snapshot.pre_market_change
    if snapshot.post_market_price is not None:
        return SessionKind.POST_MARKET, snapshot.post_market_price, snapshot.post_market_change
    return SessionKind.REGULAR, None, None


def finite_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def change_percent(change: float, previous_close: float | None) -> float | None:
    if not previous_close:
        return None
    return finite_or_none(change / previous_close * 100)


def normalize(snapshot: QuoteSnapshot) -> PriceRecord:
    """Derive the canonical price record from a quote snapshot.

    Extended-session fields win over the regular session when present; the
    final change is the regular change plus the extended change so that it
    stays relative to the previous close.
    """
    session, extended_price, extended_change = select_session(snapshot)
    regular_change = snapshot.regular_market_change

    if session is SessionKind.REGULAR:
        final_price = snapshot.regular_market_price
        final_change = regular_change
    else:
        final_price = extended_price
        final_change = (extended_change or 0.0) + (regular_change or 0.0)

    final_change = finite_or_none(final_change) or 0.0

    exchange_name = resolve_exchange_name(snapshot.exchange, snapshot.full_exchange_name)

    return PriceRecord(
        symbol=snapshot.symbol,
        price=final_price,
        change=final_change,
        change_percent=change_percent(final_change, snapshot.regular_market_previous_close),
        regular_market_price=snapshot.regular_market_price,
        regular_market_change=finite_or_none(regular_change),
        regular_market_change_percent=finite_or_none(snapshot.regular_market_change_percent),
        session=session,
        is_extended_hours=session is not SessionKind.REGULAR,
        extended_hours_price=extended_price,
        extended_hours_change=extended_change,
        market_state=snapshot.market_state,
        exchange=snapshot.exchange if exchange_name else None,
        exchange_name=exchange_name,
        company_name=snapshot.long_name or snapshot.short_name or snapshot.symbol,
    )


def extract_fundamentals(snapshot: QuoteSnapshot) -> Fundamentals:
    f = snapshot.fundamentals
    return Fundamentals(**{k: finite_or_none(v) for k, v in f.model_dump().items()})
