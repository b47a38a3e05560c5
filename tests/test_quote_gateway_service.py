import unittest

from stockwatch.errors import QuoteUnavailableError
from stockwatch.schemas.quote import Fundamentals, MarketState, PriceRecord, QuoteSnapshot, SessionKind
from stockwatch.services.quote_cache import LatestPriceCache
from stockwatch.services.quote_gateway import QuoteGatewayService


class StubSource:
    def __init__(self, snapshot: QuoteSnapshot) -> None:
        self.snapshot = snapshot
        self.calls = 0

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        self.calls += 1
        return self.snapshot.model_copy(update={"symbol": symbol})


class TimeoutSource:
    def __init__(self) -> None:
        self.calls = 0

    def get_quote(self, symbol: str) -> QuoteSnapshot:
        self.calls += 1
        raise TimeoutError(f"timeout:{symbol}")


def post_market_snapshot() -> QuoteSnapshot:
    return QuoteSnapshot(
        symbol="AAPL",
        regular_market_price=150.0,
        regular_market_previous_close=148.0,
        regular_market_change=2.0,
        post_market_price=151.0,
        post_market_change=1.0,
        market_state=MarketState.POST,
        exchange="NMS",
        long_name="Apple Inc.",
        fundamentals=Fundamentals(market_cap=2.5e12, trailing_pe=28.5),
    )


class QuoteGatewayServiceTest(unittest.TestCase):
    def test_live_quote_includes_extended_hours_and_fundamentals(self):
        service = QuoteGatewayService(quote_cache=LatestPriceCache(), quote_source=StubSource(post_market_snapshot()))

        view = service.get_quote("AAPL")

        self.assertFalse(view.from_cache)
        self.assertTrue(view.is_extended_hours)
        self.assertEqual(view.price, 151.0)
        self.assertEqual(view.change, 3.0)
        self.assertAlmostEqual(view.change_percent, 3.0 / 148.0 * 100)
        self.assertEqual(view.extended_hours_price, 151.0)
        self.assertEqual(view.company_name, "Apple Inc.")
        self.assertEqual(view.exchange_name, "NASDAQ")
        self.assertEqual(view.fundamentals.market_cap, 2.5e12)
        self.assertEqual(service.metrics(), {"live_fetches": 1, "live_failures": 0, "cache_fallbacks": 0})

    def test_live_failure_falls_back_to_cached_price(self):
        cache = LatestPriceCache()
        cache.upsert(
            PriceRecord(
                symbol="AAPL",
                price=151.0,
                change=3.0,
                change_percent=2.0,
                regular_market_price=150.0,
                session=SessionKind.POST_MARKET,
                is_extended_hours=True,
                extended_hours_price=151.0,
                market_state=MarketState.POST,
                exchange_name="NASDAQ",
                company_name="Apple Inc.",
            ),
            updated_at=1704103200,
        )
        service = QuoteGatewayService(quote_cache=cache, quote_source=TimeoutSource())

        view = service.get_quote("AAPL")

        self.assertTrue(view.from_cache)
        self.assertFalse(view.is_extended_hours)
        self.assertIsNone(view.fundamentals)
        self.assertEqual(view.price, 151.0)
        self.assertEqual(view.market_state, MarketState.POST)
        self.assertEqual(view.updated_at, 1704103200)
        self.assertEqual(service.metrics()["cache_fallbacks"], 1)

    def test_cached_record_without_state_reports_closed(self):
        cache = LatestPriceCache()
        cache.upsert(PriceRecord(symbol="KO", price=60.0, change=0.5, change_percent=None, regular_market_price=60.0))
        service = QuoteGatewayService(quote_cache=cache, quote_source=TimeoutSource())

        self.assertEqual(service.get_quote("KO").market_state, MarketState.CLOSED)

    def test_live_failure_without_cache_raises(self):
        service = QuoteGatewayService(quote_cache=LatestPriceCache(), quote_source=TimeoutSource())

        with self.assertRaises(QuoteUnavailableError):
            service.get_quote("NOPE")

        self.assertEqual(service.metrics()["live_failures"], 1)


if __name__ == "__main__":
    unittest.main()
