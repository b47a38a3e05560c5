import unittest

from stockwatch.schemas.quote import HistoryEntry, MarketState, PriceRecord
from stockwatch.services.market_state import MarketStateTracker
from stockwatch.services.quote_cache import LatestPriceCache
from stockwatch.storage.history import HistoryStore


def make_record(symbol: str, price: float = 100.0, **overrides) -> PriceRecord:
    data = {
        "symbol": symbol,
        "price": price,
        "change": 1.0,
        "change_percent": 1.0,
        "regular_market_price": price,
    }
    data.update(overrides)
    return PriceRecord(**data)


class LatestPriceCacheTest(unittest.TestCase):
    def test_upsert_replaces_whole_record(self):
        cache = LatestPriceCache()
        first = cache.upsert(make_record("AAPL", 100.0), updated_at=1)
        second = cache.upsert(make_record("AAPL", 101.0), updated_at=2)

        self.assertEqual(cache.get("AAPL"), second)
        self.assertEqual(first.record.price, 100.0)
        self.assertEqual(cache.get("AAPL").updated_at, 2)

    def test_records_are_immutable(self):
        record = make_record("AAPL")

        with self.assertRaises(Exception):
            record.price = 1.0

    def test_evict_many_and_list_many(self):
        cache = LatestPriceCache()
        for s in ("AAPL", "TSLA", "MSFT"):
            cache.upsert(make_record(s))

        removed = cache.evict_many(["TSLA", "NOPE"])

        self.assertEqual(removed, 1)
        self.assertIsNone(cache.get("TSLA"))
        self.assertEqual([r.record.symbol for r in cache.list_many(["MSFT", "TSLA", "AAPL"])], ["MSFT", "AAPL"])

    def test_seed_from_history_only_fills_missing(self):
        store = HistoryStore(":memory:")
        store.append(HistoryEntry(symbol="AAPL", timestamp="2024-01-01T10:00:00Z", price=150.0, change=1.0, change_percent=0.5))
        store.append(HistoryEntry(symbol="TSLA", timestamp="2024-01-01T10:00:00Z", price=245.0, change=-5.0, change_percent=-2.0))
        cache = LatestPriceCache()
        cache.upsert(make_record("TSLA", 250.0), updated_at=99)

        seeded = cache.seed_from_history(["AAPL", "TSLA", "MSFT"], store)

        self.assertEqual(seeded, 1)
        aapl = cache.get("AAPL")
        self.assertEqual(aapl.source, "history")
        self.assertEqual(aapl.record.price, 150.0)
        self.assertEqual(aapl.updated_at, 1704103200)
        self.assertEqual(cache.get("TSLA").record.price, 250.0)
        self.assertIsNone(cache.get("MSFT"))
        store.close()

    def test_seed_tolerates_store_errors(self):
        class BrokenStore:
            def query_latest(self, symbol):
                raise RuntimeError("disk gone")

        cache = LatestPriceCache()

        self.assertEqual(cache.seed_from_history(["AAPL"], BrokenStore()), 0)
        self.assertIsNone(cache.get("AAPL"))


class MarketStateTrackerTest(unittest.TestCase):
    def test_record_and_list(self):
        tracker = MarketStateTracker()
        tracker.record("NASDAQ", MarketState.PRE)
        tracker.record("NASDAQ", MarketState.REGULAR)
        tracker.record("NYSE", MarketState.CLOSED)

        states = {m.display_name: m.market_state for m in tracker.list_states()}

        self.assertEqual(states, {"NASDAQ": MarketState.REGULAR, "NYSE": MarketState.CLOSED})

    def test_record_price_skips_records_without_exchange(self):
        tracker = MarketStateTracker()

        self.assertFalse(tracker.record_price(make_record("OTCX", market_state=MarketState.REGULAR)))
        self.assertTrue(
            tracker.record_price(make_record("AAPL", market_state=MarketState.POST, exchange_name="NASDAQ"))
        )
        self.assertEqual(len(tracker), 1)

    def test_clear(self):
        tracker = MarketStateTracker()
        tracker.record("NYSE", MarketState.REGULAR)
        tracker.clear()

        self.assertEqual(tracker.list_states(), [])


if __name__ == "__main__":
    unittest.main()
