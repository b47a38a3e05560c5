import unittest

from stockwatch.config.watchlist import parse_config
from stockwatch.errors import WatchlistConfigError
from stockwatch.services.watchlist_sync import WatchlistManager


class RecordingScheduler:
    def __init__(self) -> None:
        self.started = []
        self.reloads = []
        self.watchlist_version = 0

    def start(self, watchlist):
        self.started.append(list(watchlist))

    def reload(self, watchlist):
        self.reloads.append(list(watchlist))
        self.watchlist_version += 1
        return True


class SequenceLoader:
    def __init__(self, *results) -> None:
        self.results = list(results)

    def __call__(self, path):
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class WatchlistManagerTest(unittest.TestCase):
    def test_config_before_load_raises(self):
        manager = WatchlistManager(config_path="x.yaml", scheduler=RecordingScheduler(), loader=SequenceLoader())

        with self.assertRaises(RuntimeError):
            manager.config

    def test_load_initial_starts_scheduler(self):
        scheduler = RecordingScheduler()
        loader = SequenceLoader(parse_config({"crypto": ["btc"], "watchlist": ["AAPL"]}))
        manager = WatchlistManager(config_path="x.yaml", scheduler=scheduler, loader=loader)

        manager.load_initial()

        self.assertEqual(scheduler.started, [["BTC-USD", "AAPL"]])

    def test_initial_load_errors_propagate(self):
        loader = SequenceLoader(WatchlistConfigError("broken"))
        manager = WatchlistManager(config_path="x.yaml", scheduler=RecordingScheduler(), loader=loader)

        with self.assertRaises(WatchlistConfigError):
            manager.load_initial()

    def test_rejected_reload_keeps_running_config(self):
        scheduler = RecordingScheduler()
        loader = SequenceLoader(
            parse_config({"watchlist": ["AAPL"]}),
            WatchlistConfigError("invalid yaml"),
            parse_config({"watchlist": ["AAPL", "MSFT"]}),
        )
        manager = WatchlistManager(config_path="x.yaml", scheduler=scheduler, loader=loader)
        manager.load_initial()

        self.assertFalse(manager.reload_from_disk())
        self.assertEqual(manager.config.watchlist, ["AAPL"])
        self.assertEqual(manager.rejected_reloads, 1)
        self.assertEqual(manager.last_error, "invalid yaml")
        self.assertEqual(scheduler.reloads, [])

        self.assertTrue(manager.reload_from_disk())
        self.assertEqual(manager.config.watchlist, ["AAPL", "MSFT"])
        self.assertEqual(scheduler.reloads, [["AAPL", "MSFT"]])
        self.assertIsNone(manager.last_error)


if __name__ == "__main__":
    unittest.main()
