from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from stockwatch.api.routes import router
from stockwatch.config.settings import get_settings
from stockwatch.config.watcher import ConfigFileWatcher
from stockwatch.integrations.yahoo import YahooQuoteClient
from stockwatch.services.market_state import MarketStateTracker
from stockwatch.services.poller import PollingScheduler
from stockwatch.services.quote_cache import LatestPriceCache
from stockwatch.services.quote_gateway import QuoteGatewayService
from stockwatch.services.version import get_app_version
from stockwatch.services.watchlist_sync import WatchlistManager
from stockwatch.storage.history import HistoryStore

REPO_ROOT = Path(__file__).resolve().parents[1]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.get_settings()

    history_store = HistoryStore(settings.DB_PATH)
    price_cache = LatestPriceCache()
    market_states = MarketStateTracker()
    scheduler = PollingScheduler(
        quote_source=app.state.quote_source,
        history_store=history_store,
        cache=price_cache,
        market_states=market_states,
        interval_sec=settings.POLL_INTERVAL_SEC,
    )
    manager = WatchlistManager(config_path=settings.CONFIG_PATH, scheduler=scheduler)

    app.state.history_store = history_store
    app.state.price_cache = price_cache
    app.state.market_states = market_states
    app.state.scheduler = scheduler
    app.state.watchlist_manager = manager
    app.state.quote_gateway_service = QuoteGatewayService(
        quote_cache=price_cache,
        quote_source=app.state.quote_source,
    )
    app.state.app_version = get_app_version(cwd=REPO_ROOT)

    # an invalid config at startup is fatal: the app must not serve
    try:
        manager.load_initial()
    except Exception:
        scheduler.stop()
        history_store.close()
        raise

    watcher = ConfigFileWatcher(settings.CONFIG_PATH, manager.reload_from_disk)
    app.state.config_watcher = watcher
    watcher.start()
    print(
        f"[APP][startup] db={settings.DB_PATH} config={settings.CONFIG_PATH} "
        f"version={app.state.app_version.commit_hash}",
        flush=True,
    )

    try:
        yield
    finally:
        watcher.stop()
        scheduler.stop()
        history_store.close()
        print("[APP][shutdown]", flush=True)


app = FastAPI(title="Stockwatch", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/api")

# NOTE: lazy-loaded so app import does not require env during tests.
app.state.get_settings = get_settings
app.state.quote_source = YahooQuoteClient()
