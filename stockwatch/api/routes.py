from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query, Request

from stockwatch.errors import QuoteUnavailableError
from stockwatch.storage.history import DEFAULT_HISTORY_LIMIT

router = APIRouter()


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get('/stock/{symbol}')
def get_stock(symbol: str, request: Request):
    service = request.app.state.quote_gateway_service
    try:
        view = service.get_quote(symbol)
    except QuoteUnavailableError as exc:
        raise HTTPException(status_code=503, detail='QUOTE_UNAVAILABLE') from exc
    return view.model_dump(mode='json')


@router.get('/history/{symbol}')
def get_history(symbol: str, request: Request, limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=50000)):
    store = request.app.state.history_store
    try:
        rows = store.query_recent(symbol, limit=limit)
    except Exception as exc:
        print(f"[API][history_error] symbol={symbol} error={exc}", flush=True)
        raise HTTPException(status_code=500, detail='HISTORY_UNAVAILABLE') from exc
    return [row.model_dump() for row in rows]


@router.get('/watchlist')
def get_watchlist(request: Request):
    manager = request.app.state.watchlist_manager
    scheduler = request.app.state.scheduler
    cache = request.app.state.price_cache
    config = manager.config

    initial_prices = {}
    for cached in cache.list_many(config.watchlist):
        record = cached.record
        initial_prices[record.symbol] = {
            'price': record.price,
            'change': record.change,
            'change_percent': record.change_percent,
            'company_name': record.company_name or record.symbol,
            'updated_at': cached.updated_at,
            'from_cache': True,
        }

    return {
        'watchlist': config.watchlist,
        'sections': [s.model_dump() for s in config.sections],
        'crypto_symbols': config.crypto_symbols,
        'watchlist_version': scheduler.watchlist_version,
        'initial_prices': initial_prices,
    }


@router.get('/market-status')
def get_market_status(request: Request):
    tracker = request.app.state.market_states
    return {
        'markets': [m.model_dump(mode='json') for m in tracker.list_states()],
        'as_of': _iso_now(),
    }


@router.get('/version')
def get_version(request: Request):
    return request.app.state.app_version.model_dump()


@router.get('/metrics/poller')
def poller_metrics(request: Request):
    metrics = request.app.state.scheduler.status()
    metrics.update(request.app.state.quote_gateway_service.metrics())
    metrics['rejected_reloads'] = request.app.state.watchlist_manager.rejected_reloads
    return metrics
