from __future__ import annotations

import sys

import uvicorn

from stockwatch.config.settings import get_settings
from stockwatch.config.watchlist import load_config
from stockwatch.errors import WatchlistConfigError


def resolve_port(settings, config) -> int:
    if settings.PORT is not None:
        return settings.PORT
    return config.server.port


def main() -> int:
    settings = get_settings()
    try:
        config = load_config(settings.CONFIG_PATH)
    except WatchlistConfigError as exc:
        print(f"[APP][config_error] path={settings.CONFIG_PATH} error={exc}", file=sys.stderr, flush=True)
        return 1

    port = resolve_port(settings, config)
    print(f"[APP][serve] host=0.0.0.0 port={port}", flush=True)
    uvicorn.run("stockwatch.main:app", host="0.0.0.0", port=port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
