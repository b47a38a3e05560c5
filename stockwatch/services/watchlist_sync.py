from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

from stockwatch.config.watchlist import load_config
from stockwatch.errors import WatchlistConfigError
from stockwatch.schemas.watchlist import AppConfig
from stockwatch.services.poller import PollingScheduler


class WatchlistManager:
    """Holds the active config and feeds watchlist changes to the scheduler."""

    def __init__(
        self,
        *,
        config_path: str | Path,
        scheduler: PollingScheduler,
        loader: Callable[[str | Path], AppConfig] = load_config,
    ) -> None:
        self.config_path = Path(config_path)
        self.scheduler = scheduler
        self._loader = loader
        self._lock = threading.Lock()
        self._config: AppConfig | None = None
        self.rejected_reloads = 0
        self.last_error: str | None = None

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            raise RuntimeError("watchlist config not loaded")
        return self._config

    def load_initial(self) -> AppConfig:
        """Load the config and start polling; errors propagate to the caller."""
        config = self._loader(self.config_path)
        with self._lock:
            self._config = config
        print(
            f"[CONFIG][loaded] path={self.config_path} sections={len(config.sections)} "
            f"crypto={len(config.crypto_symbols)} symbols={len(config.watchlist)}",
            flush=True,
        )
        self.scheduler.start(config.watchlist)
        return config

    def reload_from_disk(self) -> bool:
        """Re-read the file; an invalid file leaves the running state untouched."""
        try:
            config = self._loader(self.config_path)
        except WatchlistConfigError as exc:
            self.rejected_reloads += 1
            self.last_error = str(exc)
            print(f"[CONFIG][reload_rejected] path={self.config_path} error={exc}", flush=True)
            return False

        with self._lock:
            self._config = config
            self.last_error = None
        changed = self.scheduler.reload(config.watchlist)
        print(
            f"[CONFIG][reloaded] path={self.config_path} changed={int(changed)} "
            f"version={self.scheduler.watchlist_version}",
            flush=True,
        )
        return changed
