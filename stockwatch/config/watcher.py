from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from typing import Callable


class ConfigFileWatcher:
    """Poll a file's stat signature and fire once per quiet burst of writes.

    Editors that save atomically (write temp file, rename) produce several
    changes in quick succession; ``on_change`` runs only after the signature
    has been stable for ``debounce_sec``.
    """

    def __init__(
        self,
        path: str | Path,
        on_change: Callable[[], None],
        *,
        debounce_sec: float = 0.5,
        poll_sec: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.on_change = on_change
        self.debounce_sec = debounce_sec
        self.poll_sec = poll_sec
        self._clock = clock
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._signature = self._read_signature()
        self._pending_since: float | None = None
        self.fired = 0

    def _read_signature(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def check_once(self) -> bool:
        """Run one poll step; return True when ``on_change`` was fired."""
        signature = self._read_signature()
        now = self._clock()
        if signature != self._signature:
            self._signature = signature
            self._pending_since = now
            return False

        if self._pending_since is None or now - self._pending_since < self.debounce_sec:
            return False

        self._pending_since = None
        if signature is None:
            # file vanished mid-save; wait for it to reappear
            print(f"[CONFIG][watch_missing] path={self.path}", flush=True)
            return False

        self.fired += 1
        try:
            self.on_change()
        except Exception as exc:
            print(f"[CONFIG][watch_callback_error] path={self.path} error={exc}", flush=True)
        return True

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop_event.wait(self.poll_sec):
            self.check_once()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="config-watcher")
        self._thread.start()
        print(f"[CONFIG][watch_start] path={self.path} debounce_sec={self.debounce_sec}", flush=True)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=1.0)
