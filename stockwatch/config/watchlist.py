from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from stockwatch.errors import WatchlistConfigError
from stockwatch.schemas.watchlist import AppConfig, WatchlistDiff


def parse_config(raw: dict | None) -> AppConfig:
    """Build an AppConfig from an already-parsed YAML mapping.

    Accepts both the sectioned layout (``sections: [{name, stocks}]``) and the
    legacy flat ``watchlist:`` list, which becomes one unnamed section.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise WatchlistConfigError("config root must be a mapping")

    if raw.get("sections") is not None:
        sections = raw["sections"]
        if not isinstance(sections, list):
            raise WatchlistConfigError("sections must be a list")
    else:
        sections = [{"name": None, "stocks": raw.get("watchlist") or []}]

    crypto = raw.get("crypto")
    if crypto is not None and not isinstance(crypto, list):
        raise WatchlistConfigError("crypto must be a list")
    crypto_symbols = [
        s.strip().upper()
        for s in (crypto or [])
        if isinstance(s, str) and s.strip()
    ]

    try:
        return AppConfig.model_validate(
            {
                "sections": sections,
                "crypto_symbols": crypto_symbols,
                "server": raw.get("server") or {},
            }
        )
    except ValidationError as exc:
        raise WatchlistConfigError(f"invalid config: {exc}") from exc


def load_config(path: str | Path) -> AppConfig:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise WatchlistConfigError(f"config file not found: {config_path}") from exc
    except OSError as exc:
        raise WatchlistConfigError(f"config file unreadable: {config_path}: {exc}") from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise WatchlistConfigError(f"YAML parsing error in {config_path}: {exc}") from exc

    return parse_config(raw)


def diff_watchlist(old: list[str], new: list[str]) -> WatchlistDiff:
    old_set = set(old)
    new_set = set(new)
    added = [s for s in new if s not in old_set]
    removed = [s for s in old if s not in new_set]
    return WatchlistDiff(added=added, removed=removed, changed=bool(added or removed))
