from __future__ import annotations

import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel


class AppVersion(BaseModel):
    commit_hash: str
    build_timestamp: str


def get_app_version(cwd: str | Path | None = None, env: Mapping[str, str] | None = None) -> AppVersion:
    """Resolve commit hash from COMMIT_HASH, then git, then "unknown"."""
    env = os.environ if env is None else env
    commit_hash = (env.get("COMMIT_HASH") or "").strip()

    if commit_hash:
        commit_hash = commit_hash[:7]
    else:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--short", "HEAD"],
                cwd=cwd,
                capture_output=True,
                text=True,
                check=True,
                timeout=5,
            )
            commit_hash = result.stdout.strip() or "unknown"
        except (OSError, subprocess.SubprocessError):
            commit_hash = "unknown"

    build_timestamp = env.get("BUILD_TIMESTAMP") or datetime.now(timezone.utc).isoformat(
        timespec="milliseconds"
    ).replace("+00:00", "Z")

    return AppVersion(commit_hash=commit_hash, build_timestamp=build_timestamp)
