import os
from functools import lru_cache

from pydantic import BaseModel, field_validator


class Settings(BaseModel):
    CONFIG_PATH: str = "config.yaml"
    DB_PATH: str = "data/stocks.db"
    POLL_INTERVAL_SEC: float = 10.0
    PORT: int | None = None

    @field_validator("POLL_INTERVAL_SEC")
    @classmethod
    def positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "CONFIG_PATH": os.getenv("STOCKWATCH_CONFIG_PATH"),
            "DB_PATH": os.getenv("STOCKWATCH_DB_PATH"),
            "POLL_INTERVAL_SEC": os.getenv("STOCKWATCH_POLL_INTERVAL_SEC"),
            "PORT": os.getenv("PORT"),
        }
        return cls.model_validate({k: v for k, v in raw.items() if v not in (None, "")})


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
