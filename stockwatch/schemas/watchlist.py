from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class WatchlistSection(BaseModel):
    name: str | None = None
    stocks: list[str] = Field(default_factory=list)

    @field_validator("stocks", mode="before")
    @classmethod
    def strip_symbols(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("stocks must be a list")
        return [str(s).strip() for s in value if s is not None and str(s).strip()]


class ServerConfig(BaseModel):
    port: int = 3000


class AppConfig(BaseModel):
    sections: list[WatchlistSection] = Field(default_factory=list)
    crypto_symbols: list[str] = Field(default_factory=list)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @property
    def crypto_tickers(self) -> list[str]:
        return [f"{s}-USD" for s in self.crypto_symbols]

    @property
    def watchlist(self) -> list[str]:
        out = list(self.crypto_tickers)
        for section in self.sections:
            out.extend(section.stocks)
        return out


class WatchlistDiff(BaseModel):
    added: list[str]
    removed: list[str]
    changed: bool
