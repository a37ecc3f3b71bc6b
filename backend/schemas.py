"""Normalized quote models shared by the providers, the cache and the API."""

from pydantic import BaseModel, ConfigDict


class Overview(BaseModel):
    """Company identity for an equity symbol. Blank symbol = confirmed empty."""

    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    asset_type: str = ""
    name: str = ""
    description: str = ""
    exchange: str = ""


class Price(BaseModel):
    """Latest trading-day price for an equity or spot metal."""

    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    date: str = ""
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    price: float = 0.0
    volume: float = 0.0


class Quote(BaseModel):
    """Overview name + Price fields, as returned by /api/lookup/."""

    model_config = ConfigDict(frozen=True)

    symbol: str = ""
    name: str = ""
    date: str = ""
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    price: float = 0.0
    volume: float = 0.0

    @classmethod
    def from_price(cls, price: Price, name: str) -> "Quote":
        return cls(name=name, **price.model_dump())


class CacheEntryInfo(BaseModel):
    """Administrative view of a durable cache row."""

    key: str
    type: str | None
    expires_at: float
    expired: bool
