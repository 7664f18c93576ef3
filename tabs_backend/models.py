"""
Pydantic models for the persisted documents and API payloads.

Field names follow the on-disk JSON layout (camelCase) so existing
tokens-lib.json / snapshots.json / token-stats.json files load unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, RootModel

from tabs_backend.config import CONFIG


class PriceChange(BaseModel):
    model_config = ConfigDict(extra="allow")

    m5: float | None = None
    h1: float | None = None
    h6: float | None = None
    h24: float | None = None


class TokenRow(BaseModel):
    """Per-token view computed fresh on every scan."""

    model_config = ConfigDict(extra="allow")

    baseAddress: str
    name: str = "—"
    symbol: str = ""
    priceChange: PriceChange = Field(default_factory=PriceChange)
    marketCap: float | None = None
    fdv: float | None = None
    # primary capitalization: market cap, else FDV
    cap: float | None = None
    volume24h: float = 0.0
    url: str | None = None


class Banner(BaseModel):
    model_config = ConfigDict(extra="allow")

    holders: int | None = None
    # best available capitalization: market cap, else FDV
    cap: float = 0.0
    fdv: float = 0.0
    marketCap: float = 0.0
    vol24: float = 0.0
    chg24: float = 0.0
    url: str = "https://dexscreener.com"


class BannerSpecial(Banner):
    address: str
    name: str = "—"
    symbol: str = ""


class Snapshot(BaseModel):
    """A full scan result. Older history entries carry only ts and banner."""

    model_config = ConfigDict(extra="allow", frozen=True)

    ts: int
    chain: str = Field(default_factory=lambda: CONFIG["CHAIN"])
    banner: Banner = Field(default_factory=Banner)
    bannerSpecial: BannerSpecial | None = None
    topGainers: List[TokenRow] = Field(default_factory=list)
    topVol: List[TokenRow] = Field(default_factory=list)
    tokensTracked: int = 0


class SnapshotHistory(BaseModel):
    model_config = ConfigDict(extra="allow")

    latest: Snapshot | None = None
    history: List[Snapshot] = Field(default_factory=list)


class TokenRegistry(BaseModel):
    model_config = ConfigDict(extra="allow")

    tokens: List[str] = Field(default_factory=list)
    tokenPairs: Dict[str, List[str]] = Field(default_factory=dict)
    # legacy key kept for file compatibility
    pairs: Dict[str, Any] = Field(default_factory=dict)


class TokenStatsEntry(BaseModel):
    ts: int
    data: Any = None


class TokenStatsCache(RootModel[Dict[str, TokenStatsEntry]]):
    """Address -> {ts, data}; the payload is stored verbatim."""

    root: Dict[str, TokenStatsEntry] = Field(default_factory=dict)


__all__ = [
    'PriceChange', 'TokenRow', 'Banner', 'BannerSpecial', 'Snapshot',
    'SnapshotHistory', 'TokenRegistry', 'TokenStatsEntry', 'TokenStatsCache',
]
