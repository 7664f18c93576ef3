"""Snapshot builder: one sequential pass over the tracked tokens."""
import logging
import time
from typing import Callable, List, Optional

from pydantic import ValidationError

from tabs_backend.config import CONFIG
from tabs_backend.errors import NotFound, Upstream
from tabs_backend.models import Banner, BannerSpecial, Snapshot, TokenRegistry, TokenRow
from tabs_backend.rows import build_row
from tabs_backend.volume import resolve_volume_24h

logger = logging.getLogger(__name__)

_UNRANKED = float('-inf')


def _change_24h(row: TokenRow) -> float:
    h24 = row.priceChange.h24
    return _UNRANKED if h24 is None else h24


def rank_rows(rows: List[TokenRow], limit: Optional[int] = None):
    """Return (top_gainers, top_volume), each sorted descending and truncated.

    ``sorted`` is stable with ``reverse=True``, so ties keep tracked order.
    Rows with an unknown 24h change rank below every known change.
    """
    limit = CONFIG['TOP_N'] if limit is None else limit
    gainers = sorted(rows, key=_change_24h, reverse=True)[:limit]
    top_vol = sorted(rows, key=lambda r: r.volume24h, reverse=True)[:limit]
    return gainers, top_vol


def compute_banner(rows: List[TokenRow]) -> Banner:
    """Aggregate banner; the 24h change stays at its neutral default."""
    banner = Banner(url=CONFIG['DEFAULT_BANNER_URL'])
    banner.vol24 = sum(r.volume24h for r in rows)
    source = next((r for r in rows if r.marketCap is not None), None)
    if source is None:
        source = next((r for r in rows if r.fdv is not None), None)
    if source is not None:
        banner.cap = source.cap or 0.0
        banner.fdv = source.fdv or source.marketCap or 0.0
        banner.marketCap = source.marketCap or 0.0
        banner.url = source.url or banner.url
    return banner


def special_banner(row: TokenRow) -> BannerSpecial:
    return BannerSpecial(
        address=row.baseAddress,
        name=row.name,
        symbol=row.symbol,
        cap=row.cap or 0.0,
        fdv=row.fdv or row.marketCap or 0.0,
        marketCap=row.marketCap or 0.0,
        vol24=row.volume24h,
        chg24=row.priceChange.h24 or 0.0,
        url=row.url or CONFIG['DEFAULT_BANNER_URL'],
    )


class SnapshotBuilder:
    def __init__(self, client, registry_store, chain: Optional[str] = None,
                 special_token: Optional[str] = None, delay: Optional[float] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.registry_store = registry_store
        self.chain = chain or CONFIG['CHAIN']
        self.special_token = (special_token or CONFIG['SPECIAL_TOKEN']).lower()
        self.delay = CONFIG['TOKEN_DELAY_SECONDS'] if delay is None else delay
        self._sleep = sleep

    def build_row_for(self, registry: TokenRegistry, address: str) -> TokenRow:
        """Fetch, aggregate and map one token; provider failures propagate."""
        overview = self.client.fetch_token_overview(address)
        volume = resolve_volume_24h(self.client, self.registry_store, registry, address, overview=overview)
        return build_row(overview, address, volume)

    def build_snapshot(self, registry: TokenRegistry) -> Snapshot:
        started = time.time()
        tokens = list(registry.tokens)
        rows: List[TokenRow] = []
        for i, address in enumerate(tokens):
            if i and self.delay > 0:
                self._sleep(self.delay)
            try:
                rows.append(self.build_row_for(registry, address.lower()))
            except (NotFound, Upstream, ValidationError) as e:
                logger.warning(f"scan: skipping {address}: {e.__class__.__name__} {e}")

        gainers, top_vol = rank_rows(rows)
        snapshot = Snapshot(
            ts=int(time.time() * 1000),
            chain=self.chain,
            banner=compute_banner(rows),
            bannerSpecial=self._resolve_special(registry, rows),
            topGainers=gainers,
            topVol=top_vol,
            tokensTracked=len(tokens),
        )
        logger.info(
            "scan complete: %d tracked, %d rows, %.1fs",
            len(tokens), len(rows), time.time() - started,
        )
        return snapshot

    def _resolve_special(self, registry: TokenRegistry, rows: List[TokenRow]) -> Optional[BannerSpecial]:
        row = next((r for r in rows if r.baseAddress == self.special_token), None)
        if row is None:
            try:
                row = self.build_row_for(registry, self.special_token)
            except (NotFound, Upstream, ValidationError) as e:
                logger.info(f"special banner unavailable: {e}")
                return None
        return special_banner(row)
