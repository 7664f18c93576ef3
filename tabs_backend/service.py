"""Operations exposed to the request layer and the scheduler."""
import logging
from typing import Any, Optional, Tuple

from tabs_backend.addresses import is_address, normalize_address
from tabs_backend.coordinator import ScanCoordinator
from tabs_backend.dexscreener import DexscreenerClient
from tabs_backend.errors import InvalidPayload, NotFound, Upstream
from tabs_backend.models import Snapshot, TokenRow, TokenStatsEntry
from tabs_backend.rows import build_row
from tabs_backend.scanner import SnapshotBuilder
from tabs_backend.stores import open_stores
from tabs_backend.volume import discover_pairs, pair_volume_24h

logger = logging.getLogger(__name__)


class TabsService:
    def __init__(self, client=None, data_dir: Optional[str] = None, builder: Optional[SnapshotBuilder] = None):
        self.client = client or DexscreenerClient()
        self.registry_store, self.snapshot_store, self.stats_store = open_stores(data_dir)
        self.builder = builder or SnapshotBuilder(self.client, self.registry_store)
        self.coordinator = ScanCoordinator(self.builder, self.registry_store, self.snapshot_store)

    # -- snapshots
    def trigger_scan(self) -> Tuple[Optional[Snapshot], bool]:
        return self.coordinator.run_scan()

    def latest_snapshot(self) -> Optional[Snapshot]:
        return self.snapshot_store.load().latest

    # -- registry
    def add_token(self, address: str) -> Tuple[TokenRow, int]:
        """Track ``address`` and compute its row for immediate display.

        InvalidAddress is raised before any I/O. Pairs are discovered before
        the overview lookup, so they are recorded even when the provider has
        no overview yet. A NotFound or Upstream on the overview surfaces to
        the caller; the address stays tracked either way.
        """
        target = normalize_address(address)
        registry = self.registry_store.load()
        self.registry_store.add_token(registry, target)
        pairs = discover_pairs(self.client, self.registry_store, registry, target)
        overview = self.client.fetch_token_overview(target)
        if pairs:
            volume = sum(pair_volume_24h(p) for p in pairs)
        else:
            volume = pair_volume_24h(overview)
        row = build_row(overview, target, volume)
        return row, len(registry.tokens)

    def discover_new_profiles(self) -> int:
        try:
            profiles = self.client.fetch_latest_profiles()
        except (Upstream, NotFound) as e:
            logger.warning(f"profile discovery failed: {e}")
            return 0
        registry = self.registry_store.load()
        added = 0
        for p in profiles:
            ca = p.get('tokenAddress') or p.get('address')
            if is_address(ca) and self.registry_store.add_token(registry, ca):
                added += 1
        if added:
            logger.info(f"profile discovery added {added} tokens (tracked={len(registry.tokens)})")
        return added

    # -- deep-scan cache
    def get_cached_stats(self, address: str) -> Optional[TokenStatsEntry]:
        return self.stats_store.get(address)

    def save_cached_stats(self, address: str, payload: Any) -> int:
        addr = normalize_address(address)
        if not isinstance(payload, (dict, list)):
            raise InvalidPayload('token stats payload must be an object or array')
        return self.stats_store.put(addr, payload).ts
