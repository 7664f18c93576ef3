import logging
import os
import time
from typing import Any, Iterable, List, Optional

from tabs_backend.addresses import normalize_address
from tabs_backend.config import CONFIG
from tabs_backend.json_store import JsonDocumentStore
from tabs_backend.models import Snapshot, SnapshotHistory, TokenRegistry, TokenStatsCache, TokenStatsEntry

logger = logging.getLogger(__name__)

TOKENS_FILE = 'tokens-lib.json'
SNAPSHOTS_FILE = 'snapshots.json'
TOKEN_STATS_FILE = 'token-stats.json'


class TokenRegistryStore(JsonDocumentStore[TokenRegistry]):
    """Tracked token addresses plus the pair addresses discovered for each."""

    def __init__(self, path: str):
        super().__init__(path, TokenRegistry)

    # Mutations re-read the file under the store lock and apply the change to
    # that copy; ``registry`` may be stale and is only updated in place.

    def add_token(self, registry: TokenRegistry, address: str) -> bool:
        """Track ``address``; returns False when it was already tracked."""
        target = normalize_address(address)
        with self.lock:
            current = self.load()
            added = target not in {t.lower() for t in current.tokens}
            if added:
                current.tokens.append(target)
                self.save(current)
        registry.tokens = list(current.tokens)
        if added:
            logger.info('registry.token_added %s (tracked=%d)', target, len(current.tokens))
        return added

    def merge_pairs(self, registry: TokenRegistry, token_address: str, new_pairs: Iterable[str]) -> List[str]:
        """Union ``new_pairs`` into the token's known pairs and persist when it grew."""
        token = token_address.lower()
        incoming = [p.lower() for p in new_pairs if p]
        with self.lock:
            current = self.load()
            known = list(current.tokenPairs.get(token, []))
            merged = list(dict.fromkeys(known + incoming))
            if token not in current.tokenPairs or merged != known:
                current.tokenPairs[token] = merged
                self.save(current)
                if len(merged) > len(known):
                    logger.debug('registry.pairs_merged %s +%d', token, len(merged) - len(known))
        registry.tokenPairs[token] = merged
        return merged


class SnapshotStore(JsonDocumentStore[SnapshotHistory]):
    def __init__(self, path: str, limit: Optional[int] = None):
        super().__init__(path, SnapshotHistory)
        self.limit = limit or CONFIG['HISTORY_LIMIT']

    def append_snapshot(self, history: SnapshotHistory, snapshot: Snapshot) -> SnapshotHistory:
        with self.lock:
            history.latest = snapshot
            history.history = ([snapshot] + list(history.history))[: self.limit]
            self.save(history)
        return history


class TokenStatsStore(JsonDocumentStore[TokenStatsCache]):
    """Opaque deep-scan results keyed by token address."""

    def __init__(self, path: str):
        super().__init__(path, TokenStatsCache)

    def get(self, address: str) -> Optional[TokenStatsEntry]:
        return self.load().root.get(normalize_address(address))

    def put(self, address: str, payload: Any) -> TokenStatsEntry:
        addr = normalize_address(address)
        entry = TokenStatsEntry(ts=int(time.time() * 1000), data=payload)
        with self.lock:
            cache = self.load()
            cache.root[addr] = entry
            self.save(cache)
        return entry


def open_stores(data_dir: Optional[str] = None):
    """Build the three stores under ``data_dir`` and write any missing defaults."""
    base = data_dir or CONFIG['DATA_DIR']
    stores = (
        TokenRegistryStore(os.path.join(base, TOKENS_FILE)),
        SnapshotStore(os.path.join(base, SNAPSHOTS_FILE)),
        TokenStatsStore(os.path.join(base, TOKEN_STATS_FILE)),
    )
    for store in stores:
        store.ensure_exists()
    return stores
