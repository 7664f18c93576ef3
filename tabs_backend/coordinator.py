import logging
import threading
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from tabs_backend.logging_config import SCAN_ID_CTX
from tabs_backend.models import Snapshot

logger = logging.getLogger(__name__)


class ScanCoordinator:
    """Single-flight gate around the snapshot builder.

    A caller arriving while a scan is running gets the last persisted
    snapshot straight away instead of waiting or starting a second build.
    """

    def __init__(self, builder, registry_store, snapshot_store):
        self.builder = builder
        self.registry_store = registry_store
        self.snapshot_store = snapshot_store
        self._gate = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = {
            'scans_completed': 0,
            'scans_failed': 0,
            'scans_skipped': 0,
            'last_scan_id': None,
            'last_scan_ts': None,
            'last_scan_duration_sec': None,
        }

    @property
    def in_flight(self) -> bool:
        return self._gate.locked()

    def _bump(self, key: str, **fields) -> None:
        with self._stats_lock:
            self._stats[key] += 1
            self._stats.update(fields)

    def run_scan(self) -> Tuple[Optional[Snapshot], bool]:
        """Return ``(snapshot, skipped)``; build failures propagate after the gate is released."""
        if not self._gate.acquire(blocking=False):
            self._bump('scans_skipped')
            logger.info('scan already in flight; serving latest snapshot')
            return self.snapshot_store.load().latest, True
        scan_id = uuid.uuid4().hex[:8]
        token = SCAN_ID_CTX.set(scan_id)
        t0 = time.time()
        try:
            registry = self.registry_store.load()
            snapshot = self.builder.build_snapshot(registry)
            self.snapshot_store.append_snapshot(self.snapshot_store.load(), snapshot)
        except Exception:
            self._bump('scans_failed', last_scan_id=scan_id)
            raise
        finally:
            SCAN_ID_CTX.reset(token)
            self._gate.release()
        self._bump(
            'scans_completed',
            last_scan_id=scan_id,
            last_scan_ts=snapshot.ts,
            last_scan_duration_sec=round(time.time() - t0, 3),
        )
        return snapshot, False

    def stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            data = dict(self._stats)
        data['in_flight'] = self.in_flight
        return data
