import logging
import threading
import time
from typing import Optional

from tabs_backend.config import CONFIG

logger = logging.getLogger(__name__)


class Scheduler:
    """Background thread driving periodic full scans and profile discovery."""

    def __init__(self, service, scan_interval: Optional[int] = None,
                 discovery_interval: Optional[int] = None, warm_scan: Optional[bool] = None):
        self.service = service
        self.scan_interval = scan_interval or CONFIG['SCAN_INTERVAL']
        self.discovery_interval = discovery_interval or CONFIG['DISCOVERY_INTERVAL']
        self.warm_scan = CONFIG['WARM_SCAN_ON_BOOT'] if warm_scan is None else warm_scan
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _scan(self):
        try:
            snapshot, skipped = self.service.trigger_scan()
            if skipped:
                logger.info('scheduled scan skipped; another scan in flight')
        except Exception:
            logger.exception('scheduled scan failed')

    def _discover(self):
        try:
            self.service.discover_new_profiles()
        except Exception:
            logger.exception('scheduled discovery failed')

    def run(self):
        now = time.monotonic()
        next_scan = now if self.warm_scan else now + self.scan_interval
        next_discovery = now + self.discovery_interval
        while not self._stop.is_set():
            now = time.monotonic()
            if now >= next_scan:
                self._scan()
                next_scan = time.monotonic() + self.scan_interval
            if now >= next_discovery:
                self._discover()
                next_discovery = time.monotonic() + self.discovery_interval
            self._stop.wait(max(0.0, min(next_scan, next_discovery) - time.monotonic()))

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name='tabs-scheduler', daemon=True)
        self._thread.start()
        logger.info('Background scheduler started (scan=%ss, discovery=%ss)', self.scan_interval, self.discovery_interval)

    def stop(self, timeout: float = 5.0):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
