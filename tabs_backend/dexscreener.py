"""Dexscreener REST client for a single chain.

No retries here: every failure is raised so the caller decides whether a
token is skipped or the error surfaces.
"""
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectTimeout, ReadTimeout, RequestException

from tabs_backend.config import CONFIG
from tabs_backend.errors import NotFound, Upstream

logger = logging.getLogger(__name__)

# Bound the rolling durations list to avoid unbounded memory usage
_DURATIONS_MAX = 200


class DexscreenerClient:
    def __init__(self, base_url: Optional[str] = None, chain: Optional[str] = None,
                 timeout: Optional[Tuple[float, float]] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or CONFIG['DEXSCREENER_BASE_URL']).rstrip('/')
        self.chain = chain or CONFIG['CHAIN']
        self.timeout = timeout or (CONFIG['API_TIMEOUT_CONNECT'], CONFIG['API_TIMEOUT_READ'])
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=4, pool_maxsize=8, max_retries=0)
            session.mount('https://', adapter)
            session.mount('http://', adapter)
        self.session = session
        self._metrics_lock = threading.Lock()
        self._metrics = {
            'total_calls': 0,
            'errors': 0,
            'not_found': 0,
            'last_fetch_duration_ms': 0.0,
            'last_success_time': None,
            'durations_ms': [],
        }

    # ------------------------------------------------------------------ http
    def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        start = time.time()
        with self._metrics_lock:
            self._metrics['total_calls'] += 1
        try:
            r = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except (ConnectTimeout, ReadTimeout) as e:
            self._record(start, ok=False)
            logger.warning(f"dexscreener timeout {url}: {e}")
            raise Upstream(f"timeout for {url}") from e
        except RequestException as e:
            self._record(start, ok=False)
            logger.warning(f"dexscreener request error {url}: {e}")
            raise Upstream(f"request failed for {url}") from e
        if not 200 <= r.status_code < 300:
            self._record(start, ok=False)
            logger.warning(f"dexscreener status {r.status_code} for {url}")
            raise Upstream(f"HTTP {r.status_code} for {url}")
        try:
            data = r.json()
        except ValueError as e:
            self._record(start, ok=False)
            raise Upstream(f"invalid JSON from {url}") from e
        self._record(start, ok=True)
        return data

    def _record(self, start: float, ok: bool) -> None:
        dur_ms = (time.time() - start) * 1000.0
        with self._metrics_lock:
            self._metrics['last_fetch_duration_ms'] = dur_ms
            arr = self._metrics['durations_ms']
            arr.append(dur_ms)
            if len(arr) > _DURATIONS_MAX:
                del arr[: len(arr) - _DURATIONS_MAX]
            if ok:
                self._metrics['last_success_time'] = time.time()
            else:
                self._metrics['errors'] += 1

    # ------------------------------------------------------------- endpoints
    def fetch_token_overview(self, address: str) -> Dict[str, Any]:
        """First overview record for ``address``; NotFound when the provider has none."""
        data = self._get_json(f"/tokens/v1/{self.chain}/{address.lower()}")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0]
        with self._metrics_lock:
            self._metrics['not_found'] += 1
        raise NotFound(address)

    def search_pairs(self, query: str) -> List[Dict[str, Any]]:
        data = self._get_json(f"/latest/dex/search?q={quote(query, safe='')}")
        pairs = data.get('pairs') if isinstance(data, dict) else None
        return [p for p in pairs if isinstance(p, dict)] if isinstance(pairs, list) else []

    def fetch_token_pairs(self, address: str) -> List[Dict[str, Any]]:
        data = self._get_json(f"/token-pairs/v1/{self.chain}/{address.lower()}")
        return [p for p in data if isinstance(p, dict)] if isinstance(data, list) else []

    def fetch_latest_profiles(self) -> List[Dict[str, Any]]:
        """Latest published token profiles on this client's chain."""
        data = self._get_json("/token-profiles/latest/v1")
        if isinstance(data, dict):
            data = data.get('profiles')
        if not isinstance(data, list):
            return []
        out = []
        for p in data:
            if not isinstance(p, dict):
                continue
            chain = p.get('chainId')
            if chain and str(chain).lower() != self.chain:
                continue
            out.append(p)
        return out

    def metrics(self) -> Dict[str, Any]:
        with self._metrics_lock:
            data = dict(self._metrics)
            durations = list(data.pop('durations_ms'))
        total = data['total_calls']
        data['avg_fetch_duration_ms'] = round(sum(durations) / len(durations), 3) if durations else None
        data['error_rate_percent'] = round(data['errors'] / total * 100.0, 4) if total else 0.0
        return data


def base_token_address(record: Dict[str, Any]) -> str:
    base = record.get('baseToken')
    if isinstance(base, dict):
        return str(base.get('address') or '').lower()
    return ''


__all__ = ['DexscreenerClient', 'base_token_address']
