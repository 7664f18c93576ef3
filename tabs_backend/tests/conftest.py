"""
Shared pytest fixtures: an in-memory provider and temp-dir backed stores.
"""

import pytest

from tabs_backend.config import CONFIG
from tabs_backend.errors import NotFound
from tabs_backend.service import TabsService


TOKEN_A = '0x' + 'a' * 40
TOKEN_B = '0x' + 'b' * 40
TOKEN_C = '0x' + 'c' * 40
PAIR_1 = '0x' + '1' * 40
PAIR_2 = '0x' + '2' * 40
PAIR_3 = '0x' + '3' * 40


def make_overview(address, name='Token', symbol='TKN', h24=0.0, market_cap=None, fdv=None,
                  volume=None, url=None):
    record = {
        'chainId': 'abstract',
        'pairAddress': PAIR_1,
        'baseToken': {'address': address, 'name': name, 'symbol': symbol},
        'priceChange': {'m5': 0.1, 'h1': 1.0, 'h6': 2.0, 'h24': h24},
        'marketCap': market_cap,
        'fdv': fdv,
        'url': url or f'https://dexscreener.com/abstract/{address}',
    }
    if volume is not None:
        record['volume'] = {'h24': volume}
    return record


def make_pair(base, pair_address, volume):
    return {
        'chainId': 'abstract',
        'pairAddress': pair_address,
        'baseToken': {'address': base},
        'volume': {'h24': volume},
    }


class FakeClient:
    """Duck-typed stand-in for DexscreenerClient.

    Each mapping is keyed by lowercased address/query; a value that is an
    exception instance is raised instead of returned.
    """

    def __init__(self, overviews=None, search=None, token_pairs=None, profiles=None):
        self.overviews = dict(overviews or {})
        self.search = dict(search or {})
        self.token_pairs = dict(token_pairs or {})
        self.profiles = profiles if profiles is not None else []
        self.calls = []

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_token_overview(self, address):
        self.calls.append(('overview', address.lower()))
        value = self.overviews.get(address.lower())
        if value is None:
            raise NotFound(address)
        return self._answer(value)

    def search_pairs(self, query):
        self.calls.append(('search', query.lower()))
        return self._answer(self.search.get(query.lower(), []))

    def fetch_token_pairs(self, address):
        self.calls.append(('token_pairs', address.lower()))
        return self._answer(self.token_pairs.get(address.lower(), []))

    def fetch_latest_profiles(self):
        self.calls.append(('profiles', None))
        return self._answer(self.profiles)

    def count(self, kind, arg=None):
        return sum(1 for k, a in self.calls if k == kind and (arg is None or a == arg))


@pytest.fixture(autouse=True)
def no_scan_delay(monkeypatch):
    monkeypatch.setitem(CONFIG, 'TOKEN_DELAY_SECONDS', 0)
    yield


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def service(tmp_path, fake_client):
    return TabsService(client=fake_client, data_dir=str(tmp_path))
