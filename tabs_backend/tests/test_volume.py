import pytest

from tabs_backend.errors import Upstream
from tabs_backend.stores import TokenRegistryStore
from tabs_backend.tests.conftest import (
    FakeClient, PAIR_1, PAIR_2, PAIR_3, TOKEN_A, TOKEN_B, make_overview, make_pair,
)
from tabs_backend.volume import matching_pairs, pair_volume_24h, resolve_volume_24h


@pytest.fixture
def registry_store(tmp_path):
    return TokenRegistryStore(str(tmp_path / 'tokens-lib.json'))


def test_sums_only_pairs_based_on_token(registry_store):
    client = FakeClient(search={TOKEN_A: [
        make_pair(TOKEN_A.upper().replace('0X', '0x'), PAIR_1, 100.5),
        make_pair(TOKEN_B, PAIR_2, 9999),
        make_pair(TOKEN_A, PAIR_3, '20'),
    ]})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == pytest.approx(120.5)
    assert registry_store.load().tokenPairs[TOKEN_A] == [PAIR_1, PAIR_3]


def test_token_pairs_endpoint_preferred_over_search(registry_store):
    client = FakeClient(token_pairs={TOKEN_A: [make_pair(TOKEN_A, PAIR_1, 7)]},
                        search={TOKEN_A: [make_pair(TOKEN_A, PAIR_2, 1000)]})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == 7
    assert client.count('search') == 0


def test_pair_ids_are_normalized_before_merge(registry_store):
    client = FakeClient(search={TOKEN_A: [
        make_pair(TOKEN_A, PAIR_1.upper().replace('0X', '0x') + ':v2', 1),
        make_pair(TOKEN_A, 'not-a-pair', 2),
    ]})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == 3
    assert registry.tokenPairs[TOKEN_A] == [PAIR_1]


def test_known_pairs_grow_monotonically(registry_store):
    registry = registry_store.load()
    client = FakeClient(search={TOKEN_A: [make_pair(TOKEN_A, PAIR_1, 1)]})
    resolve_volume_24h(client, registry_store, registry, TOKEN_A)
    client.search[TOKEN_A] = [make_pair(TOKEN_A, PAIR_2, 1)]
    resolve_volume_24h(client, registry_store, registry, TOKEN_A)
    client.search[TOKEN_A] = []
    resolve_volume_24h(client, registry_store, registry, TOKEN_A, overview=make_overview(TOKEN_A))
    assert registry_store.load().tokenPairs[TOKEN_A] == [PAIR_1, PAIR_2]


def test_falls_back_to_overview_volume(registry_store):
    client = FakeClient(overviews={TOKEN_A: make_overview(TOKEN_A, volume=42.0)},
                        search={TOKEN_A: [make_pair(TOKEN_B, PAIR_1, 1000)]})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == 42.0
    assert TOKEN_A not in registry.tokenPairs


def test_supplied_overview_is_not_refetched(registry_store):
    client = FakeClient()
    registry = registry_store.load()
    volume = resolve_volume_24h(client, registry_store, registry, TOKEN_A, overview=make_overview(TOKEN_A, volume=5))
    assert volume == 5
    assert client.count('overview') == 0


def test_provider_failures_count_as_zero(registry_store):
    client = FakeClient(token_pairs={TOKEN_A: Upstream('boom')},
                        search={TOKEN_A: Upstream('boom')},
                        overviews={TOKEN_A: Upstream('boom')})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == 0.0


def test_missing_overview_counts_as_zero(registry_store):
    registry = registry_store.load()
    assert resolve_volume_24h(FakeClient(), registry_store, registry, TOKEN_A) == 0.0


@pytest.mark.parametrize("pair,expected", [
    ({'volume': {'h24': 12.5}}, 12.5),
    ({'volume': {'h24': '3'}}, 3.0),
    ({'volume': {'h24': -50}}, 0.0),
    ({'volume': {'h24': 'lots'}}, 0.0),
    ({'volume': {'h24': float('nan')}}, 0.0),
    ({'volume': None, 'volume24h': 8}, 8.0),
    ({}, 0.0),
])
def test_pair_volume_is_never_negative(pair, expected):
    assert pair_volume_24h(pair) == expected


def test_negative_volumes_never_produce_negative_sum(registry_store):
    client = FakeClient(search={TOKEN_A: [make_pair(TOKEN_A, PAIR_1, -10), make_pair(TOKEN_A, PAIR_2, None)]})
    registry = registry_store.load()
    assert resolve_volume_24h(client, registry_store, registry, TOKEN_A) == 0.0


def test_matching_pairs_ignores_missing_base():
    assert matching_pairs([{'pairAddress': PAIR_1}, {'baseToken': 'x'}], TOKEN_A) == []
