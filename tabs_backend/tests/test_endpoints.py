import pytest
from jsonschema import validate

from tabs_backend.app import create_app
from tabs_backend.schemas import SNAPSHOT_SCHEMA, TOKEN_ROW_SCHEMA
from tabs_backend.tests.conftest import PAIR_1, TOKEN_A, TOKEN_B, make_overview, make_pair


@pytest.fixture
def app(service):
    app = create_app(service)
    app.testing = True
    app.config['LAZY_SCAN_ON_EMPTY'] = False
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def _seed(service, fake_client):
    fake_client.overviews[TOKEN_A] = make_overview(TOKEN_A, h24=50, market_cap=1000)
    fake_client.overviews[TOKEN_B] = make_overview(TOKEN_B, h24=10, fdv=5000)
    fake_client.search[TOKEN_A] = [make_pair(TOKEN_A, PAIR_1, 100)]
    registry = service.registry_store.load()
    service.registry_store.add_token(registry, TOKEN_A)
    service.registry_store.add_token(registry, TOKEN_B)


def test_refresh_returns_snapshot(client, service, fake_client):
    _seed(service, fake_client)
    resp = client.post('/api/refresh')
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['ok'] is True
    assert data['skipped'] is False
    validate(data['snapshot'], SNAPSHOT_SCHEMA)
    assert [r['baseAddress'] for r in data['snapshot']['topGainers']] == [TOKEN_A, TOKEN_B]
    assert data['snapshot']['tokensTracked'] == 2


def test_refresh_reports_scan_failure(client, service, monkeypatch):
    def boom(registry):
        raise RuntimeError('disk on fire')
    monkeypatch.setattr(service.builder, 'build_snapshot', boom)
    data = client.post('/api/refresh').get_json()
    assert data == {'ok': False, 'error': 'scan_failed'}
    assert not service.coordinator.in_flight


def test_latest_snapshot_empty_without_lazy_scan(client, fake_client):
    resp = client.get('/api/snapshot/latest')
    assert resp.status_code == 200
    assert resp.get_json() == {'snapshot': None}
    assert fake_client.calls == []


def test_latest_snapshot_lazy_scan(app, client, service, fake_client):
    _seed(service, fake_client)
    app.config['LAZY_SCAN_ON_EMPTY'] = True
    data = client.get('/api/snapshot/latest').get_json()
    validate(data['snapshot'], SNAPSHOT_SCHEMA)
    again = client.get('/api/snapshot/latest').get_json()
    assert again['snapshot']['ts'] == data['snapshot']['ts']


def test_add_token_endpoint(client, fake_client):
    fake_client.overviews[TOKEN_A] = make_overview(TOKEN_A, h24=1.5)
    resp = client.post('/api/add-token', json={'ca': TOKEN_A})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['ok'] is True
    assert data['tokensTracked'] == 1
    validate(data['row'], TOKEN_ROW_SCHEMA)


def test_add_token_invalid_address(client, service):
    resp = client.post('/api/add-token', json={'ca': '0x1234'})
    assert resp.status_code == 400
    assert resp.get_json() == {'ok': False, 'error': 'invalid_ca'}
    assert service.registry_store.load().tokens == []


def test_add_token_not_found(client):
    resp = client.post('/api/add-token', json={'ca': TOKEN_A})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'not_found'


def test_token_stats_endpoints(client):
    assert client.get(f'/api/token-stats/{TOKEN_A}').get_json() == {'ok': False, 'data': None}
    saved = client.post('/api/token-stats/save', json={'ca': TOKEN_A, 'data': {'x': 1}}).get_json()
    assert saved['ok'] is True
    got = client.get(f'/api/token-stats/{TOKEN_A}').get_json()
    assert got['ok'] is True
    assert got['data'] == {'x': 1}
    assert got['ts'] >= saved['ts']


def test_token_stats_validation(client):
    assert client.get('/api/token-stats/0x1234').status_code == 400
    resp = client.post('/api/token-stats/save', json={'ca': TOKEN_A, 'data': 'scalar'})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'invalid_payload'


def test_unhandled_error_is_500_and_counted(client, service, monkeypatch):
    def boom(address):
        raise RuntimeError('unexpected')
    monkeypatch.setattr(service, 'add_token', boom)
    resp = client.post('/api/add-token', json={'ca': TOKEN_A})
    assert resp.status_code == 500
    assert resp.get_json() == {'ok': False, 'error': 'server_error'}
    assert client.get('/api/health').get_json()['errors_5xx'] == 1


def test_health_and_metrics(client):
    health = client.get('/api/health')
    assert health.status_code == 200
    assert health.get_json()['status'] == 'ok'
    assert health.headers.get('X-Request-ID')
    metrics = client.get('/api/metrics').get_json()
    for key in ('status', 'uptime_seconds', 'errors_5xx', 'scan', 'tokens_tracked'):
        assert key in metrics
    assert metrics['scan']['in_flight'] is False
    prom = client.get('/metrics.prom')
    assert prom.status_code == 200
    assert b'tabs_scans_completed_total' in prom.data


def test_request_id_is_echoed(client):
    resp = client.get('/api/health', headers={'X-Request-ID': 'abc123'})
    assert resp.headers['X-Request-ID'] == 'abc123'


def test_unknown_route_is_404(client):
    assert client.get('/api/does-not-exist').status_code == 404


@pytest.mark.parametrize('path', ['/api/add-token', '/api/token-stats/save'])
@pytest.mark.parametrize('body', [[TOKEN_A], 'text', 7])
def test_non_object_body_is_400(client, path, body):
    resp = client.post(path, json=body)
    assert resp.status_code == 400
    assert resp.get_json() == {'ok': False, 'error': 'invalid_payload'}
