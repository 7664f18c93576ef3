"""Metrics exposition helpers for JSON and Prometheus outputs."""
from __future__ import annotations
from typing import Any, Dict


def emit_prometheus(lines: list[str], name: str, value: Any, mtype: str, help_text: str):
    lines.append(f'# HELP {name} {help_text}')
    lines.append(f'# TYPE {name} {mtype}')
    if value is None:
        value = 'NaN'
    elif isinstance(value, bool):
        value = int(value)
    lines.append(f'{name} {value}')


def render_prometheus(payload: Dict[str, Any]) -> str:
    """Text exposition of the /api/metrics payload without prometheus_client."""
    lines: list[str] = []
    emit_prometheus(lines, 'tabs_uptime_seconds', payload.get('uptime_seconds'), 'gauge', 'Process uptime in seconds')
    emit_prometheus(lines, 'tabs_http_errors_5xx_total', payload.get('errors_5xx', 0), 'counter', 'HTTP responses with 5xx status')
    provider = payload.get('provider') or {}
    emit_prometheus(lines, 'tabs_provider_calls_total', provider.get('total_calls', 0), 'counter', 'Requests sent to the market-data provider')
    emit_prometheus(lines, 'tabs_provider_errors_total', provider.get('errors', 0), 'counter', 'Failed provider requests')
    emit_prometheus(lines, 'tabs_provider_not_found_total', provider.get('not_found', 0), 'counter', 'Overview lookups with no provider record')
    emit_prometheus(lines, 'tabs_provider_last_fetch_duration_ms', provider.get('last_fetch_duration_ms'), 'gauge', 'Duration of the last provider request')
    scan = payload.get('scan') or {}
    emit_prometheus(lines, 'tabs_scans_completed_total', scan.get('scans_completed', 0), 'counter', 'Completed snapshot scans')
    emit_prometheus(lines, 'tabs_scans_failed_total', scan.get('scans_failed', 0), 'counter', 'Scans that raised')
    emit_prometheus(lines, 'tabs_scans_skipped_total', scan.get('scans_skipped', 0), 'counter', 'Scan triggers answered while another scan was in flight')
    emit_prometheus(lines, 'tabs_scan_in_flight', scan.get('in_flight', False), 'gauge', '1 while a scan is running')
    emit_prometheus(lines, 'tabs_last_scan_duration_seconds', scan.get('last_scan_duration_sec'), 'gauge', 'Duration of the last completed scan')
    emit_prometheus(lines, 'tabs_tokens_tracked', payload.get('tokens_tracked'), 'gauge', 'Tokens in the registry')
    return '\n'.join(lines) + '\n'
