import argparse
import logging
import os
import time
import uuid
from typing import Optional

from flask import Flask, Response, g, jsonify, request, send_from_directory
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from tabs_backend.config import CONFIG
from tabs_backend.errors import InvalidPayload, TabsError
from tabs_backend.logging_config import REQUEST_ID_CTX, install_thread_excepthook, log_config, setup_logging
from tabs_backend.metrics import render_prometheus
from tabs_backend.scheduler import Scheduler
from tabs_backend.service import TabsService

logger = logging.getLogger(__name__)


def _dump(model):
    return model.model_dump(mode='json') if model is not None else None


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidPayload("request body must be a JSON object")
    return body


def create_app(service: Optional[TabsService] = None) -> Flask:
    static_dir = CONFIG['STATIC_DIR']
    app = Flask(__name__, static_folder=static_dir, static_url_path='')
    app.config['MAX_CONTENT_LENGTH'] = CONFIG['MAX_CONTENT_LENGTH']
    app.config['LAZY_SCAN_ON_EMPTY'] = CONFIG['LAZY_SCAN_ON_EMPTY']
    svc = service or TabsService()
    app.extensions['tabs_service'] = svc
    logger.info("Serving static from: %s", static_dir)

    cors_env = CONFIG['CORS_ALLOWED_ORIGINS']
    cors_origins = '*' if cors_env == '*' else [o.strip() for o in cors_env.split(',') if o.strip()]
    CORS(app, origins=cors_origins)

    startup_time = time.time()
    error_stats = {'5xx': 0}

    # ---------------- Request bookkeeping -----------------
    @app.before_request
    def _before_request():
        g._start_time = time.time()
        rid = request.headers.get('X-Request-ID') or uuid.uuid4().hex[:12]
        g._request_id = rid
        g._rid_token = REQUEST_ID_CTX.set(rid)

    @app.after_request
    def _after_request(resp):
        if 500 <= resp.status_code < 600:
            error_stats['5xx'] += 1
        rid = getattr(g, '_request_id', None)
        if rid:
            resp.headers['X-Request-ID'] = rid
        return resp

    @app.teardown_request
    def _teardown_request(exc):
        token = g.pop('_rid_token', None)
        if token is not None:
            REQUEST_ID_CTX.reset(token)

    # ---------------- Error mapping -----------------
    @app.errorhandler(TabsError)
    def _tabs_error(e: TabsError):
        if e.status_code >= 500:
            logger.error(f"{request.path} failed: {e.__class__.__name__} {e}")
        return jsonify({'ok': False, 'error': e.code}), e.status_code

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception(f"{request.path} unhandled error")
        return jsonify({'ok': False, 'error': 'server_error'}), 500

    # ---------------- API -----------------
    @app.post('/api/refresh')
    def refresh():
        try:
            snapshot, skipped = svc.trigger_scan()
        except Exception:
            logger.exception('runScan failed')
            return jsonify({'ok': False, 'error': 'scan_failed'})
        return jsonify({'ok': True, 'snapshot': _dump(snapshot), 'skipped': skipped})

    @app.get('/api/snapshot/latest')
    def snapshot_latest():
        snapshot = svc.latest_snapshot()
        if snapshot is None and app.config.get('LAZY_SCAN_ON_EMPTY'):
            # run a lazy scan if nothing exists yet
            try:
                snapshot, _ = svc.trigger_scan()
            except Exception:
                logger.exception('lazy scan failed')
                snapshot = None
        return jsonify({'snapshot': _dump(snapshot)})

    @app.post('/api/add-token')
    def add_token():
        body = _json_body()
        row, tracked = svc.add_token(body.get('ca'))
        return jsonify({'ok': True, 'row': _dump(row), 'tokensTracked': tracked})

    # Deep scan persistence (written by the browser-side integration)
    @app.get('/api/token-stats/<ca>')
    def token_stats(ca):
        entry = svc.get_cached_stats(ca)
        if entry is None:
            return jsonify({'ok': False, 'data': None})
        return jsonify({'ok': True, 'ts': entry.ts, 'data': entry.data})

    @app.post('/api/token-stats/save')
    def token_stats_save():
        body = _json_body()
        ts = svc.save_cached_stats(body.get('ca'), body.get('data'))
        return jsonify({'ok': True, 'ts': ts})

    # ---------------- Health + Metrics -----------------
    @app.get('/api/health')
    def api_health():
        return jsonify({
            'status': 'ok',
            'uptime_seconds': round(time.time() - startup_time, 2),
            'errors_5xx': error_stats['5xx'],
        })

    def _metrics_payload():
        return {
            'status': 'ok',
            'uptime_seconds': round(time.time() - startup_time, 2),
            'errors_5xx': error_stats['5xx'],
            'provider': svc.client.metrics() if hasattr(svc.client, 'metrics') else None,
            'scan': svc.coordinator.stats(),
            'tokens_tracked': len(svc.registry_store.load().tokens),
        }

    @app.get('/api/metrics')
    def api_metrics():
        return jsonify(_metrics_payload())

    @app.get('/metrics.prom')
    def metrics_prom():
        return Response(render_prometheus(_metrics_payload()), mimetype='text/plain; version=0.0.4')

    # ---------------- Static UI -----------------
    @app.get('/')
    def root():
        if os.path.isfile(os.path.join(static_dir, 'index.html')):
            return send_from_directory(static_dir, 'index.html')
        return jsonify({'service': '$tABS backend', 'chain': CONFIG['CHAIN']})

    return app


# =============================================================================
# COMMAND LINE ARGUMENTS
# =============================================================================

def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(description='$tABS token snapshot backend')
    parser.add_argument('--port', type=int, help='Port to run the server on')
    parser.add_argument('--host', type=str, help='Host to bind the server to')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')
    parser.add_argument('--no-scheduler', action='store_true', help='Do not start background scans')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)
    setup_logging()
    install_thread_excepthook()
    log_config(CONFIG)

    service = TabsService()
    app = create_app(service)
    if CONFIG['ENABLE_SCHEDULER'] and not args.no_scheduler:
        Scheduler(service).start()

    host = args.host or CONFIG['HOST']
    port = args.port or CONFIG['PORT']
    logger.info(f"$tABS server listening on http://{host}:{port}")
    app.run(host=host, port=port, debug=args.debug or CONFIG['DEBUG'], use_reloader=False)


if __name__ == "__main__":
    main()
