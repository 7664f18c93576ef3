import logging, json, os, threading
from logging.handlers import RotatingFileHandler
from contextvars import ContextVar

# Per-request correlation id, set by the Flask request hooks
REQUEST_ID_CTX: ContextVar[str | None] = ContextVar('request_id', default=None)
# Id of the scan the current thread is running, set by ScanCoordinator
SCAN_ID_CTX: ContextVar[str | None] = ContextVar('scan_id', default=None)

LOG_DIR = os.environ.get('LOG_DIR', os.path.join('data', 'logs'))
LOG_FILE = os.path.join(LOG_DIR, 'tabs.log')

TEXT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - rid=%(correlation_id)s scan=%(scan_id)s - %(message)s'


class LogContextFilter(logging.Filter):
    """Stamp request and scan ids on every record, None when outside one."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = REQUEST_ID_CTX.get()
        record.scan_id = SCAN_ID_CTX.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = {
            'ts': self.formatTime(record, datefmt='%Y-%m-%dT%H:%M:%S'),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', None),
            'scan_id': getattr(record, 'scan_id', None),
        }
        if record.exc_info:
            line['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


def _handler(handler: logging.Handler, fmt: logging.Formatter) -> logging.Handler:
    handler.setFormatter(fmt)
    handler.addFilter(LogContextFilter())
    return handler


def setup_logging(level=logging.INFO):
    root = logging.getLogger()
    root.setLevel(level)
    # app.run may call this twice under a debugger; never stack handlers
    root.handlers = []
    if os.environ.get('LOG_FORMAT', '').lower() == 'json':
        fmt = JsonFormatter()
    else:
        fmt = logging.Formatter(TEXT_FORMAT)
    root.addHandler(_handler(logging.StreamHandler(), fmt))
    # 5 MB x 3 backups next to the data files
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        root.addHandler(_handler(RotatingFileHandler(LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3), fmt))
    except OSError:
        root.warning('log dir %s not writable; console logging only', LOG_DIR)


def log_config(config):
    """Log current configuration"""
    logging.info("=== $tABS Configuration ===")
    for key, value in config.items():
        logging.info(f"{key}: {value}")
    logging.info("===========================")


def _log_thread_exception(args):
    if args.exc_type is SystemExit:
        return
    name = args.thread.name if args.thread else 'unknown'
    logging.getLogger('tabs_backend').error(
        'Unhandled exception in thread %s', name,
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def install_thread_excepthook():
    """Route uncaught thread exceptions to the log; the process keeps running."""
    threading.excepthook = _log_thread_exception
