import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_BASE_DIR = os.getcwd()


def _flag(name: str, default: str) -> bool:
    return str(os.environ.get(name, default)).lower() in {'1', 'true', 'yes'}


# Dynamic Configuration with Environment Variables and Defaults
CONFIG = {
    'HOST': os.environ.get('HOST', '0.0.0.0'),
    'PORT': int(os.environ.get('PORT', 8080)),
    'DEBUG': _flag('DEBUG', 'false'),
    'DATA_DIR': os.environ.get('DATA_DIR', os.path.join(_BASE_DIR, 'data')),
    'STATIC_DIR': os.environ.get('STATIC_DIR', os.path.join(_BASE_DIR, 'public')),
    # Provider
    'CHAIN': os.environ.get('CHAIN', 'abstract'),
    'DEXSCREENER_BASE_URL': os.environ.get('DEXSCREENER_BASE_URL', 'https://api.dexscreener.com').rstrip('/'),
    'API_TIMEOUT_CONNECT': float(os.environ.get('API_TIMEOUT_CONNECT', 5)),
    'API_TIMEOUT_READ': float(os.environ.get('API_TIMEOUT_READ', 10)),
    'TOKEN_DELAY_SECONDS': float(os.environ.get('TOKEN_DELAY_SECONDS', 0.25)),  # pacing between tokens in a scan
    # Snapshot shape
    'TOP_N': int(os.environ.get('TOP_N', 15)),
    'HISTORY_LIMIT': int(os.environ.get('HISTORY_LIMIT', 5)),
    'SPECIAL_TOKEN': os.environ.get('SPECIAL_TOKEN', '0x8c3d850313eb9621605cd6a1acb2830962426f67').lower(),
    'DEFAULT_BANNER_URL': os.environ.get('DEFAULT_BANNER_URL', 'https://dexscreener.com'),
    # Schedulers
    'SCAN_INTERVAL': int(os.environ.get('SCAN_INTERVAL', 15 * 60)),
    'DISCOVERY_INTERVAL': int(os.environ.get('DISCOVERY_INTERVAL', 5 * 60)),
    'ENABLE_SCHEDULER': _flag('ENABLE_SCHEDULER', 'true'),
    'WARM_SCAN_ON_BOOT': _flag('WARM_SCAN_ON_BOOT', 'true'),
    # Request-layer policy: run a scan when /api/snapshot/latest finds nothing yet
    'LAZY_SCAN_ON_EMPTY': _flag('LAZY_SCAN_ON_EMPTY', 'true'),
    'CORS_ALLOWED_ORIGINS': os.environ.get('CORS_ALLOWED_ORIGINS', '*'),
    'MAX_CONTENT_LENGTH': int(os.environ.get('MAX_CONTENT_LENGTH', 2 * 1024 * 1024)),
}
