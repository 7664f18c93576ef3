import re

from tabs_backend.errors import InvalidAddress

ADDRESS_RE = re.compile(r'^0x[a-fA-F0-9]{40}$')
# Provider pair ids sometimes carry a ":<suffix>" qualifier
PAIR_ID_RE = re.compile(r'^(0x[a-f0-9]{40})(:\w+)?$')


def is_address(value) -> bool:
    return bool(ADDRESS_RE.match(str(value or '').strip()))


def normalize_address(value) -> str:
    """Return the lowercased address or raise InvalidAddress."""
    raw = str(value or '').strip()
    if not ADDRESS_RE.match(raw):
        raise InvalidAddress(raw)
    return raw.lower()


def normalize_pair_id(value):
    """Lowercase a provider pair id and strip any qualifier; None when invalid."""
    m = PAIR_ID_RE.match(str(value or '').strip().lower())
    return m.group(1) if m else None
