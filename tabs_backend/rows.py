import math
from typing import Any, Dict, Optional

from tabs_backend.config import CONFIG
from tabs_backend.models import PriceChange, TokenRow


def as_number(value: Any) -> Optional[float]:
    """Finite float from a provider field, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _positive(value: Any) -> Optional[float]:
    num = as_number(value)
    return num if num is not None and num > 0 else None


def _text(record: Dict[str, Any], key: str) -> str:
    for block in ('baseToken', 'info'):
        section = record.get(block)
        if isinstance(section, dict) and section.get(key):
            return str(section[key])
    return ''


def token_url(address: str, chain: Optional[str] = None) -> str:
    return f"https://dexscreener.com/{chain or CONFIG['CHAIN']}/{address}"


def _url(record: Dict[str, Any], address: str) -> str:
    url = record.get('url')
    return url if isinstance(url, str) and url else token_url(address)


def build_row(overview: Dict[str, Any], token_address: str, volume24h: float) -> TokenRow:
    """Map a provider overview record plus aggregated volume to a TokenRow.

    Unknown numbers stay None; only volume defaults to 0. Market cap and FDV
    count as unknown when not positive.
    """
    changes = overview.get('priceChange') if isinstance(overview.get('priceChange'), dict) else {}
    market_cap = _positive(overview.get('marketCap'))
    fdv = _positive(overview.get('fdv'))
    address = token_address.lower()
    return TokenRow(
        baseAddress=address,
        name=_text(overview, 'name') or '—',
        symbol=_text(overview, 'symbol'),
        priceChange=PriceChange(
            m5=as_number(changes.get('m5')),
            h1=as_number(changes.get('h1')),
            h6=as_number(changes.get('h6')),
            h24=as_number(changes.get('h24')),
        ),
        marketCap=market_cap,
        fdv=fdv,
        cap=market_cap if market_cap is not None else fdv,
        volume24h=max(0.0, as_number(volume24h) or 0.0),
        url=_url(overview, address),
    )
