"""Pair discovery fused with 24h volume aggregation.

Every resolve grows the token's known-pair set in the registry, so pools
created on-chain after the token was added get picked up by later scans.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from tabs_backend.addresses import normalize_pair_id
from tabs_backend.dexscreener import base_token_address
from tabs_backend.errors import NotFound, Upstream
from tabs_backend.models import TokenRegistry
from tabs_backend.rows import as_number

logger = logging.getLogger(__name__)


def pair_volume_24h(pair: Dict[str, Any]) -> float:
    vol = pair.get('volume')
    value = as_number(vol.get('h24')) if isinstance(vol, dict) else None
    if value is None:
        value = as_number(pair.get('volume24h'))
    if value is None or value < 0:
        return 0.0
    return value


def matching_pairs(pairs: Iterable[Dict[str, Any]], token_address: str) -> List[Dict[str, Any]]:
    """Keep only pairs whose base token is ``token_address``."""
    target = token_address.lower()
    return [p for p in pairs if base_token_address(p) == target]


def _discover(client, token: str) -> List[Dict[str, Any]]:
    try:
        found = matching_pairs(client.fetch_token_pairs(token), token)
    except (Upstream, NotFound) as e:
        logger.debug(f"token-pairs lookup failed for {token}: {e}")
        found = []
    if found:
        return found
    try:
        return matching_pairs(client.search_pairs(token), token)
    except (Upstream, NotFound) as e:
        logger.warning(f"pair search failed for {token}: {e}")
        return []


def discover_pairs(client, registry_store, registry: TokenRegistry, token_address: str) -> List[Dict[str, Any]]:
    """Find the token's pairs and merge their ids into the registry."""
    token = token_address.lower()
    pairs = _discover(client, token)
    if pairs:
        pair_ids = [pid for pid in (normalize_pair_id(p.get('pairAddress')) for p in pairs) if pid]
        registry_store.merge_pairs(registry, token, pair_ids)
    return pairs


def resolve_volume_24h(client, registry_store, registry: TokenRegistry, token_address: str,
                       overview: Optional[Dict[str, Any]] = None) -> float:
    """Sum 24h volume over the token's pairs, or fall back to the overview figure.

    Never raises for provider failures; a failed step counts as zero volume.
    """
    token = token_address.lower()
    pairs = discover_pairs(client, registry_store, registry, token)
    if pairs:
        return sum(pair_volume_24h(p) for p in pairs)
    if overview is None:
        try:
            overview = client.fetch_token_overview(token)
        except (Upstream, NotFound) as e:
            logger.warning(f"overview fallback failed for {token}: {e}")
            return 0.0
    return pair_volume_24h(overview)
