"""Shared JSON Schemas for API contract validation."""

_NULLABLE_NUMBER = {"type": ["number", "null"]}

TOKEN_ROW_SCHEMA = {
    "type": "object",
    "required": ["baseAddress", "name", "symbol", "priceChange", "marketCap", "fdv", "volume24h", "url"],
    "properties": {
        "baseAddress": {"type": "string", "pattern": "^0x[a-f0-9]{40}$"},
        "name": {"type": "string"},
        "symbol": {"type": "string"},
        "priceChange": {
            "type": "object",
            "required": ["m5", "h1", "h6", "h24"],
            "properties": {k: _NULLABLE_NUMBER for k in ("m5", "h1", "h6", "h24")},
        },
        "marketCap": _NULLABLE_NUMBER,
        "fdv": _NULLABLE_NUMBER,
        "cap": _NULLABLE_NUMBER,
        "volume24h": {"type": "number", "minimum": 0},
        "url": {"type": ["string", "null"]},
    },
}

BANNER_SCHEMA = {
    "type": "object",
    "required": ["holders", "cap", "fdv", "marketCap", "vol24", "chg24", "url"],
    "properties": {
        "holders": {"type": "null"},
        "cap": {"type": "number"},
        "fdv": {"type": "number"},
        "marketCap": {"type": "number"},
        "vol24": {"type": "number", "minimum": 0},
        "chg24": {"type": "number"},
        "url": {"type": "string"},
    },
}

SNAPSHOT_SCHEMA = {
    "type": "object",
    "required": ["ts", "chain", "banner", "bannerSpecial", "topGainers", "topVol", "tokensTracked"],
    "properties": {
        "ts": {"type": "integer"},
        "chain": {"type": "string"},
        "banner": BANNER_SCHEMA,
        "bannerSpecial": {"anyOf": [{"type": "null"}, BANNER_SCHEMA]},
        "topGainers": {"type": "array", "maxItems": 15, "items": TOKEN_ROW_SCHEMA},
        "topVol": {"type": "array", "maxItems": 15, "items": TOKEN_ROW_SCHEMA},
        "tokensTracked": {"type": "integer", "minimum": 0},
    },
}
