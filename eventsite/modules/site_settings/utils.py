from typing import Any, Dict

from eventsite.config.site_config import CATEGORY_PREFIXES, DEFAULT_CATEGORY


def category_from_key(key: str) -> str:
    for prefix, category in CATEGORY_PREFIXES:
        if key.startswith(prefix):
            return category
    return DEFAULT_CATEGORY


def merge_with_defaults(data: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay data on defaults; empty values only win for keys without a default"""
    merged = dict(defaults)
    for key, value in data.items():
        if value not in ("", None):
            merged[key] = value
        elif key not in defaults:
            merged[key] = value
    return merged


def flag_value(value: Any) -> bool:
    return str(value) == "true"
