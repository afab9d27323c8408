from typing import Any, Dict, Tuple

# This file holds all the in-memory data stores of the catalog service.

CATEGORIES: Dict[int, Dict[str, Any]] = {}
SUBCATEGORIES: Dict[int, Dict[str, Any]] = {}
PRODUCTS: Dict[int, Dict[str, Any]] = {}
FILTER_TYPES: Dict[int, Dict[str, Any]] = {}
CATEGORY_FILTERS: Dict[int, Dict[str, Any]] = {}
# name -> (content, content type)
UPLOADS: Dict[str, Tuple[bytes, str]] = {}

_COUNTERS: Dict[str, int] = {}


def next_id(kind: str) -> int:
    _COUNTERS[kind] = _COUNTERS.get(kind, 0) + 1
    return _COUNTERS[kind]


def reset_all() -> None:
    for store in (CATEGORIES, SUBCATEGORIES, PRODUCTS, FILTER_TYPES, CATEGORY_FILTERS, UPLOADS):
        store.clear()
    _COUNTERS.clear()
