import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, UploadFile

from .core import (
    CategoryIn, SubCategoryIn, ProductIn, ProductPatch, FilterTypeIn,
    FilterOptionIn, CategoryFilterIn, CategoryFilterPatch,
    _make_category_dict, _make_subcategory_dict, _make_product_dict,
    _make_filter_type_dict, _make_filter_option_dict,
)
from .database import (
    CATEGORIES, SUBCATEGORIES, PRODUCTS, FILTER_TYPES,
    CATEGORY_FILTERS, UPLOADS, next_id,
)

logger = logging.getLogger(__name__)

# This file contains the core logic for all API endpoints.


def _get_or_404(store: Dict[int, Dict[str, Any]], key: int, what: str) -> Dict[str, Any]:
    item = store.get(key)
    if not item:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return item


def _with_subcategories(category: Dict[str, Any]) -> Dict[str, Any]:
    subs = [s for s in SUBCATEGORIES.values() if s["category"] == category["id"]]
    return {**category, "subcategories": subs}


def _drop_subcategories(sub_ids: List[int]) -> None:
    # products fall back to "no subcategory", assignments go away with their target
    for sid in sub_ids:
        SUBCATEGORIES.pop(sid, None)
    for p in PRODUCTS.values():
        if p["subcategory"] in sub_ids:
            p["subcategory"] = None
    for cf_id in [k for k, cf in CATEGORY_FILTERS.items() if cf["subcategory"] in sub_ids]:
        del CATEGORY_FILTERS[cf_id]


# Categories
async def list_categories_logic():
    return [_with_subcategories(c) for c in CATEGORIES.values()]


async def create_category_logic(payload: CategoryIn):
    cid = next_id("category")
    CATEGORIES[cid] = _make_category_dict(cid, payload)
    logger.debug("category %s created", cid)
    return _with_subcategories(CATEGORIES[cid])


async def get_category_logic(category_id: int):
    return _with_subcategories(_get_or_404(CATEGORIES, category_id, "category"))


async def update_category_logic(category_id: int, payload: CategoryIn):
    _get_or_404(CATEGORIES, category_id, "category")
    CATEGORIES[category_id] = _make_category_dict(category_id, payload)
    logger.debug("category %s updated", category_id)
    return _with_subcategories(CATEGORIES[category_id])


async def delete_category_logic(category_id: int):
    _get_or_404(CATEGORIES, category_id, "category")
    sub_ids = [s["id"] for s in SUBCATEGORIES.values() if s["category"] == category_id]
    _drop_subcategories(sub_ids)
    for cf_id in [k for k, cf in CATEGORY_FILTERS.items() if cf["category"] == category_id]:
        del CATEGORY_FILTERS[cf_id]
    del CATEGORIES[category_id]
    logger.debug("category %s deleted with %d subcategories", category_id, len(sub_ids))


# Subcategories
async def list_subcategories_logic(category: Optional[int] = None):
    return [s for s in SUBCATEGORIES.values() if category is None or s["category"] == category]


def _check_owner(payload: SubCategoryIn) -> None:
    if payload.category not in CATEGORIES:
        raise HTTPException(status_code=400, detail=f"category {payload.category} does not exist")


async def create_subcategory_logic(payload: SubCategoryIn):
    _check_owner(payload)
    sid = next_id("subcategory")
    SUBCATEGORIES[sid] = _make_subcategory_dict(sid, payload)
    logger.debug("subcategory %s created under category %s", sid, payload.category)
    return SUBCATEGORIES[sid]


async def update_subcategory_logic(subcategory_id: int, payload: SubCategoryIn):
    _get_or_404(SUBCATEGORIES, subcategory_id, "subcategory")
    _check_owner(payload)
    SUBCATEGORIES[subcategory_id] = _make_subcategory_dict(subcategory_id, payload)
    return SUBCATEGORIES[subcategory_id]


async def delete_subcategory_logic(subcategory_id: int):
    _get_or_404(SUBCATEGORIES, subcategory_id, "subcategory")
    _drop_subcategories([subcategory_id])
    logger.debug("subcategory %s deleted", subcategory_id)


# Products
def _check_subcategory_link(subcategory: Optional[int]) -> None:
    if subcategory is not None and subcategory not in SUBCATEGORIES:
        raise HTTPException(status_code=400, detail=f"subcategory {subcategory} does not exist")


async def list_products_logic():
    return list(PRODUCTS.values())


async def create_product_logic(payload: ProductIn):
    _check_subcategory_link(payload.subcategory)
    pid = next_id("product")
    PRODUCTS[pid] = _make_product_dict(pid, payload)
    return PRODUCTS[pid]


async def get_product_logic(product_id: int):
    return _get_or_404(PRODUCTS, product_id, "product")


async def patch_product_logic(product_id: int, payload: ProductPatch):
    prod = _get_or_404(PRODUCTS, product_id, "product")
    changes = payload.model_dump(exclude_unset=True)
    if "subcategory" in changes:
        _check_subcategory_link(changes["subcategory"])
    prod.update(changes)
    logger.debug("product %s patched: %s", product_id, changes)
    return prod


# Filter types
async def list_filter_types_logic():
    return list(FILTER_TYPES.values())


async def create_filter_type_logic(payload: FilterTypeIn):
    tid = next_id("filter_type")
    FILTER_TYPES[tid] = _make_filter_type_dict(tid, payload)
    return FILTER_TYPES[tid]


async def update_filter_type_logic(type_id: int, payload: FilterTypeIn):
    current = _get_or_404(FILTER_TYPES, type_id, "filter type")
    updated = _make_filter_type_dict(type_id, payload)
    updated["options"] = current["options"]
    FILTER_TYPES[type_id] = updated
    return updated


async def delete_filter_type_logic(type_id: int):
    _get_or_404(FILTER_TYPES, type_id, "filter type")
    for cf_id in [k for k, cf in CATEGORY_FILTERS.items() if cf["filter_type"] == type_id]:
        del CATEGORY_FILTERS[cf_id]
    del FILTER_TYPES[type_id]


async def add_filter_option_logic(type_id: int, payload: FilterOptionIn):
    ftype = _get_or_404(FILTER_TYPES, type_id, "filter type")
    option = _make_filter_option_dict(next_id("filter_option"), payload)
    ftype["options"].append(option)
    return option


async def delete_filter_option_logic(type_id: int, option_id: int):
    ftype = _get_or_404(FILTER_TYPES, type_id, "filter type")
    remaining = [o for o in ftype["options"] if o["id"] != option_id]
    if len(remaining) == len(ftype["options"]):
        raise HTTPException(status_code=404, detail="filter option not found")
    ftype["options"] = remaining


# Category filter assignments
def _validate_assignment(cf: Dict[str, Any]) -> None:
    if cf["filter_type"] not in FILTER_TYPES:
        raise HTTPException(status_code=400, detail=f"filter type {cf['filter_type']} does not exist")
    has_category = cf["category"] is not None
    has_subcategory = cf["subcategory"] is not None
    if has_category == has_subcategory:
        raise HTTPException(status_code=400, detail="exactly one of category or subcategory must be set")
    if has_category and cf["category"] not in CATEGORIES:
        raise HTTPException(status_code=400, detail=f"category {cf['category']} does not exist")
    if has_subcategory and cf["subcategory"] not in SUBCATEGORIES:
        raise HTTPException(status_code=400, detail=f"subcategory {cf['subcategory']} does not exist")


async def list_category_filters_logic():
    return list(CATEGORY_FILTERS.values())


async def create_category_filter_logic(payload: CategoryFilterIn):
    cf = payload.model_dump()
    _validate_assignment(cf)
    cf["id"] = next_id("category_filter")
    CATEGORY_FILTERS[cf["id"]] = cf
    logger.debug("filter type %s assigned (assignment %s)", cf["filter_type"], cf["id"])
    return cf


async def patch_category_filter_logic(assignment_id: int, payload: CategoryFilterPatch):
    current = _get_or_404(CATEGORY_FILTERS, assignment_id, "category filter")
    merged = {**current, **payload.model_dump(exclude_unset=True)}
    _validate_assignment(merged)
    CATEGORY_FILTERS[assignment_id] = merged
    return merged


async def delete_category_filter_logic(assignment_id: int):
    _get_or_404(CATEGORY_FILTERS, assignment_id, "category filter")
    del CATEGORY_FILTERS[assignment_id]


# Uploads
async def upload_logic(file: UploadFile) -> str:
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="empty upload")
    name = f"{uuid.uuid4().hex}-{file.filename or 'upload'}"
    UPLOADS[name] = (data, file.content_type or "application/octet-stream")
    logger.debug("stored upload %s (%d bytes)", name, len(data))
    return name
