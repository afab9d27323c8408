import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

DisplayType = Literal["checkbox", "color_swatch", "radio", "dropdown"]


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: str = ""
    image: str = ""


class SubCategoryIn(BaseModel):
    category: int
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: str = ""
    image: str = ""


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    price: float = Field(0, ge=0)
    in_stock: bool = True
    subcategory: Optional[int] = None


class ProductPatch(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    in_stock: Optional[bool] = None
    subcategory: Optional[int] = None


class FilterTypeIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    display_type: DisplayType = "checkbox"
    display_order: int = 0
    is_active: bool = True
    is_expanded_by_default: bool = True


class FilterOptionIn(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    color_code: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class CategoryFilterIn(BaseModel):
    filter_type: int
    category: Optional[int] = None
    subcategory: Optional[int] = None
    display_order: int = 0
    is_active: bool = True


class CategoryFilterPatch(BaseModel):
    filter_type: Optional[int] = None
    category: Optional[int] = None
    subcategory: Optional[int] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


def _slug(name: str, given: Optional[str] = None) -> str:
    if given and given.strip():
        return given.strip()
    return re.sub(r"\s+", "-", name.strip().lower())


def _make_category_dict(category_id: int, c: CategoryIn) -> Dict[str, Any]:
    return {
        "id": category_id,
        "name": c.name,
        "slug": _slug(c.name, c.slug),
        "description": c.description,
        "image": c.image,
    }


def _make_subcategory_dict(subcategory_id: int, s: SubCategoryIn) -> Dict[str, Any]:
    return {
        "id": subcategory_id,
        "category": s.category,
        "name": s.name,
        "slug": _slug(s.name, s.slug),
        "description": s.description,
        "image": s.image,
    }


def _make_product_dict(product_id: int, p: ProductIn) -> Dict[str, Any]:
    return {
        "id": product_id,
        "name": p.name,
        "slug": _slug(p.name, p.slug),
        "price": p.price,
        "in_stock": p.in_stock,
        "subcategory": p.subcategory,
    }


def _make_filter_type_dict(type_id: int, f: FilterTypeIn) -> Dict[str, Any]:
    return {
        "id": type_id,
        "name": f.name,
        "slug": _slug(f.name, f.slug),
        "display_type": f.display_type,
        "display_order": f.display_order,
        "is_active": f.is_active,
        "is_expanded_by_default": f.is_expanded_by_default,
        "options": [],
    }


def _make_filter_option_dict(option_id: int, o: FilterOptionIn) -> Dict[str, Any]:
    return {
        "id": option_id,
        "name": o.name,
        "slug": _slug(o.name, o.slug),
        "color_code": o.color_code or None,
        "display_order": o.display_order,
        "is_active": o.is_active,
    }
