# sdk/models.py
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DisplayType = Literal["checkbox", "color_swatch", "radio", "dropdown"]


class _Record(BaseModel):
    # the store may send more fields than the admin cares about
    model_config = ConfigDict(extra="ignore")


class SubCategory(_Record):
    id: int
    category: int
    name: str
    slug: str = ""
    description: str = ""
    image: str = ""


class Category(_Record):
    id: int
    name: str
    slug: str = ""
    description: str = ""
    image: str = ""
    subcategories: List[SubCategory] = Field(default_factory=list)


class Product(_Record):
    id: int
    name: str
    slug: str = ""
    price: float = 0
    in_stock: bool = True
    subcategory: Optional[int] = None


class FilterOption(_Record):
    id: int
    name: str
    slug: str = ""
    color_code: Optional[str] = None
    display_order: int = 0
    is_active: bool = True


class FilterType(_Record):
    id: int
    name: str
    slug: str = ""
    display_type: DisplayType = "checkbox"
    display_order: int = 0
    is_active: bool = True
    is_expanded_by_default: bool = True
    options: List[FilterOption] = Field(default_factory=list)


class CategoryFilter(_Record):
    id: int
    filter_type: int
    category: Optional[int] = None
    subcategory: Optional[int] = None
    display_order: int = 0
    is_active: bool = True
