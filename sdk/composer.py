"""
Category composer.

Holds everything the categories screen works with: one snapshot of the four
catalog collections (categories with their subcategories, products, filter
types, filter assignments), the expand/collapse set, and the single open
editor. Every user action is handled here and ends the same way: the outcome
is reported through ``notify`` and, after a successful write, the whole
snapshot is fetched again. Nothing is patched in place.

Actions never raise for API or validation failures; they report and return
False. Misuse of the editor (saving a form that is not open, opening a second
one) raises EditorStateError.
"""
import asyncio
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Set, Union

from pydantic import BaseModel, Field, ValidationError

from sdk.catalog import CATEGORIES, CATEGORY_FILTERS, FILTER_TYPES, PRODUCTS, CatalogClient
from sdk.errors import BatchUpdateError, CatalogError, EditorStateError, FormValidationError
from sdk.models import Category, CategoryFilter, FilterType, Product, SubCategory

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")

Mode = Literal["idle", "editing-category", "editing-subcategory", "assigning-filter"]


def slugify(text: str) -> str:
    return _WHITESPACE.sub("-", text.strip().lower())


# ---------------------------
# Snapshot and derived views
# ---------------------------
class CatalogSnapshot:
    """The four collections as last loaded, with id lookups built once per load."""

    def __init__(
        self,
        categories: List[Category],
        products: List[Product],
        filter_types: List[FilterType],
        category_filters: List[CategoryFilter],
    ):
        self.categories = categories
        self.products = products
        self.filter_types = filter_types
        self.category_filters = category_filters

        self._categories = {c.id: c for c in categories}
        self._subcategories = {s.id: s for c in categories for s in c.subcategories}
        self._filter_types = {f.id: f for f in filter_types}
        self._by_subcategory: Dict[int, List[Product]] = {}
        for p in products:
            if p.subcategory is not None:
                self._by_subcategory.setdefault(p.subcategory, []).append(p)

    @classmethod
    def from_payload(cls, categories: Any, products: Any, filter_types: Any, category_filters: Any) -> "CatalogSnapshot":
        return cls(
            [Category.model_validate(c) for c in categories],
            [Product.model_validate(p) for p in products],
            [FilterType.model_validate(f) for f in filter_types],
            [CategoryFilter.model_validate(cf) for cf in category_filters],
        )

    def category(self, category_id: int) -> Optional[Category]:
        return self._categories.get(category_id)

    def subcategory(self, subcategory_id: int) -> Optional[SubCategory]:
        return self._subcategories.get(subcategory_id)

    def filter_type(self, type_id: int) -> Optional[FilterType]:
        return self._filter_types.get(type_id)

    def subcategory_products(self, subcategory_id: int) -> List[Product]:
        return list(self._by_subcategory.get(subcategory_id, []))

    def total_products(self, category: Union[Category, int]) -> int:
        if isinstance(category, int):
            category = self._categories[category]
        return sum(len(self._by_subcategory.get(s.id, [])) for s in category.subcategories)

    def filters_for_category(self, category: Union[Category, int]) -> List[CategoryFilter]:
        if isinstance(category, int):
            category = self._categories[category]
        sub_ids = {s.id for s in category.subcategories}
        return [
            cf for cf in self.category_filters
            if cf.category == category.id or (cf.subcategory is not None and cf.subcategory in sub_ids)
        ]

    def filter_type_name(self, type_id: int) -> str:
        ft = self._filter_types.get(type_id)
        return ft.name if ft else f"Filter #{type_id}"

    def subcategory_name(self, subcategory_id: Optional[int]) -> Optional[str]:
        sub = self._subcategories.get(subcategory_id) if subcategory_id is not None else None
        return sub.name if sub else None

    def resolved_filters(self) -> List[Dict[str, Any]]:
        """Every assignment with the names of what it points at."""
        out = []
        for cf in self.category_filters:
            row = cf.model_dump()
            cat = self._categories.get(cf.category) if cf.category is not None else None
            row["category_name"] = cat.name if cat else None
            sub = self._subcategories.get(cf.subcategory) if cf.subcategory is not None else None
            if sub is not None:
                owner = self._categories.get(sub.category)
                row["subcategory_name"] = f"{sub.name} ({owner.name if owner else 'Unassigned'})"
            else:
                row["subcategory_name"] = None
            row["filter_type_name"] = self.filter_type_name(cf.filter_type)
            out.append(row)
        return out


# ---------------------------
# Editor state
# ---------------------------
class CategoryForm(BaseModel):
    category_id: Optional[int] = None
    name: str = ""


class SubCategoryForm(BaseModel):
    category_id: int
    subcategory_id: Optional[int] = None
    name: str = ""
    description: str = ""
    image: str = ""
    selected_products: List[int] = Field(default_factory=list)
    # products linked to the subcategory when the form was opened
    linked_products: List[int] = Field(default_factory=list)


class FilterAssignmentForm(BaseModel):
    category_id: int
    filter_type: Optional[int] = None
    subcategory: Optional[int] = None
    display_order: int = 0
    is_active: bool = True


class EditorState(BaseModel):
    mode: Mode = "idle"
    category_form: Optional[CategoryForm] = None
    subcategory_form: Optional[SubCategoryForm] = None
    filter_form: Optional[FilterAssignmentForm] = None
    uploading: bool = False
    saving: bool = False
    creating_type: bool = False


def _log_notice(message: str, ok: bool) -> None:
    if ok:
        logger.info(message)
    else:
        logger.warning(message)


def _refuse(question: str) -> bool:
    logger.warning("No confirmation handler, declining: %s", question)
    return False


class CategoryComposer:
    def __init__(
        self,
        client: CatalogClient,
        notify: Optional[Callable[[str, bool], None]] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        self.client = client
        self.notify = notify or _log_notice
        self.confirm = confirm or _refuse
        self.snapshot: Optional[CatalogSnapshot] = None
        self.expanded: Set[int] = set()
        self.editor = EditorState()

    # ---------------------------
    # Loading
    # ---------------------------
    def load(self) -> bool:
        try:
            raw = asyncio.run(self.client.get_many_async(CATEGORIES, PRODUCTS, FILTER_TYPES, CATEGORY_FILTERS))
            snapshot = CatalogSnapshot.from_payload(*raw)
        except (CatalogError, ValidationError) as e:
            logger.warning("Loading the catalog failed: %s", e)
            self.notify("Failed to load categories", False)
            return False
        self.snapshot = snapshot
        self.expanded = {c.id for c in snapshot.categories}
        logger.debug(
            "Loaded %d categories, %d products, %d filter types, %d assignments",
            len(snapshot.categories), len(snapshot.products),
            len(snapshot.filter_types), len(snapshot.category_filters),
        )
        return True

    def toggle(self, category_id: int) -> bool:
        if category_id in self.expanded:
            self.expanded.discard(category_id)
            return False
        self.expanded.add(category_id)
        return True

    def _require_snapshot(self) -> CatalogSnapshot:
        if self.snapshot is None:
            raise EditorStateError("catalog has not been loaded")
        return self.snapshot

    # ---------------------------
    # Editor transitions
    # ---------------------------
    def _open(self, mode: Mode, **forms) -> None:
        if self.editor.mode != "idle":
            raise EditorStateError(f"cannot open {mode}: {self.editor.mode} is still open")
        self.editor = EditorState(mode=mode, **forms)

    def _form(self, mode: Mode):
        if self.editor.mode != mode:
            raise EditorStateError(f"no {mode} form is open (current: {self.editor.mode})")
        if mode == "editing-category":
            return self.editor.category_form
        if mode == "editing-subcategory":
            return self.editor.subcategory_form
        return self.editor.filter_form

    def cancel(self) -> None:
        self.editor = EditorState()

    # ---------------------------
    # Categories
    # ---------------------------
    def open_category(self, category_id: Optional[int] = None) -> CategoryForm:
        form = CategoryForm()
        if category_id is not None:
            category = self._require_snapshot().category(category_id)
            if category is None:
                raise EditorStateError(f"unknown category {category_id}")
            form = CategoryForm(category_id=category.id, name=category.name)
        self._open("editing-category", category_form=form)
        return form

    def save_category(self) -> bool:
        form: CategoryForm = self._form("editing-category")
        name = form.name.strip()
        try:
            if not name:
                raise FormValidationError("Category name is required")
            if form.category_id is not None:
                current = self._require_snapshot().category(form.category_id)
                if current is None:
                    raise EditorStateError(f"category {form.category_id} is no longer in the catalog")
                payload = current.model_dump(exclude={"id", "subcategories"})
                payload["name"] = name
                self.client.update_category(form.category_id, payload)
            else:
                self.client.create_category({"name": name, "slug": slugify(name)})
        except FormValidationError as e:
            self.notify(str(e), False)
            return False
        except CatalogError as e:
            logger.warning("Saving category %r failed: %s", name, e)
            self.notify(f"Failed to save category: {e}", False)
            return False

        editing = form.category_id is not None
        self.notify("Category updated successfully" if editing else "Category created successfully", True)
        self.cancel()
        self.load()
        return True

    def delete_category(self, category_id: int) -> bool:
        return self._delete(
            "Are you sure you want to delete this category? This will also delete all subcategories.",
            self.client.delete_category, category_id, "Category",
        )

    # ---------------------------
    # Subcategories
    # ---------------------------
    def open_subcategory(self, category_id: int, subcategory_id: Optional[int] = None) -> SubCategoryForm:
        snapshot = self._require_snapshot()
        if snapshot.category(category_id) is None:
            raise EditorStateError(f"unknown category {category_id}")
        form = SubCategoryForm(category_id=category_id)
        if subcategory_id is not None:
            sub = snapshot.subcategory(subcategory_id)
            if sub is None:
                raise EditorStateError(f"unknown subcategory {subcategory_id}")
            if sub.category != category_id:
                raise EditorStateError(f"subcategory {subcategory_id} does not belong to category {category_id}")
            linked = [p.id for p in snapshot.subcategory_products(sub.id)]
            form = SubCategoryForm(
                category_id=category_id,
                subcategory_id=sub.id,
                name=sub.name,
                description=sub.description,
                image=sub.image,
                selected_products=list(linked),
                linked_products=linked,
            )
        self._open("editing-subcategory", subcategory_form=form)
        return form

    def toggle_product(self, product_id: int) -> bool:
        form: SubCategoryForm = self._form("editing-subcategory")
        if product_id in form.selected_products:
            form.selected_products.remove(product_id)
            return False
        form.selected_products.append(product_id)
        return True

    def upload_image(self, path: str) -> bool:
        form: SubCategoryForm = self._form("editing-subcategory")
        if self.editor.uploading:
            return False
        self.editor.uploading = True
        try:
            url = self.client.upload_image(path)
        except (CatalogError, OSError) as e:
            logger.warning("Uploading %s failed: %s", path, e)
            self.notify(f"Failed to upload image: {e}", False)
            return False
        finally:
            self.editor.uploading = False
        form.image = url
        self.notify("Image uploaded", True)
        return True

    def clear_image(self) -> None:
        form: SubCategoryForm = self._form("editing-subcategory")
        form.image = ""

    @staticmethod
    def _membership_changes(form: SubCategoryForm, target: int) -> Dict[int, Dict[str, Any]]:
        changes: Dict[int, Dict[str, Any]] = {pid: {"subcategory": target} for pid in form.selected_products}
        for pid in form.linked_products:
            if pid not in changes:
                changes[pid] = {"subcategory": None}
        return changes

    def save_subcategory(self) -> bool:
        form: SubCategoryForm = self._form("editing-subcategory")
        name = form.name.strip()
        if not name:
            self.notify("Subcategory name is required", False)
            return False
        if self.editor.saving:
            return False

        creating = form.subcategory_id is None
        payload = {
            "category": form.category_id,
            "name": name,
            "description": form.description,
            "image": form.image,
        }
        self.editor.saving = True
        try:
            if creating:
                payload["slug"] = slugify(name)
                created = self.client.create_subcategory(payload)
                # a retry after a failed batch must edit this record, not create another
                form.subcategory_id = created["id"]
            else:
                current = self.snapshot.subcategory(form.subcategory_id) if self.snapshot else None
                payload["slug"] = current.slug if current and current.slug else slugify(name)
                self.client.update_subcategory(form.subcategory_id, payload)

            changes = self._membership_changes(form, form.subcategory_id)
            if changes:
                failures = asyncio.run(self.client.update_products_async(changes))
                if failures:
                    raise BatchUpdateError(failures)
        except BatchUpdateError as e:
            for pid, err in e.failures.items():
                logger.warning("Relinking product %s failed: %s", pid, err)
            failed = ", ".join(str(pid) for pid in sorted(e.failures))
            self.notify(f"Subcategory saved but updating products {failed} failed", False)
            return False
        except CatalogError as e:
            logger.warning("Saving subcategory %r failed: %s", name, e)
            self.notify(f"Failed to save subcategory: {e}", False)
            return False
        finally:
            self.editor.saving = False

        self.notify("Subcategory created successfully" if creating else "Subcategory updated successfully", True)
        self.cancel()
        self.load()
        return True

    def delete_subcategory(self, subcategory_id: int) -> bool:
        return self._delete(
            "Are you sure you want to delete this subcategory?",
            self.client.delete_subcategory, subcategory_id, "Subcategory",
        )

    # ---------------------------
    # Filter assignments
    # ---------------------------
    def open_filter_assignment(self, category_id: int) -> FilterAssignmentForm:
        if self._require_snapshot().category(category_id) is None:
            raise EditorStateError(f"unknown category {category_id}")
        form = FilterAssignmentForm(category_id=category_id)
        self._open("assigning-filter", filter_form=form)
        return form

    def quick_create_filter_type(self, name: str, slug: Optional[str] = None) -> bool:
        form: FilterAssignmentForm = self._form("assigning-filter")
        name = name.strip()
        if not name:
            self.notify("Filter type name is required", False)
            return False
        if self.editor.creating_type:
            return False
        self.editor.creating_type = True
        try:
            created = self.client.create_filter_type({
                "name": name,
                "slug": (slug or "").strip() or slugify(name),
                "display_type": "checkbox",
                "is_expanded_by_default": True,
            })
        except CatalogError as e:
            logger.warning("Creating filter type %r failed: %s", name, e)
            self.notify(f"Failed to create filter type: {e}", False)
            return False
        finally:
            self.editor.creating_type = False

        form.filter_type = created["id"]
        self.notify(f"Filter type '{name}' created", True)
        self.load()
        return True

    def save_filter_assignment(self) -> bool:
        form: FilterAssignmentForm = self._form("assigning-filter")
        try:
            if form.filter_type is None:
                raise FormValidationError("Select a filter type to assign")
            if form.subcategory is not None:
                category = self._require_snapshot().category(form.category_id)
                if category is None or form.subcategory not in {s.id for s in category.subcategories}:
                    raise FormValidationError("Pick a subcategory of this category")
        except FormValidationError as e:
            self.notify(str(e), False)
            return False
        if self.editor.saving:
            return False

        payload = {
            "filter_type": form.filter_type,
            "category": None if form.subcategory is not None else form.category_id,
            "subcategory": form.subcategory,
            "display_order": form.display_order,
            "is_active": form.is_active,
        }
        self.editor.saving = True
        try:
            self.client.create_category_filter(payload)
        except CatalogError as e:
            logger.warning("Assigning filter type %s failed: %s", form.filter_type, e)
            self.notify(f"Failed to assign filter: {e}", False)
            return False
        finally:
            self.editor.saving = False

        self.notify("Filter assigned successfully", True)
        self.cancel()
        self.load()
        return True

    def _update_assignment(self, assignment_id: int, changes: Dict[str, Any]) -> bool:
        try:
            self.client.update_category_filter(assignment_id, changes)
        except CatalogError as e:
            logger.warning("Updating assignment %s failed: %s", assignment_id, e)
            self.notify(f"Update failed: {e}", False)
            return False
        self.load()
        return True

    def set_filter_active(self, assignment_id: int, active: bool) -> bool:
        return self._update_assignment(assignment_id, {"is_active": active})

    def set_filter_order(self, assignment_id: int, display_order: int) -> bool:
        return self._update_assignment(assignment_id, {"display_order": display_order})

    def delete_category_filter(self, assignment_id: int) -> bool:
        return self._delete("Remove this filter assignment?", self.client.delete_category_filter, assignment_id, "Assignment")

    # ---------------------------
    # Filter types and options
    # ---------------------------
    def save_filter_type(
        self,
        type_id: int,
        name: str,
        slug: Optional[str] = None,
        display_type: Optional[str] = None,
        is_expanded_by_default: Optional[bool] = None,
    ) -> bool:
        """PUT the whole filter type with the changed fields; options are left alone."""
        name = name.strip()
        try:
            if not name:
                raise FormValidationError("Filter type name is required")
            current = self._require_snapshot().filter_type(type_id)
            if current is None:
                raise EditorStateError(f"filter type {type_id} is no longer in the catalog")
            payload = current.model_dump(exclude={"id", "options"})
            payload["name"] = name
            payload["slug"] = (slug or "").strip() or current.slug or slugify(name)
            if display_type is not None:
                payload["display_type"] = display_type
            if is_expanded_by_default is not None:
                payload["is_expanded_by_default"] = is_expanded_by_default
            self.client.update_filter_type(type_id, payload)
        except FormValidationError as e:
            self.notify(str(e), False)
            return False
        except CatalogError as e:
            logger.warning("Saving filter type %s failed: %s", type_id, e)
            self.notify(f"Failed to save filter type: {e}", False)
            return False

        self.notify("Filter type updated successfully", True)
        self.load()
        return True

    def delete_filter_type(self, type_id: int) -> bool:
        return self._delete(
            "Delete this filter type? Its options and assignments go with it.",
            self.client.delete_filter_type, type_id, "Filter type",
        )

    def add_filter_option(self, type_id: int, name: str, slug: Optional[str] = None, color_code: Optional[str] = None) -> bool:
        name = name.strip()
        if not name:
            self.notify("Option name is required", False)
            return False
        payload = {
            "name": name,
            "slug": (slug or "").strip() or slugify(name),
            "color_code": (color_code or "").strip() or None,
        }
        try:
            self.client.add_filter_option(type_id, payload)
        except CatalogError as e:
            logger.warning("Adding option %r to filter type %s failed: %s", name, type_id, e)
            self.notify(f"Failed to add option: {e}", False)
            return False
        self.notify(f"Option '{name}' added", True)
        self.load()
        return True

    def delete_filter_option(self, type_id: int, option_id: int) -> bool:
        return self._delete(
            "Delete this option?",
            lambda oid: self.client.delete_filter_option(type_id, oid), option_id, "Option",
        )

    # ---------------------------
    # Deletes
    # ---------------------------
    def _delete(self, question: str, fn: Callable[[int], None], entity_id: int, noun: str) -> bool:
        if not self.confirm(question):
            return False
        try:
            fn(entity_id)
        except CatalogError as e:
            logger.warning("Deleting %s %s failed: %s", noun.lower(), entity_id, e)
            self.notify(f"Failed to delete {noun.lower()}: {e}", False)
            return False
        self.notify(f"{noun} deleted successfully", True)
        self.load()
        return True

    # ---------------------------
    # Convenience for views
    # ---------------------------
    def product_names(self, product_ids: Iterable[int]) -> str:
        wanted = set(product_ids)
        return ", ".join(p.name for p in self._require_snapshot().products if p.id in wanted)
