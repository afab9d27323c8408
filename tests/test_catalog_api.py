# tests/test_catalog_api.py
from fastapi.testclient import TestClient
from app.main import app
from app.database import PRODUCTS, SUBCATEGORIES, CATEGORY_FILTERS

client = TestClient(app)

def reset():
    client.post("/reset")

def _category(name="Divan Beds"):
    return client.post("/categories/", json={"name": name}).json()

def _subcategory(category_id, name="Storage Divans"):
    return client.post("/subcategories/", json={"category": category_id, "name": name}).json()

def _filter_type(name="Bed Size"):
    return client.post("/filter-types/", json={"name": name}).json()

def test_categories_embed_their_subcategories():
    reset()
    cat = _category()
    assert cat["slug"] == "divan-beds"
    sub = _subcategory(cat["id"])
    _subcategory(_category("Mattresses")["id"], "Memory Foam")

    listed = client.get("/categories/").json()
    assert [c["name"] for c in listed] == ["Divan Beds", "Mattresses"]
    assert listed[0]["subcategories"] == [sub]

    # the subcategory list can be narrowed to one category
    only = client.get("/subcategories/", params={"category": cat["id"]}).json()
    assert [s["id"] for s in only] == [sub["id"]]

def test_subcategory_needs_existing_category():
    reset()
    r = client.post("/subcategories/", json={"category": 99, "name": "Orphan"})
    assert r.status_code == 400

def test_delete_category_cascades():
    reset()
    cat = _category()
    sub = _subcategory(cat["id"])
    ft = _filter_type()
    prod = client.post("/products/", json={"name": "Cambridge", "price": 599, "subcategory": sub["id"]}).json()
    client.post("/category-filters/", json={"filter_type": ft["id"], "subcategory": sub["id"]})
    client.post("/category-filters/", json={"filter_type": ft["id"], "category": cat["id"]})

    r = client.delete(f"/categories/{cat['id']}/")
    assert r.status_code == 204
    assert sub["id"] not in SUBCATEGORIES
    assert PRODUCTS[prod["id"]]["subcategory"] is None
    assert CATEGORY_FILTERS == {}

    # already gone
    assert client.delete(f"/categories/{cat['id']}/").status_code == 404

def test_product_patch_validates_subcategory():
    reset()
    sub = _subcategory(_category()["id"])
    pid = client.post("/products/", json={"name": "Oxford", "price": 699}).json()["id"]

    r = client.patch(f"/products/{pid}/", json={"subcategory": 42})
    assert r.status_code == 400

    r = client.patch(f"/products/{pid}/", json={"subcategory": sub["id"]})
    assert r.status_code == 200
    assert r.json()["subcategory"] == sub["id"]
    assert r.json()["price"] == 699

    # explicit null unlinks, other fields stay
    r = client.patch(f"/products/{pid}/", json={"subcategory": None})
    assert r.json()["subcategory"] is None
    assert r.json()["name"] == "Oxford"

def test_assignment_targets_category_xor_subcategory():
    reset()
    cat = _category()
    sub = _subcategory(cat["id"])
    ft = _filter_type()

    both = client.post("/category-filters/", json={"filter_type": ft["id"], "category": cat["id"], "subcategory": sub["id"]})
    assert both.status_code == 400
    neither = client.post("/category-filters/", json={"filter_type": ft["id"]})
    assert neither.status_code == 400

    ok = client.post("/category-filters/", json={"filter_type": ft["id"], "category": cat["id"]})
    assert ok.status_code == 201
    aid = ok.json()["id"]

    # a patch that would set both is refused and leaves the record alone
    r = client.patch(f"/category-filters/{aid}/", json={"subcategory": sub["id"]})
    assert r.status_code == 400
    assert CATEGORY_FILTERS[aid]["category"] == cat["id"]

    r = client.patch(f"/category-filters/{aid}/", json={"is_active": False, "display_order": 3})
    assert r.json()["is_active"] is False
    assert r.json()["display_order"] == 3

def test_filter_type_options_and_delete():
    reset()
    ft = client.post("/filter-types/", json={"name": "Colour", "display_type": "color_swatch"}).json()
    assert ft["slug"] == "colour"
    assert ft["is_expanded_by_default"] is True

    opt = client.post(f"/filter-types/{ft['id']}/options/", json={"name": "Slate Grey", "color_code": "#708090"}).json()
    assert opt["slug"] == "slate-grey"
    renamed = client.put(f"/filter-types/{ft['id']}/", json={"name": "Color", "display_type": "color_swatch"}).json()
    assert renamed["options"] == [opt]

    assert client.delete(f"/filter-types/{ft['id']}/options/{opt['id']}/").status_code == 204
    assert client.delete(f"/filter-types/{ft['id']}/options/{opt['id']}/").status_code == 404

    client.post("/category-filters/", json={"filter_type": ft["id"], "category": _category()["id"]})
    client.delete(f"/filter-types/{ft['id']}/")
    assert client.get("/category-filters/").json() == []

def test_upload_returns_url_that_serves_the_file():
    reset()
    r = client.post("/uploads/", files={"file": ("divan.png", b"\x89PNG fake", "image/png")})
    assert r.status_code == 201
    url = r.json()["url"]
    assert "/uploads/" in url and url.endswith("divan.png")

    got = client.get(url)
    assert got.status_code == 200
    assert got.content == b"\x89PNG fake"

    empty = client.post("/uploads/", files={"file": ("empty.png", b"", "image/png")})
    assert empty.status_code == 400
