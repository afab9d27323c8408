# app/main.py
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .core import (
    CategoryIn, SubCategoryIn, ProductIn, ProductPatch, FilterTypeIn,
    FilterOptionIn, CategoryFilterIn, CategoryFilterPatch,
)
from .database import UPLOADS, reset_all
from . import logic

app = FastAPI(title="catalog-admin store (in-memory)")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # or restrict to the admin front-end origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------
# Categories
# ---------------------------
@app.get("/categories/")
async def list_categories():
    return await logic.list_categories_logic()

@app.post("/categories/", status_code=201)
async def create_category(payload: CategoryIn):
    return await logic.create_category_logic(payload)

@app.get("/categories/{category_id}/")
async def get_category(category_id: int):
    return await logic.get_category_logic(category_id)

@app.put("/categories/{category_id}/")
async def update_category(category_id: int, payload: CategoryIn):
    return await logic.update_category_logic(category_id, payload)

@app.delete("/categories/{category_id}/", status_code=204)
async def delete_category(category_id: int):
    await logic.delete_category_logic(category_id)

# ---------------------------
# Subcategories
# ---------------------------
@app.get("/subcategories/")
async def list_subcategories(category: Optional[int] = None):
    return await logic.list_subcategories_logic(category)

@app.post("/subcategories/", status_code=201)
async def create_subcategory(payload: SubCategoryIn):
    return await logic.create_subcategory_logic(payload)

@app.put("/subcategories/{subcategory_id}/")
async def update_subcategory(subcategory_id: int, payload: SubCategoryIn):
    return await logic.update_subcategory_logic(subcategory_id, payload)

@app.delete("/subcategories/{subcategory_id}/", status_code=204)
async def delete_subcategory(subcategory_id: int):
    await logic.delete_subcategory_logic(subcategory_id)

# ---------------------------
# Products
# ---------------------------
@app.get("/products/")
async def list_products():
    return await logic.list_products_logic()

@app.post("/products/", status_code=201)
async def create_product(payload: ProductIn):
    return await logic.create_product_logic(payload)

@app.get("/products/{product_id}/")
async def get_product(product_id: int):
    return await logic.get_product_logic(product_id)

@app.patch("/products/{product_id}/")
async def patch_product(product_id: int, payload: ProductPatch):
    return await logic.patch_product_logic(product_id, payload)

# ---------------------------
# Filter types and options
# ---------------------------
@app.get("/filter-types/")
async def list_filter_types():
    return await logic.list_filter_types_logic()

@app.post("/filter-types/", status_code=201)
async def create_filter_type(payload: FilterTypeIn):
    return await logic.create_filter_type_logic(payload)

@app.put("/filter-types/{type_id}/")
async def update_filter_type(type_id: int, payload: FilterTypeIn):
    return await logic.update_filter_type_logic(type_id, payload)

@app.delete("/filter-types/{type_id}/", status_code=204)
async def delete_filter_type(type_id: int):
    await logic.delete_filter_type_logic(type_id)

@app.post("/filter-types/{type_id}/options/", status_code=201)
async def add_filter_option(type_id: int, payload: FilterOptionIn):
    return await logic.add_filter_option_logic(type_id, payload)

@app.delete("/filter-types/{type_id}/options/{option_id}/", status_code=204)
async def delete_filter_option(type_id: int, option_id: int):
    await logic.delete_filter_option_logic(type_id, option_id)

# ---------------------------
# Category filter assignments
# ---------------------------
@app.get("/category-filters/")
async def list_category_filters():
    return await logic.list_category_filters_logic()

@app.post("/category-filters/", status_code=201)
async def create_category_filter(payload: CategoryFilterIn):
    return await logic.create_category_filter_logic(payload)

@app.patch("/category-filters/{assignment_id}/")
async def patch_category_filter(assignment_id: int, payload: CategoryFilterPatch):
    return await logic.patch_category_filter_logic(assignment_id, payload)

@app.delete("/category-filters/{assignment_id}/", status_code=204)
async def delete_category_filter(assignment_id: int):
    await logic.delete_category_filter_logic(assignment_id)

# ---------------------------
# Uploads
# ---------------------------
@app.post("/uploads/", status_code=201)
async def upload(request: Request, file: UploadFile = File(...)):
    name = await logic.upload_logic(file)
    return {"url": str(request.url_for("get_upload", name=name))}

@app.get("/uploads/{name}", name="get_upload")
async def get_upload(name: str):
    stored = UPLOADS.get(name)
    if stored is None:
        raise HTTPException(status_code=404, detail="upload not found")
    data, content_type = stored
    return Response(content=data, media_type=content_type)

# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset():
    reset_all()
    return {"status": "reset"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8085)
