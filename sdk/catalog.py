# sdk/catalog.py
import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx
import requests
from rich import print

from sdk.errors import CatalogAPIError

logger = logging.getLogger(__name__)

CATEGORIES = "/categories/"
SUBCATEGORIES = "/subcategories/"
PRODUCTS = "/products/"
FILTER_TYPES = "/filter-types/"
CATEGORY_FILTERS = "/category-filters/"
UPLOADS = "/uploads/"

# keys under which upload backends have been seen to return the public URL
_UPLOAD_URL_KEYS = ("url", "publicUrl", "publicURL")


def _error_detail(r: Any) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def _decode(r: Any, path: str) -> Any:
    if r.status_code >= 400:
        raise CatalogAPIError(_error_detail(r), r.status_code)
    if r.status_code == 204 or not r.content:
        return None
    try:
        return r.json()
    except ValueError as e:
        raise CatalogAPIError(f"invalid JSON from {path}", r.status_code) from e


def _extract_upload_url(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise CatalogAPIError("Upload succeeded but no valid URL was returned")
    for source in (payload, payload.get("data")):
        if not isinstance(source, dict):
            continue
        for key in _UPLOAD_URL_KEYS:
            value = source.get(key)
            if isinstance(value, str) and value:
                return value
    raise CatalogAPIError("Upload succeeded but no valid URL was returned")


class CatalogClient:
    """
    Client for the catalog admin REST API.

    Plain calls go through a requests session. Calls that must run side by
    side (loading every collection at once, relinking many products) go
    through an httpx.AsyncClient. Any non-2xx answer or transport failure
    is raised as CatalogAPIError.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8085",
        api_token: Optional[str] = None,
        timeout: float = 10,
        session: Any = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.async_transport = async_transport
        self.headers: Dict[str, str] = {}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"
            self.session.headers.update(self.headers)

    @classmethod
    def from_settings(cls, settings) -> "CatalogClient":
        return cls(base_url=settings.API_BASE_URL, api_token=settings.API_TOKEN, timeout=settings.TIMEOUT)

    # -----------------------
    # Plumbing
    # -----------------------
    def _send(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method.upper(), url)
        try:
            r = getattr(self.session, method)(url, timeout=self.timeout, **kwargs)
        except (requests.RequestException, httpx.HTTPError) as e:
            raise CatalogAPIError(f"{method.upper()} {path} failed: {e}") from e
        return _decode(r, path)

    def _async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self.headers,
            transport=self.async_transport,
        )

    async def _send_async(self, client: httpx.AsyncClient, method: str, path: str, **kwargs) -> Any:
        logger.debug("%s %s (async)", method.upper(), path)
        try:
            r = await client.request(method.upper(), path, **kwargs)
        except httpx.HTTPError as e:
            raise CatalogAPIError(f"{method.upper()} {path} failed: {e}") from e
        return _decode(r, path)

    def reset(self):
        return self._send("post", "/reset")

    # -----------------------
    # Categories
    # -----------------------
    def list_categories(self) -> List[Dict[str, Any]]:
        return self._send("get", CATEGORIES)

    def create_category(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", CATEGORIES, json=payload)

    def update_category(self, category_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("put", f"{CATEGORIES}{category_id}/", json=payload)

    def delete_category(self, category_id: int) -> None:
        self._send("delete", f"{CATEGORIES}{category_id}/")

    # -----------------------
    # Subcategories
    # -----------------------
    def list_subcategories(self, category: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {}
        if category is not None:
            params["category"] = category
        return self._send("get", SUBCATEGORIES, params=params)

    def create_subcategory(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", SUBCATEGORIES, json=payload)

    def update_subcategory(self, subcategory_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("put", f"{SUBCATEGORIES}{subcategory_id}/", json=payload)

    def delete_subcategory(self, subcategory_id: int) -> None:
        self._send("delete", f"{SUBCATEGORIES}{subcategory_id}/")

    # -----------------------
    # Products
    # -----------------------
    def list_products(self) -> List[Dict[str, Any]]:
        return self._send("get", PRODUCTS)

    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", PRODUCTS, json=payload)

    def update_product(self, product_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("patch", f"{PRODUCTS}{product_id}/", json=changes)

    # -----------------------
    # Filter types and their options
    # -----------------------
    def list_filter_types(self) -> List[Dict[str, Any]]:
        return self._send("get", FILTER_TYPES)

    def create_filter_type(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", FILTER_TYPES, json=payload)

    def update_filter_type(self, type_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("put", f"{FILTER_TYPES}{type_id}/", json=payload)

    def delete_filter_type(self, type_id: int) -> None:
        self._send("delete", f"{FILTER_TYPES}{type_id}/")

    def add_filter_option(self, type_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", f"{FILTER_TYPES}{type_id}/options/", json=payload)

    def delete_filter_option(self, type_id: int, option_id: int) -> None:
        self._send("delete", f"{FILTER_TYPES}{type_id}/options/{option_id}/")

    # -----------------------
    # Category filter assignments
    # -----------------------
    def list_category_filters(self) -> List[Dict[str, Any]]:
        return self._send("get", CATEGORY_FILTERS)

    def create_category_filter(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("post", CATEGORY_FILTERS, json=payload)

    def update_category_filter(self, assignment_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        return self._send("patch", f"{CATEGORY_FILTERS}{assignment_id}/", json=changes)

    def delete_category_filter(self, assignment_id: int) -> None:
        self._send("delete", f"{CATEGORY_FILTERS}{assignment_id}/")

    # -----------------------
    # Uploads
    # -----------------------
    def upload_image(self, path: str) -> str:
        with open(path, "rb") as fh:
            payload = self._send("post", UPLOADS, files={"file": (os.path.basename(path), fh)})
        return _extract_upload_url(payload)

    # -----------------------
    # Concurrent calls
    # -----------------------
    async def get_many_async(self, *paths: str) -> List[Any]:
        """GET every path at once. Fails as a whole if any single GET fails."""
        async with self._async_client() as client:
            results = await asyncio.gather(
                *(self._send_async(client, "get", p) for p in paths),
                return_exceptions=True,
            )
        for res in results:
            if isinstance(res, Exception):
                raise res
        return list(results)

    async def update_products_async(self, changes_by_id: Dict[int, Dict[str, Any]]) -> Dict[int, Exception]:
        """
        PATCH every product at once and return the failures keyed by product id.
        Writes that succeeded are left in place.
        """
        ids = list(changes_by_id)
        async with self._async_client() as client:
            results = await asyncio.gather(
                *(self._send_async(client, "patch", f"{PRODUCTS}{pid}/", json=changes_by_id[pid]) for pid in ids),
                return_exceptions=True,
            )
        return {pid: res for pid, res in zip(ids, results) if isinstance(res, Exception)}


if __name__ == "__main__":
    import argparse
    from sdk.config import settings

    parser = argparse.ArgumentParser(description="Catalog admin API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-categories", help="List categories with their subcategories")
    subparsers.add_parser("list-products", help="List all products")
    subparsers.add_parser("list-filter-types", help="List filter types")
    subparsers.add_parser("list-category-filters", help="List filter assignments")

    ls = subparsers.add_parser("list-subcategories", help="List subcategories")
    ls.add_argument("--category", type=int, help="Only subcategories of this category")

    cc = subparsers.add_parser("create-category", help="Create a category")
    cc.add_argument("--name", required=True, help="Category name")
    cc.add_argument("--slug", help="Slug (derived from the name when omitted)")

    dc = subparsers.add_parser("delete-category", help="Delete a category and its subcategories")
    dc.add_argument("--id", type=int, required=True, help="Category ID")

    up = subparsers.add_parser("upload", help="Upload an image and print its URL")
    up.add_argument("--path", required=True, help="Image file")

    subparsers.add_parser("reset", help="Clear the store (local store service only)")

    args = parser.parse_args()
    c = CatalogClient.from_settings(settings)

    if args.command == "list-categories":
        print(c.list_categories())
    elif args.command == "list-products":
        print(c.list_products())
    elif args.command == "list-filter-types":
        print(c.list_filter_types())
    elif args.command == "list-category-filters":
        print(c.list_category_filters())
    elif args.command == "list-subcategories":
        print(c.list_subcategories(args.category))
    elif args.command == "create-category":
        from sdk.composer import slugify
        print(c.create_category({"name": args.name, "slug": args.slug or slugify(args.name)}))
    elif args.command == "delete-category":
        c.delete_category(args.id)
        print(f"[green]Category {args.id} deleted[/green]")
    elif args.command == "upload":
        print(c.upload_image(args.path))
    elif args.command == "reset":
        print(c.reset())
