# tests/test_concurrency.py
import asyncio
import json

import httpx
import pytest

from sdk.catalog import CatalogClient, _extract_upload_url
from sdk.errors import CatalogAPIError


def _tracking_transport(fail_ids=()):
    """Async mock store that records how many PATCHes were in flight at once."""
    state = {"in_flight": 0, "peak": 0, "seen": {}}

    async def handler(request: httpx.Request):
        state["in_flight"] += 1
        state["peak"] = max(state["peak"], state["in_flight"])
        await asyncio.sleep(0.01)
        state["in_flight"] -= 1
        pid = int(request.url.path.strip("/").split("/")[-1])
        if pid in fail_ids:
            return httpx.Response(404, json={"detail": "product not found"})
        state["seen"][pid] = json.loads(request.content)
        return httpx.Response(200, json={"id": pid, **state["seen"][pid]})

    return httpx.MockTransport(handler), state


def test_product_updates_run_concurrently():
    transport, state = _tracking_transport()
    c = CatalogClient(base_url="http://test", async_transport=transport)

    failures = asyncio.run(c.update_products_async({5: {"subcategory": 3}, 9: {"subcategory": 3}}))

    assert failures == {}
    assert state["peak"] == 2
    assert state["seen"] == {5: {"subcategory": 3}, 9: {"subcategory": 3}}


def test_failed_updates_are_reported_and_others_kept():
    transport, state = _tracking_transport(fail_ids={9})
    c = CatalogClient(base_url="http://test", async_transport=transport)

    failures = asyncio.run(c.update_products_async({5: {"subcategory": 3}, 9: {"subcategory": 3}, 12: {"subcategory": None}}))

    assert list(failures) == [9]
    assert isinstance(failures[9], CatalogAPIError)
    assert failures[9].status_code == 404
    # no rollback of the writes that went through
    assert state["seen"] == {5: {"subcategory": 3}, 12: {"subcategory": None}}


def test_get_many_fails_as_a_whole():
    def handler(request: httpx.Request):
        if request.url.path == "/products/":
            return httpx.Response(500, text="database down")
        return httpx.Response(200, json=[])

    c = CatalogClient(base_url="http://test", async_transport=httpx.MockTransport(handler))
    with pytest.raises(CatalogAPIError) as exc:
        asyncio.run(c.get_many_async("/categories/", "/products/", "/filter-types/"))
    assert exc.value.status_code == 500
    assert "database down" in str(exc.value)


def test_non_json_success_body_is_an_api_error():
    def handler(request: httpx.Request):
        return httpx.Response(200, text="<html>proxy error</html>")

    c = CatalogClient(
        base_url="http://test",
        session=httpx.Client(transport=httpx.MockTransport(handler)),
        async_transport=httpx.MockTransport(handler),
    )
    with pytest.raises(CatalogAPIError) as exc:
        c.list_categories()
    assert exc.value.status_code == 200
    assert "invalid JSON from /categories/" in str(exc.value)

    with pytest.raises(CatalogAPIError) as exc:
        asyncio.run(c.get_many_async("/categories/", "/products/"))
    assert exc.value.status_code == 200


def test_bearer_token_is_sent():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.headers.get("authorization"))
        return httpx.Response(200, json=[])

    c = CatalogClient(base_url="http://test", api_token="s3cret", async_transport=httpx.MockTransport(handler))
    asyncio.run(c.get_many_async("/categories/"))
    assert seen == ["Bearer s3cret"]
    assert c.session.headers["Authorization"] == "Bearer s3cret"


def test_upload_url_is_found_in_known_places():
    assert _extract_upload_url({"url": "https://cdn/x.png"}) == "https://cdn/x.png"
    assert _extract_upload_url({"publicURL": "https://cdn/y.png"}) == "https://cdn/y.png"
    assert _extract_upload_url({"data": {"publicUrl": "https://cdn/z.png"}}) == "https://cdn/z.png"
    with pytest.raises(CatalogAPIError):
        _extract_upload_url({"data": {"path": "x.png"}})
    with pytest.raises(CatalogAPIError):
        _extract_upload_url({"url": ""})
