import pytest


@pytest.mark.asyncio
async def test_list_pagination_and_search(client, admin_headers, create):
    for name in ("Bags", "Cum", "Kg", "Nos", "Sqm"):
        await create("/api/units", {"unitName": name})

    response = await client.get(
        "/api/units", params={"page": 2, "perPage": 2, "sort": "unitName", "order": "asc"}, headers=admin_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert [u["unitName"] for u in body["data"]] == ["Kg", "Nos"]
    assert body["meta"] == {"page": 2, "perPage": 2, "total": 5, "totalPages": 3}

    response = await client.get("/api/units", params={"search": "u"}, headers=admin_headers)
    assert {u["unitName"] for u in response.json()["data"]} == {"Cum"}


@pytest.mark.asyncio
async def test_page_size_is_clamped(client, admin_headers):
    response = await client.get("/api/units", params={"page": 0, "perPage": 1000}, headers=admin_headers)
    assert response.json()["meta"]["page"] == 1
    assert response.json()["meta"]["perPage"] == 100


@pytest.mark.asyncio
async def test_duplicate_is_409(client, admin_headers, unit):
    response = await client.post("/api/units", json={"unitName": "Cum"}, headers=admin_headers)
    assert response.status_code == 409
    assert response.json() == {"data": None, "error": "Unit already exists"}


@pytest.mark.asyncio
async def test_missing_record_is_404(client, admin_headers):
    response = await client.get("/api/items/999", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["data"] is None


@pytest.mark.asyncio
async def test_invalid_foreign_key_is_400(client, admin_headers):
    response = await client.post(
        "/api/items", json={"itemCode": "X1", "item": "Sand", "unitId": 42}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Unit not found"


@pytest.mark.asyncio
async def test_validation_errors_are_400(client, admin_headers):
    response = await client.post("/api/units", json={}, headers=admin_headers)
    assert response.status_code == 400
    errors = response.json()["error"]
    assert errors[0]["field"] == "unitName"


@pytest.mark.asyncio
async def test_update_and_delete(client, admin_headers, item):
    response = await client.patch(f"/api/items/{item['id']}", json={"gstRate": 18}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["gstRate"] == 18

    response = await client.delete(f"/api/items/{item['id']}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get(f"/api/items/{item['id']}", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_referenced_record_cannot_be_deleted(client, admin_headers, item, unit):
    response = await client.delete(f"/api/units/{unit['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "Record is referenced by other data"
