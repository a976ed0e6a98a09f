import pytest
import pytest_asyncio

from siteledger.config import settings


@pytest_asyncio.fixture
async def boq(create, site):
    return await create("/api/boqs", {"boqNo": "BOQ-55", "siteId": site["id"]})


def po_payload(site: dict, vendor: dict, item: dict, qty: float, rate: float = 400, boq: dict | None = None) -> dict:
    return {
        "poDate": "2024-05-02",
        "vendorId": vendor["id"],
        "siteId": site["id"],
        "boqId": boq["id"] if boq else None,
        "details": [{"itemId": item["id"], "qty": qty, "rate": rate}],
    }


@pytest.mark.asyncio
async def test_po_numbers_and_amounts(create, site, vendor, item):
    po = await create("/api/purchase-orders", po_payload(site, vendor, item, 10, rate=412.5))
    assert po["poNo"] == "PO-00001"
    assert po["status"] == "Open"
    assert po["details"][0]["amount"] == 4125
    assert po["totalAmount"] == 4125


@pytest.mark.asyncio
async def test_site_budget_tracks_ordered_quantities(client, admin_headers, create, site, vendor, item, boq):
    budget = await create("/api/site-budgets", {
        "siteId": site["id"], "boqId": boq["id"], "itemId": item["id"], "budgetQty": 100, "budgetRate": 400,
    })
    assert budget["budgetValue"] == 40000
    assert budget["itemName"] == "Cement OPC 53"

    po = await create("/api/purchase-orders", po_payload(site, vendor, item, 60, rate=420, boq=boq))
    response = await client.get(f"/api/site-budgets/{budget['id']}", headers=admin_headers)
    data = response.json()["data"]
    assert data["orderedQty"] == 60
    assert data["orderedValue"] == 25200
    assert data["avgRate"] == 420
    assert data["qty50Alert"] is True
    assert data["qty75Alert"] is False

    response = await client.patch(
        f"/api/purchase-orders/{po['id']}", json={"status": "Suspended"}, headers=admin_headers
    )
    assert response.status_code == 200
    response = await client.get(f"/api/site-budgets/{budget['id']}", headers=admin_headers)
    assert response.json()["data"]["orderedQty"] == 0


@pytest.mark.asyncio
async def test_site_budget_summary_and_duplicates(client, admin_headers, create, site, item, boq):
    payload = {"siteId": site["id"], "boqId": boq["id"], "itemId": item["id"], "budgetQty": 10, "budgetRate": 5}
    await create("/api/site-budgets", payload)
    response = await client.post("/api/site-budgets", json=payload, headers=admin_headers)
    assert response.status_code == 409

    response = await client.get(f"/api/site-budgets/summary/{site['id']}", headers=admin_headers)
    assert response.json()["data"] == {
        "siteId": site["id"], "totalItems": 1, "totalBudgetValue": 50, "avgBudgetRate": 5,
    }


@pytest.mark.asyncio
async def test_po_limited_by_site_budget_when_enabled(monkeypatch, client, admin_headers, create, site, vendor, item, boq):
    monkeypatch.setattr(settings, "SITE_BUDGET_VALIDATION", True)
    await create("/api/site-budgets", {
        "siteId": site["id"], "boqId": boq["id"], "itemId": item["id"], "budgetQty": 100, "budgetRate": 400,
    })
    await create("/api/purchase-orders", po_payload(site, vendor, item, 70, boq=boq))

    response = await client.post(
        "/api/purchase-orders", json=po_payload(site, vendor, item, 31, boq=boq), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == f"Item limit exceeded -> {item['id']}: 70.00/100.00, available:30.00"

    # orders without a BOQ are not checked
    response = await client.post(
        "/api/purchase-orders", json=po_payload(site, vendor, item, 500), headers=admin_headers
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_po_reference_checks(client, admin_headers, site, item):
    response = await client.post(
        "/api/purchase-orders", json=po_payload(site, {"id": 77}, item, 1), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Vendor not found"


@pytest.mark.asyncio
async def test_po_detail_rules_after_receipt(client, admin_headers, create, site, vendor, item):
    po = await create("/api/purchase-orders", po_payload(site, vendor, item, 10))
    line = po["details"][0]
    await create("/api/inward-delivery-challans", {
        "purchaseOrderId": po["id"], "challanDate": "2024-05-05",
        "details": [{"poDetailId": line["id"], "receivingQty": 4}],
    })

    response = await client.patch(
        f"/api/purchase-orders/{po['id']}",
        json={"details": [{"id": line["id"], "itemId": item["id"], "qty": 3, "rate": 400}]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == f"Detail {line['id']} qty cannot be below received qty 4"

    response = await client.delete(f"/api/purchase-orders/{po['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Purchase order has received quantities and cannot be deleted"
