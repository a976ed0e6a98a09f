import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def po(create, site, vendor, item):
    return await create("/api/purchase-orders", {
        "poDate": "2024-05-02",
        "vendorId": vendor["id"],
        "siteId": site["id"],
        "details": [{"itemId": item["id"], "qty": 10, "rate": 400}],
    })


async def receive(create, po: dict, qty: float, challan_date: str = "2024-05-05") -> dict:
    return await create("/api/inward-delivery-challans", {
        "purchaseOrderId": po["id"],
        "challanDate": challan_date,
        "billNo": "INV-1",
        "details": [{"poDetailId": po["details"][0]["id"], "receivingQty": qty}],
    })


async def stock_of(client, headers, site: dict) -> list[dict]:
    response = await client.get("/api/stocks", params={"siteId": site["id"]}, headers=headers)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_inward_challan_adds_stock(client, admin_headers, create, po, site, item):
    challan = await receive(create, po, 4)
    assert challan["inwardChallanNo"] == "0001-0001"
    assert challan["vendorId"] == po["vendorId"]
    assert challan["details"][0]["rate"] == 400
    assert challan["billAmount"] == 1600

    second = await receive(create, po, 6)
    assert second["inwardChallanNo"] == "0001-0002"

    [row] = await stock_of(client, admin_headers, site)
    assert row["itemCode"] == "CEM-53"
    assert (row["closingStock"], row["closingValue"], row["unitRate"]) == (10, 4000, 400)

    response = await client.get(f"/api/purchase-orders/{po['id']}", headers=admin_headers)
    assert response.json()["data"]["details"][0]["receivedQty"] == 10

    response = await client.get(
        "/api/stocks/ledger", params={"siteId": site["id"], "itemId": item["id"]}, headers=admin_headers
    )
    ledger = response.json()["data"]
    assert {r["txnType"] for r in ledger} == {"INWARD"}
    assert sum(r["receivedQty"] for r in ledger) == 10


@pytest.mark.asyncio
async def test_receiving_more_than_pending_is_rejected(client, admin_headers, create, po):
    await receive(create, po, 8)
    response = await client.post("/api/inward-delivery-challans", json={
        "purchaseOrderId": po["id"],
        "challanDate": "2024-05-06",
        "details": [{"poDetailId": po["details"][0]["id"], "receivingQty": 3}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == f"Receiving qty 3 exceeds pending qty 2 for PO detail {po['details'][0]['id']}"


@pytest.mark.asyncio
async def test_suspended_po_cannot_receive(client, admin_headers, create, po):
    await client.patch(f"/api/purchase-orders/{po['id']}", json={"status": "Suspended"}, headers=admin_headers)
    response = await client.post("/api/inward-delivery-challans", json={
        "purchaseOrderId": po["id"],
        "challanDate": "2024-05-06",
        "details": [{"poDetailId": po["details"][0]["id"], "receivingQty": 1}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Purchase order is suspended"


@pytest.mark.asyncio
async def test_deleting_inward_challan_reverses_stock(client, admin_headers, create, po, site):
    first = await receive(create, po, 4)
    await receive(create, po, 1)

    response = await client.delete(f"/api/inward-delivery-challans/{first['id']}", headers=admin_headers)
    assert response.status_code == 204

    [row] = await stock_of(client, admin_headers, site)
    assert (row["closingStock"], row["closingValue"]) == (1, 400)
    response = await client.get(f"/api/purchase-orders/{po['id']}", headers=admin_headers)
    assert response.json()["data"]["details"][0]["receivedQty"] == 1


@pytest.mark.asyncio
async def test_inward_challan_cannot_be_deleted_after_stock_moves(
    client, admin_headers, create, make_user, po, site, other_site, item
):
    inward = await receive(create, po, 4)
    challan = await create("/api/outward-delivery-challans", {
        "challanDate": "2024-05-10",
        "fromSiteId": site["id"],
        "toSiteId": other_site["id"],
        "details": [{"itemId": item["id"], "challanQty": 4}],
    })
    url = f"/api/outward-delivery-challans/{challan['id']}"
    approver = await make_user("approver@example.com", role="admin")
    receiver = await make_user("receiver@example.com", role="admin")
    response = await client.patch(url, json={"statusAction": "approve"}, headers=approver)
    assert response.status_code == 200
    response = await client.patch(url, json={"statusAction": "accept"}, headers=receiver)
    assert response.status_code == 200

    response = await client.delete(f"/api/inward-delivery-challans/{inward['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == f"Closing stock (0) is below received qty (4) for item {item['id']}"

    [source] = await stock_of(client, admin_headers, site)
    [target] = await stock_of(client, admin_headers, other_site)
    assert (source["closingStock"], source["closingValue"]) == (0, 0)
    assert (target["closingStock"], target["closingValue"]) == (4, 1600)
    response = await client.get(f"/api/purchase-orders/{po['id']}", headers=admin_headers)
    assert response.json()["data"]["details"][0]["receivedQty"] == 4
    response = await client.get(f"/api/inward-delivery-challans/{inward['id']}", headers=admin_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_outward_challan_workflow(client, admin_headers, create, make_user, po, site, other_site, item):
    await receive(create, po, 10)
    approver = await make_user("approver@example.com", role="admin")
    receiver = await make_user("receiver@example.com", role="admin")

    response = await client.post("/api/outward-delivery-challans", json={
        "challanDate": "2024-05-10",
        "fromSiteId": site["id"],
        "toSiteId": other_site["id"],
        "details": [{"itemId": item["id"], "challanQty": 11}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == f"Challan qty cannot exceed closing stock (10) for item {item['id']}"

    challan = await create("/api/outward-delivery-challans", {
        "challanDate": "2024-05-10",
        "fromSiteId": site["id"],
        "toSiteId": other_site["id"],
        "details": [{"itemId": item["id"], "challanQty": 3}],
    })
    assert challan["outwardChallanNo"] == "0001-0001"
    line = challan["details"][0]
    assert (line["rate"], line["amount"]) == (400, 1200)
    url = f"/api/outward-delivery-challans/{challan['id']}"

    response = await client.patch(url, json={"statusAction": "accept"}, headers=receiver)
    assert response.json()["error"] == "Challan must be approved before acceptance"

    response = await client.patch(url, json={"statusAction": "approve"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Creator cannot approve"

    response = await client.patch(
        url, json={"statusAction": "approve", "details": [{"id": line["id"], "approved1Qty": 2}]}, headers=approver
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["isApproved1"] is True
    assert data["details"][0]["approved1Qty"] == 2
    assert data["details"][0]["amount"] == 800

    response = await client.patch(url, json={"remarks": "late edit"}, headers=admin_headers)
    assert response.json()["error"] == "Approved challans cannot be edited"

    response = await client.patch(url, json={"statusAction": "accept"}, headers=approver)
    assert response.json()["error"] == "Approver cannot accept"

    response = await client.patch(
        url, json={"statusAction": "accept", "details": [{"id": line["id"], "receivedQty": 3}]}, headers=receiver
    )
    assert response.json()["error"] == f"Received qty cannot exceed approved qty (2) for detail {line['id']}"

    response = await client.patch(url, json={"statusAction": "accept"}, headers=receiver)
    assert response.status_code == 200
    assert response.json()["data"]["details"][0]["receivedQty"] == 2

    [source] = await stock_of(client, admin_headers, site)
    [target] = await stock_of(client, admin_headers, other_site)
    assert (source["closingStock"], source["closingValue"]) == (8, 3200)
    assert (target["closingStock"], target["closingValue"], target["unitRate"]) == (2, 800, 400)

    response = await client.get("/api/stocks/ledger", params={"siteId": other_site["id"]}, headers=admin_headers)
    [entry] = response.json()["data"]
    assert entry["txnType"] == "OUTWARD_RECEIVE"
    assert entry["outwardDeliveryChallanId"] == challan["id"]

    response = await client.delete(url, headers=admin_headers)
    assert response.json()["error"] == "Approved challans cannot be deleted"


@pytest.mark.asyncio
async def test_outward_challan_needs_two_sites(client, admin_headers, site, item):
    response = await client.post("/api/outward-delivery-challans", json={
        "challanDate": "2024-05-10",
        "fromSiteId": site["id"],
        "toSiteId": site["id"],
        "details": [{"itemId": item["id"], "challanQty": 1}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "From site and to site must be different"


@pytest.mark.asyncio
async def test_outward_approve_needs_permission(client, create, make_user, po, site, other_site, item):
    await receive(create, po, 5)
    challan = await create("/api/outward-delivery-challans", {
        "challanDate": "2024-05-10",
        "fromSiteId": site["id"],
        "toSiteId": other_site["id"],
        "details": [{"itemId": item["id"], "challanQty": 1}],
    })
    viewer = await make_user("viewer@example.com")
    response = await client.patch(
        f"/api/outward-delivery-challans/{challan['id']}", json={"statusAction": "approve"}, headers=viewer
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Missing permission: APPROVE:OUTWARD:DELIVERY:CHALLAN"
