"""Non-admin users only reach records of the sites they are assigned to."""

import pytest
import pytest_asyncio

EXTRA_GRANTS = [
    "READ:PURCHASE:ORDERS",
    "CREATE:PURCHASE:ORDERS",
    "EDIT:PURCHASE:ORDERS",
    "DELETE:PURCHASE:ORDERS",
    "CREATE:BOQS",
    "EDIT:BOQS",
    "DELETE:BOQS",
    "CREATE:BOQ:BILLS",
    "EDIT:BOQ:BILLS",
    "DELETE:BOQ:BILLS",
    "DELETE:INWARD:DELIVERY:CHALLAN",
    "DELETE:CASHBOOK:BUDGETS",
]


@pytest_asyncio.fixture
async def incharge(client, admin_headers, make_user, create, site):
    """A site in-charge assigned to ``site`` with write access to BOQs, bills and POs"""
    headers = await make_user("incharge@example.com", role="site_incharge")
    me = (await client.get("/api/users/me", headers=headers)).json()["data"]

    response = await client.put(
        f"/api/access-control/users/{me['id']}/permissions",
        json={"permissions": EXTRA_GRANTS},
        headers=admin_headers,
    )
    assert response.status_code == 200

    employee = await create("/api/employees", {"name": "Ravi", "userId": me["id"]})
    response = await client.post(
        "/api/employee-assignments",
        json={"siteId": site["id"], "employeeIds": [employee["id"]]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    return headers


async def site_records(create, target: dict, unit: dict, vendor: dict, item: dict, head: dict) -> dict:
    boq = await create("/api/boqs", {
        "boqNo": f"BOQ-{target['id']}",
        "siteId": target["id"],
        "items": [{"activityId": "1.1", "description": "PCC M15", "unitId": unit["id"], "qty": 10, "rate": 50}],
    })
    bill = await create("/api/boq-bills", {
        "boqId": boq["id"], "billNumber": f"RA-{target['id']}", "billName": "RA Bill 1", "billDate": "2024-04-30",
        "details": [{"boqItemId": boq["items"][0]["id"], "qty": 2}],
    })
    po = await create("/api/purchase-orders", {
        "poDate": "2024-05-02", "vendorId": vendor["id"], "siteId": target["id"],
        "details": [{"itemId": item["id"], "qty": 10, "rate": 400}],
    })
    inward = await create("/api/inward-delivery-challans", {
        "purchaseOrderId": po["id"], "challanDate": "2024-05-05",
        "details": [{"poDetailId": po["details"][0]["id"], "receivingQty": 2}],
    })
    budget = await create("/api/cashbook-budgets", {
        "name": "May cash", "month": "05-2024", "siteId": target["id"],
        "items": [{"cashbookHeadId": head["id"], "description": "Diesel", "amount": 2500}],
    })
    return {
        "site": target["id"],
        "boq": boq["id"],
        "boq_item": boq["items"][0]["id"],
        "bill": bill["id"],
        "po": po["id"],
        "inward": inward["id"],
        "budget": budget["id"],
        "item": item["id"],
        "vendor": vendor["id"],
    }


@pytest_asyncio.fixture
async def foreign(create, other_site, unit, vendor, item, head):
    return await site_records(create, other_site, unit, vendor, item, head)


OTHER_SITE_REQUESTS = [
    ("GET", "/api/purchase-orders/{po}", None),
    ("PATCH", "/api/purchase-orders/{po}", lambda r: {"remarks": "moved"}),
    ("DELETE", "/api/purchase-orders/{po}", None),
    ("POST", "/api/purchase-orders", lambda r: {
        "poDate": "2024-05-03", "vendorId": r["vendor"], "siteId": r["site"],
        "details": [{"itemId": r["item"], "qty": 1, "rate": 10}],
    }),
    ("GET", "/api/boqs/{boq}", None),
    ("PATCH", "/api/boqs/{boq}", lambda r: {"workName": "Renamed"}),
    ("DELETE", "/api/boqs/{boq}", None),
    ("POST", "/api/boqs", lambda r: {"boqNo": "BOQ-NEW", "siteId": r["site"]}),
    ("GET", "/api/boq-bills/{bill}", None),
    ("PATCH", "/api/boq-bills/{bill}", lambda r: {"remarks": "checked"}),
    ("DELETE", "/api/boq-bills/{bill}", None),
    ("POST", "/api/boq-bills", lambda r: {
        "boqId": r["boq"], "billNumber": "RA-NEW", "billName": "RA Bill 2", "billDate": "2024-05-31",
        "details": [{"boqItemId": r["boq_item"], "qty": 1}],
    }),
    ("GET", "/api/inward-delivery-challans/{inward}", None),
    ("DELETE", "/api/inward-delivery-challans/{inward}", None),
    ("POST", "/api/outward-delivery-challans", lambda r: {
        "challanDate": "2024-05-10", "fromSiteId": r["site"], "toSiteId": r["own_site"],
        "details": [{"itemId": r["item"], "challanQty": 1}],
    }),
    ("GET", "/api/cashbook-budgets/{budget}", None),
    ("DELETE", "/api/cashbook-budgets/{budget}", None),
]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method,path,body", OTHER_SITE_REQUESTS, ids=[f"{m} {p}" for m, p, _ in OTHER_SITE_REQUESTS]
)
async def test_other_site_records_are_forbidden(
    client, admin_headers, incharge, foreign, site, method, path, body
):
    records = {**foreign, "own_site": site["id"]}
    url = path.format(**records)
    kwargs = {"json": body(records)} if body else {}

    response = await client.request(method, url, headers=incharge, **kwargs)
    assert response.status_code == 403, response.text
    assert response.json()["error"] == "Site is not assigned to current user"

    # nothing changed on the other site
    response = await client.get("/api/boq-bills", params={"siteId": foreign["site"]}, headers=admin_headers)
    assert [b["id"] for b in response.json()["data"]] == [foreign["bill"]]
    response = await client.get(f"/api/purchase-orders/{foreign['po']}", headers=admin_headers)
    assert response.json()["data"]["remarks"] is None


@pytest.mark.asyncio
async def test_own_site_records_are_reachable(client, incharge, create, site, unit, vendor, item, head):
    own = await site_records(create, site, unit, vendor, item, head)

    response = await client.get(f"/api/purchase-orders/{own['po']}", headers=incharge)
    assert response.status_code == 200

    response = await client.patch(f"/api/boq-bills/{own['bill']}", json={"remarks": "checked"}, headers=incharge)
    assert response.status_code == 200
    assert response.json()["data"]["remarks"] == "checked"

    response = await client.post("/api/boqs", json={"boqNo": "BOQ-OWN", "siteId": site["id"]}, headers=incharge)
    assert response.status_code == 201

    response = await client.delete(f"/api/boq-bills/{own['bill']}", headers=incharge)
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_boq_cannot_move_to_unassigned_site(client, incharge, create, site, other_site):
    boq = await create("/api/boqs", {"boqNo": "BOQ-MOVE", "siteId": site["id"]})
    response = await client.patch(f"/api/boqs/{boq['id']}", json={"siteId": other_site["id"]}, headers=incharge)
    assert response.status_code == 403
    assert response.json()["error"] == "Site is not assigned to current user"


@pytest.mark.asyncio
async def test_scoped_purchase_order_list(client, incharge, foreign):
    response = await client.get("/api/purchase-orders", headers=incharge)
    assert response.status_code == 200
    assert response.json()["data"] == []
