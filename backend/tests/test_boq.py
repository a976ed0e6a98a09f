import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def boq(create, site, unit):
    return await create("/api/boqs", {
        "boqNo": "BOQ-101",
        "siteId": site["id"],
        "workName": "Podium slab",
        "items": [
            {"activityId": "1.1", "description": "PCC M15", "unitId": unit["id"], "qty": 100, "rate": 50},
            {"activityId": "1.2", "description": "RCC M25", "unitId": unit["id"], "qty": 10, "rate": 1000},
        ],
    })


def bill_payload(boq: dict, number: str, qty_first: float, qty_second: float = 0) -> dict:
    first, second = boq["items"]
    return {
        "boqId": boq["id"],
        "billNumber": number,
        "billName": f"RA Bill {number}",
        "billDate": "2024-04-30",
        "details": [
            {"boqItemId": first["id"], "qty": qty_first},
            {"boqItemId": second["id"], "qty": qty_second},
        ],
    }


@pytest.mark.asyncio
async def test_boq_total_defaults_to_item_sum(boq):
    assert [i["amount"] for i in boq["items"]] == [5000, 10000]
    assert boq["totalWorkValue"] == 15000


@pytest.mark.asyncio
async def test_duplicate_boq_number(client, admin_headers, boq, site):
    response = await client.post(
        "/api/boqs", json={"boqNo": "BOQ-101", "siteId": site["id"]}, headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "BOQ number already exists"


@pytest.mark.asyncio
async def test_bill_lines_priced_from_boq_rate(create, boq):
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 40, 2.5))
    assert bill["boqNo"] == "BOQ-101"
    assert [(d["qty"], d["amount"]) for d in bill["details"]] == [(40, 2000), (2.5, 2500)]
    assert bill["totalBillAmount"] == 4500


@pytest.mark.asyncio
async def test_zero_quantity_lines_are_dropped(create, boq):
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 10, 0))
    assert len(bill["details"]) == 1


@pytest.mark.asyncio
async def test_cumulative_billing_cannot_exceed_boq_qty(client, admin_headers, create, boq):
    await create("/api/boq-bills", bill_payload(boq, "RA-1", 60))

    response = await client.post("/api/boq-bills", json=bill_payload(boq, "RA-2", 41), headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Billed qty 101 exceeds BOQ qty 100 for item 1.1: PCC M15"

    response = await client.post("/api/boq-bills", json=bill_payload(boq, "RA-2", 40), headers=admin_headers)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_bill_item_must_belong_to_boq(client, admin_headers, create, boq, site):
    other = await create("/api/boqs", {
        "boqNo": "BOQ-202", "siteId": site["id"],
        "items": [{"description": "Plaster", "qty": 5, "rate": 10}],
    })
    payload = bill_payload(boq, "RA-1", 1)
    payload["details"].append({"boqItemId": other["items"][0]["id"], "qty": 1})

    response = await client.post("/api/boq-bills", json=payload, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "One or more BOQ items are invalid for selected BOQ"


@pytest.mark.asyncio
async def test_duplicate_bill_number(client, admin_headers, create, boq):
    await create("/api/boq-bills", bill_payload(boq, "RA-1", 1))
    response = await client.post("/api/boq-bills", json=bill_payload(boq, "RA-1", 1), headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_bill_upserts_lines(client, admin_headers, create, boq):
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 10))
    first_line = bill["details"][0]
    second_item = boq["items"][1]

    response = await client.patch(
        f"/api/boq-bills/{bill['id']}",
        json={"details": [
            {"id": first_line["id"], "boqItemId": first_line["boqItemId"], "qty": 20},
            {"boqItemId": second_item["id"], "qty": 1},
        ]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [(d["qty"], d["amount"]) for d in data["details"]] == [(20, 1000), (1, 1000)]
    assert data["totalBillAmount"] == 2000


@pytest.mark.asyncio
async def test_update_bill_rejects_mismatched_detail(client, admin_headers, create, boq):
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 10))
    line = bill["details"][0]

    response = await client.patch(
        f"/api/boq-bills/{bill['id']}",
        json={"details": [{"id": line["id"], "boqItemId": boq["items"][1]["id"], "qty": 1}]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "BOQ bill detail id does not match boqItemId"

    response = await client.patch(
        f"/api/boq-bills/{bill['id']}",
        json={"details": [{"id": 9999, "boqItemId": boq["items"][0]["id"], "qty": 1}]},
        headers=admin_headers,
    )
    assert response.json()["error"] == "One or more BOQ bill detail IDs are invalid"


@pytest.mark.asyncio
async def test_bill_with_items_keeps_its_boq(client, admin_headers, create, boq, site):
    other = await create("/api/boqs", {"boqNo": "BOQ-102", "siteId": site["id"]})
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 10))

    response = await client.patch(f"/api/boq-bills/{bill['id']}", json={"boqId": other["id"]}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "BOQ cannot be changed while the bill has items"

    empty = await create("/api/boq-bills", bill_payload(boq, "RA-2", 0))
    response = await client.patch(f"/api/boq-bills/{empty['id']}", json={"boqId": other["id"]}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["boqNo"] == "BOQ-102"


@pytest.mark.asyncio
async def test_update_bill_excludes_itself_from_limit(client, admin_headers, create, boq):
    bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 90))
    line = bill["details"][0]
    response = await client.patch(
        f"/api/boq-bills/{bill['id']}",
        json={"details": [{"id": line["id"], "boqItemId": line["boqItemId"], "qty": 100}]},
        headers=admin_headers,
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_billed_item_cannot_be_removed_or_reduced(client, admin_headers, create, boq):
    await create("/api/boq-bills", bill_payload(boq, "RA-1", 30))
    first, second = boq["items"]

    response = await client.patch(
        f"/api/boqs/{boq['id']}",
        json={"items": [{"id": second["id"], "description": second["description"], "qty": 10, "rate": 1000}]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "BOQ item 1.1 is billed and cannot be removed"

    response = await client.patch(
        f"/api/boqs/{boq['id']}",
        json={"items": [{"id": first["id"], "description": first["description"], "qty": 20, "rate": 50}]},
        headers=admin_headers,
    )
    assert response.status_code == 400

    response = await client.patch(
        f"/api/boqs/{boq['id']}",
        json={"items": [{"id": first["id"], "activityId": "1.1", "description": "PCC M15", "qty": 30, "rate": 60}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["items"]) == 1
    assert data["totalWorkValue"] == 1800


@pytest.mark.asyncio
async def test_work_done_and_billed_summary(client, admin_headers, create, boq):
    first_bill = await create("/api/boq-bills", bill_payload(boq, "RA-1", 25, 1))
    second_bill = await create("/api/boq-bills", bill_payload(boq, "RA-2", 15))

    response = await client.get(
        "/api/boqs/work-done", params={"boqId": boq["id"], "sort": "description", "order": "asc"},
        headers=admin_headers,
    )
    rows = response.json()["data"]
    pcc = rows[0]
    assert pcc["description"] == "PCC M15"
    assert pcc["billedQty"] == 40
    assert pcc["billedAmount"] == 2000
    assert pcc["remainingQty"] == 60
    assert pcc["remainingAmount"] == 3000
    assert pcc["unit"] == "Cum"

    response = await client.get("/api/reports/boq-bills", params={"boqId": boq["id"]}, headers=admin_headers)
    summary = response.json()["data"]
    assert [b["id"] for b in summary["bills"]] == [first_bill["id"], second_bill["id"]]
    assert summary["items"][0]["billQty"] == {str(first_bill["id"]): 25, str(second_bill["id"]): 15}
    assert summary["items"][1]["remainingQty"] == 9
    assert summary["totalBilledAmount"] == 3000


@pytest.mark.asyncio
async def test_bill_list_filters_by_boq(client, admin_headers, create, boq):
    await create("/api/boq-bills", bill_payload(boq, "RA-1", 1))
    response = await client.get("/api/boq-bills", params={"boqId": boq["id"], "search": "BOQ-101"}, headers=admin_headers)
    assert response.json()["meta"]["total"] == 1
    response = await client.get("/api/boq-bills", params={"boqId": boq["id"] + 1}, headers=admin_headers)
    assert response.json()["meta"]["total"] == 0
