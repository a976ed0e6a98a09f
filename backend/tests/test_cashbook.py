import pytest


def voucher(site: dict, head: dict, day: str, received: float = 0, expense: float = 0, **extra) -> dict:
    return {
        "voucherDate": day,
        "siteId": site["id"],
        "details": [{"cashbookHeadId": head["id"], "received": received, "expense": expense}],
        **extra,
    }


def budget(site: dict, head: dict, month: str = "05-2024", amount: float = 5000) -> dict:
    return {
        "name": f"Site cash {month}",
        "month": month,
        "siteId": site["id"],
        "items": [{"cashbookHeadId": head["id"], "description": "Petty cash", "amount": amount}],
    }


@pytest.mark.asyncio
async def test_voucher_numbers_and_totals(create, site, head):
    first = await create("/api/cashbooks", voucher(site, head, "2024-05-10", received=1000, expense=200))
    second = await create("/api/cashbooks", voucher(site, head, "2024-05-11", expense=50))
    assert first["voucherNo"] == "CB-00001"
    assert second["voucherNo"] == "CB-00002"
    assert (first["totalReceived"], first["totalExpense"]) == (1000, 200)
    assert first["details"][0]["cashbookHeadName"] == "Site Expenses"
    assert second["details"][0]["openingBalance"] == 800
    assert second["details"][0]["closingBalance"] == 750


@pytest.mark.asyncio
async def test_backdated_voucher_recomputes_later_balances(client, admin_headers, create, site, head):
    later = await create("/api/cashbooks", voucher(site, head, "2024-05-10", received=1000, expense=200))
    earlier = await create("/api/cashbooks", voucher(site, head, "2024-05-05", expense=100))
    assert earlier["details"][0]["closingBalance"] == -100

    response = await client.get(f"/api/cashbooks/{later['id']}", headers=admin_headers)
    line = response.json()["data"]["details"][0]
    assert (line["openingBalance"], line["closingBalance"]) == (-100, 700)

    params = {"siteId": site["id"], "cashbookHeadId": head["id"]}
    response = await client.get("/api/cashbooks/last-balance", params=params, headers=admin_headers)
    assert response.json()["data"]["closingBalance"] == 700
    response = await client.get(
        "/api/cashbooks/last-balance", params={**params, "date": "2024-05-10"}, headers=admin_headers
    )
    assert response.json()["data"]["closingBalance"] == -100

    response = await client.delete(f"/api/cashbooks/{earlier['id']}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.get(f"/api/cashbooks/{later['id']}", headers=admin_headers)
    line = response.json()["data"]["details"][0]
    assert (line["openingBalance"], line["closingBalance"]) == (0, 800)


@pytest.mark.asyncio
async def test_balances_are_kept_per_boq(client, admin_headers, create, site, head):
    boq = await create("/api/boqs", {"boqNo": "BOQ-7", "siteId": site["id"]})
    await create("/api/cashbooks", voucher(site, head, "2024-05-01", received=500))
    with_boq = await create("/api/cashbooks", voucher(site, head, "2024-05-02", received=80, boqId=boq["id"]))
    assert with_boq["details"][0]["openingBalance"] == 0
    assert with_boq["details"][0]["closingBalance"] == 80


@pytest.mark.asyncio
async def test_moving_voucher_date_recomputes(client, admin_headers, create, site, head):
    a = await create("/api/cashbooks", voucher(site, head, "2024-05-01", received=300))
    b = await create("/api/cashbooks", voucher(site, head, "2024-05-02", expense=100))

    response = await client.patch(f"/api/cashbooks/{a['id']}", json={"voucherDate": "2024-05-03"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["details"][0]["closingBalance"] == 200

    response = await client.get(f"/api/cashbooks/{b['id']}", headers=admin_headers)
    assert response.json()["data"]["details"][0]["closingBalance"] == -100


@pytest.mark.asyncio
async def test_boq_must_belong_to_site(client, admin_headers, create, site, other_site, head):
    boq = await create("/api/boqs", {"boqNo": "BOQ-9", "siteId": other_site["id"]})
    response = await client.post(
        "/api/cashbooks", json=voucher(site, head, "2024-05-01", received=1, boqId=boq["id"]), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "BOQ does not belong to the selected site"


@pytest.mark.asyncio
async def test_duplicate_voucher_number(client, admin_headers, create, site, head):
    await create("/api/cashbooks", voucher(site, head, "2024-05-01", received=1, voucherNo="V-1"))
    response = await client.post(
        "/api/cashbooks", json=voucher(site, head, "2024-05-01", received=1, voucherNo="V-1"), headers=admin_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "Voucher number already exists"


@pytest.mark.asyncio
async def test_budget_tracks_received_cash(client, admin_headers, create, site, head):
    await create("/api/cashbooks", voucher(site, head, "2024-05-10", received=1200))
    created = await create("/api/cashbook-budgets", budget(site, head))
    assert created["totalBudget"] == 5000
    assert created["totalReceivedAmount"] == 1200
    assert created["status"] == "draft"
    assert created["availableActions"] == ["approve_1"]

    await create("/api/cashbooks", voucher(site, head, "2024-05-20", received=300))
    await create("/api/cashbooks", voucher(site, head, "2024-06-01", received=999))
    response = await client.get(f"/api/cashbook-budgets/{created['id']}", headers=admin_headers)
    assert response.json()["data"]["items"][0]["receivedAmount"] == 1500


@pytest.mark.asyncio
async def test_budget_validation(client, admin_headers, create, site, head):
    payload = budget(site, head, month="2024-05")
    response = await client.post("/api/cashbook-budgets", json=payload, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid month. Expected MM-YYYY"

    await create("/api/cashbook-budgets", budget(site, head))
    response = await client.post("/api/cashbook-budgets", json=budget(site, head), headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "Budget for this month, site, and BOQ combination already exists"


@pytest.mark.asyncio
async def test_budget_approval_chain(client, admin_headers, create, site, head):
    created = await create("/api/cashbook-budgets", budget(site, head))
    item_id = created["items"][0]["id"]
    url = f"/api/cashbook-budgets/{created['id']}/actions"

    response = await client.post(url, json={"action": "approve"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Action approve is not allowed while budget is draft"

    response = await client.post(url, json={"action": "approve_1"}, headers=admin_headers)
    assert response.json()["error"] == "Budget items with approved amounts are required"

    response = await client.post(
        url, json={"action": "approve_1", "budgetItems": [{"id": item_id, "approved1Amount": 4000}]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "approved1"
    assert data["approved1BudgetAmount"] == 4000

    response = await client.patch(
        f"/api/cashbook-budgets/{created['id']}", json={"name": "Renamed"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Approved budgets cannot be edited"

    response = await client.post(
        url, json={"action": "approve", "budgetItems": [{"id": item_id, "approvedAmount": 3500}]},
        headers=admin_headers,
    )
    assert response.json()["data"]["approvedBudgetAmount"] == 3500

    response = await client.post(url, json={"action": "accept"}, headers=admin_headers)
    data = response.json()["data"]
    assert data["status"] == "accepted"
    assert data["availableActions"] == []

    response = await client.delete(f"/api/cashbook-budgets/{created['id']}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_budget_action_needs_its_permission(client, admin_headers, create, make_user, site, head):
    headers = await make_user("incharge@example.com", role="site_incharge")
    me = (await client.get("/api/users/me", headers=headers)).json()["data"]
    employee = await create("/api/employees", {"name": "Incharge", "userId": me["id"]})
    await client.post(
        "/api/employee-assignments", json={"siteId": site["id"], "employeeIds": [employee["id"]]},
        headers=admin_headers,
    )
    created = await create("/api/cashbook-budgets", budget(site, head))

    response = await client.get(f"/api/cashbook-budgets/{created['id']}", headers=headers)
    assert response.json()["data"]["availableActions"] == []

    response = await client.post(
        f"/api/cashbook-budgets/{created['id']}/actions",
        json={"action": "approve_1", "budgetItems": [{"id": created["items"][0]["id"], "approved1Amount": 1}]},
        headers=headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Missing permission: APPROVE:CASHBOOK:BUDGETS:L1"
