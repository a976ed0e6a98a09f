import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def crew(create, site):
    supplier = await create("/api/manpower-suppliers", {"supplierName": "Labour Co"})
    workers = [
        await create("/api/manpower", {
            "firstName": first, "lastName": "Pawar", "supplierId": supplier["id"], "wage": 550,
        })
        for first in ("Anil", "Vijay")
    ]
    await create("/api/manpower-assignments", {
        "siteId": site["id"], "items": [{"manpowerId": w["id"]} for w in workers],
    })
    return workers


def transfer_payload(source: dict, target: dict, workers: list[dict], **terms) -> dict:
    return {
        "challanDate": "2024-05-15",
        "fromSiteId": source["id"],
        "toSiteId": target["id"],
        "items": [{"manpowerId": w["id"], **terms} for w in workers],
    }


@pytest.mark.asyncio
async def test_assigning_twice_is_rejected(client, admin_headers, site, crew):
    response = await client.post("/api/manpower-assignments", json={
        "siteId": site["id"], "items": [{"manpowerId": crew[0]["id"]}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Anil Pawar is already assigned to a site"


@pytest.mark.asyncio
async def test_accepted_transfer_moves_workers(client, admin_headers, create, site, other_site, crew):
    transfer = await create("/api/manpower-transfers", transfer_payload(site, other_site, crew, wage=650))
    assert transfer["challanNo"] == "MPT-00001"
    assert transfer["status"] == "Pending"

    response = await client.post(
        "/api/manpower-transfers", json=transfer_payload(site, other_site, crew[:1]), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == f"Manpower already in a pending transfer: [{crew[0]['id']}]"

    response = await client.patch(
        f"/api/manpower-transfers/{transfer['id']}", json={"status": "Accepted"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "Accepted"

    response = await client.get("/api/manpower-assignments", params={"siteId": other_site["id"]}, headers=admin_headers)
    moved = response.json()["data"]
    assert {a["manpowerId"] for a in moved} == {w["id"] for w in crew}
    assert {a["assignedAt"] for a in moved} == {"2024-05-15"}
    assert {a["manpower"]["wage"] for a in moved} == {650}
    assert {a["manpower"]["currentSiteId"] for a in moved} == {other_site["id"]}

    response = await client.patch(
        f"/api/manpower-transfers/{transfer['id']}", json={"status": "Rejected"}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Only pending transfers can be updated"


@pytest.mark.asyncio
async def test_transfer_source_must_hold_workers(client, admin_headers, site, other_site, crew):
    response = await client.post(
        "/api/manpower-transfers", json=transfer_payload(other_site, site, crew[:1]), headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == f"Manpower {crew[0]['id']} is not assigned to the from site"


@pytest.mark.asyncio
async def test_rejected_transfer_leaves_workers(client, admin_headers, create, site, other_site, crew):
    transfer = await create("/api/manpower-transfers", transfer_payload(site, other_site, crew))
    response = await client.patch(
        f"/api/manpower-transfers/{transfer['id']}", json={"status": "Rejected", "remarks": "Not needed"},
        headers=admin_headers,
    )
    assert response.json()["data"]["remarks"] == "Not needed"

    response = await client.get("/api/manpower-assignments", params={"siteId": site["id"]}, headers=admin_headers)
    assert len(response.json()["data"]) == 2


@pytest.mark.asyncio
async def test_transfer_approval_needs_permission(client, admin_headers, create, make_user, site, other_site, crew):
    transfer = await create("/api/manpower-transfers", transfer_payload(site, other_site, crew))
    headers = await make_user("incharge@example.com", role="site_incharge")
    response = await client.patch(
        f"/api/manpower-transfers/{transfer['id']}", json={"status": "Accepted"}, headers=headers
    )
    assert response.status_code == 403
    assert response.json()["error"] == "Missing permission: APPROVE:MANPOWER:TRANSFERS"


@pytest.mark.asyncio
async def test_unassign_and_delete_worker(client, admin_headers, crew):
    worker = crew[0]
    response = await client.delete(f"/api/manpower/{worker['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Unassign the worker before deleting"

    response = await client.delete(f"/api/manpower-assignments/{worker['id']}", headers=admin_headers)
    assert response.status_code == 204
    response = await client.delete(f"/api/manpower/{worker['id']}", headers=admin_headers)
    assert response.status_code == 204
