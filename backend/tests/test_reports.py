from io import BytesIO

import pytest
from openpyxl import load_workbook

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def sheet_of(content: bytes):
    return load_workbook(BytesIO(content)).active


@pytest.mark.asyncio
async def test_boq_bills_excel(client, admin_headers, create, site, unit):
    boq = await create("/api/boqs", {
        "boqNo": "BOQ-9", "siteId": site["id"],
        "items": [{"activityId": "2.1", "description": "Brickwork", "unitId": unit["id"], "qty": 50, "rate": 20}],
    })
    await create("/api/boq-bills", {
        "boqId": boq["id"], "billNumber": "RA-1", "billName": "RA Bill 1", "billDate": "2024-04-30",
        "details": [{"boqItemId": boq["items"][0]["id"], "qty": 5}],
    })

    response = await client.get("/api/reports/boq-bills-excel", params={"boqId": boq["id"]}, headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == XLSX
    assert 'filename="boq-bills-BOQ-9.xlsx"' in response.headers["content-disposition"]

    ws = sheet_of(response.content)
    assert ws.cell(row=1, column=1).value == "BOQ Bills - BOQ-9"
    assert [ws.cell(row=3, column=c).value for c in range(1, 4)] == ["Activity", "Description", "Unit"]
    assert ws.cell(row=4, column=2).value == "Brickwork"


@pytest.mark.asyncio
async def test_report_for_missing_boq(client, admin_headers):
    response = await client.get("/api/reports/boq-bills", params={"boqId": 404}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cashbook_budget_downloads(client, admin_headers, create, site, head):
    budget = await create("/api/cashbook-budgets", {
        "name": "May cash", "month": "05-2024", "siteId": site["id"],
        "items": [{"cashbookHeadId": head["id"], "description": "Diesel", "amount": 2500}],
    })

    response = await client.get(
        "/api/reports/cashbook-budget-excel", params={"budgetId": budget["id"]}, headers=admin_headers
    )
    assert response.status_code == 200
    ws = sheet_of(response.content)
    assert ws.cell(row=1, column=1).value == "Cashbook Budget 05-2024 - Riverside Tower"
    assert ws.cell(row=4, column=2).value == "Site Expenses"
    assert ws.cell(row=4, column=4).value == 2500
    assert ws.cell(row=5, column=2).value == "Total"

    response = await client.get(
        "/api/reports/cashbook-budget-pdf", params={"budgetId": budget["id"]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")

    response = await client.get("/api/reports/cashbook-budget-pdf", params={"budgetId": 999}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Cashbook budget not found"


@pytest.mark.asyncio
async def test_wage_sheet_period_is_validated(client, admin_headers):
    for path in ("/api/reports/wage-sheet", "/api/reports/wage-sheet-excel"):
        response = await client.get(path, params={"period": "5-2024"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid period. Expected MM-YYYY"


@pytest.mark.asyncio
async def test_empty_wage_sheet(client, admin_headers):
    response = await client.get("/api/reports/wage-sheet", params={"period": "01-2024"}, headers=admin_headers)
    data = response.json()["data"]
    assert data["rows"] == []
    assert data["totals"]["total"] == 0

    response = await client.get(
        "/api/reports/wage-sheet-excel", params={"period": "01-2024", "govt": "true"}, headers=admin_headers
    )
    assert 'filename="wage-sheet-01-2024-govt.xlsx"' in response.headers["content-disposition"]
    assert sheet_of(response.content).cell(row=1, column=1).value == "Wage Sheet 01-2024 (Govt)"


@pytest.mark.asyncio
async def test_supplier_template_upload(client, admin_headers):
    response = await client.get("/api/manpower-suppliers/template", headers=admin_headers)
    template = response.content

    files = {"file": ("suppliers.xlsx", template, XLSX)}
    response = await client.post("/api/manpower-suppliers/upload", files=files, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"created": 1}

    response = await client.post("/api/manpower-suppliers/upload", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == [{"row": 2, "message": "Supplier 'ABC Labour Contractors' already exists"}]


@pytest.mark.asyncio
async def test_upload_needs_xlsx(client, admin_headers):
    files = {"file": ("suppliers.csv", b"Supplier Name\nX\n", "text/csv")}
    response = await client.post("/api/manpower-suppliers/upload", files=files, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Upload an .xlsx file"
