import pytest
import pytest_asyncio

from siteledger.models.manpower import Manpower
from siteledger.models.payroll import PayrollConfig
from siteledger.services.payroll import (
    MODE_COMPANY,
    MODE_GOVT,
    PayrollService,
    SiteAttendance,
    WorkerAttendance,
    amount_in_words,
    mlwf_due,
    professional_tax,
)


def payroll_config(**overrides) -> PayrollConfig:
    values = dict(
        hours_per_day=8.0, govt_working_day_cap=26, hra_percent=5.0, pf_percent=12.0, esic_percent=1.75,
        pt_threshold1=7500.0, pt_amount1=175.0, pt_threshold2=10000.0, pt_amount2=200.0,
        feb_pt_amount=300.0, mlwf_amount=12.0, mlwf_months="02,06",
    )
    values.update(overrides)
    return PayrollConfig(**values)


def worker(**terms) -> Manpower:
    values = dict(
        first_name="Ramesh", last_name="Patil", wage=500.0, min_wage=400.0, hours=None,
        hra=True, pf=True, esic=False, pt=True, mlwf=True,
    )
    values.update(terms)
    return Manpower(**values)


def attendance(**sites: tuple) -> WorkerAttendance:
    record = WorkerAttendance()
    for key, (present, ot) in sites.items():
        record.sites[int(key.lstrip("s"))] = SiteAttendance(present=present, ot=ot)
    return record


def test_amount_in_words_uses_indian_system():
    assert amount_in_words(0) == "Rupees Zero Only"
    assert amount_in_words(9338) == "Rupees Nine Thousand Three Hundred Thirty Eight Only"
    assert amount_in_words(125000.5) == "Rupees One Lakh Twenty Five Thousand and Fifty Paise Only"
    assert amount_in_words(12345678) == (
        "Rupees One Crore Twenty Three Lakh Forty Five Thousand Six Hundred Seventy Eight Only"
    )


def test_professional_tax_slabs():
    config = payroll_config()
    assert professional_tax(7499, 5, config) == 0
    assert professional_tax(7500, 5, config) == 175
    assert professional_tax(9999.99, 5, config) == 175
    assert professional_tax(10000, 5, config) == 200
    assert professional_tax(10000, 2, config) == 300


def test_mlwf_months():
    config = payroll_config()
    assert mlwf_due(6, config)
    assert not mlwf_due(7, config)


def test_company_slip():
    details, totals = PayrollService.build_slip(
        worker(), attendance(s1=(20, 4)), MODE_COMPANY, 6, payroll_config()
    )
    [line] = details
    assert (line.wages, line.ot_amount, line.hra, line.gross_wages) == (10000, 250, 500, 10750)
    assert (line.pf, line.esic, line.pt, line.mlwf) == (1200, 0, 200, 12)
    assert line.total == 9338
    assert totals["total_deductions"] == 1412
    assert totals["net_wages"] == 9338
    assert totals["amount_in_words"] == "Rupees Nine Thousand Three Hundred Thirty Eight Only"


def test_govt_slip_caps_days_and_drops_overtime():
    details, totals = PayrollService.build_slip(
        worker(), attendance(s1=(20, 5), s2=(10, 3)), MODE_GOVT, 2, payroll_config()
    )
    first, second = details
    assert (first.site_id, first.working_days, first.ot, first.wage_rate) == (1, 20, 0, 400)
    assert second.working_days == 6
    assert (first.gross_wages, second.gross_wages) == (8400, 2520)
    # PT and MLWF land on the first site line only
    assert (first.pt, first.mlwf, second.pt, second.mlwf) == (300, 12, 0, 0)
    assert (first.total, second.total) == (7128, 2232)
    assert totals["total_working_days"] == 26
    assert totals["net_wages"] == 9360


def test_slip_without_attendance_is_skipped():
    details, totals = PayrollService.build_slip(
        worker(), attendance(s1=(0, 0)), MODE_COMPANY, 6, payroll_config()
    )
    assert details == []
    assert totals == {}


@pytest_asyncio.fixture
async def assigned_worker(client, admin_headers, create, site):
    supplier = await create("/api/manpower-suppliers", {"supplierName": "Labour Co"})
    manpower = await create("/api/manpower", {
        "firstName": "Suresh", "lastName": "Jadhav", "supplierId": supplier["id"], "wage": 600,
    })
    await create("/api/manpower-assignments", {
        "siteId": site["id"], "assignedAt": "2024-05-01", "items": [{"manpowerId": manpower["id"]}],
    })
    return manpower


async def mark(client, headers, site: dict, day: str, manpower: dict, **flags) -> None:
    response = await client.post("/api/attendances", json={
        "siteId": site["id"], "date": day, "attendances": [{"manpowerId": manpower["id"], **flags}],
    }, headers=headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_attendance_sheet_lists_assigned_workers(client, admin_headers, site, assigned_worker):
    await mark(client, admin_headers, site, "2024-05-02", assigned_worker, isIdle=True)
    response = await client.get(
        "/api/attendances", params={"siteId": site["id"], "date": "2024-05-02"}, headers=admin_headers
    )
    [row] = response.json()["data"]["rows"]
    assert row["manpowerName"] == "Suresh Jadhav"
    assert (row["isPresent"], row["isIdle"]) == (True, True)


@pytest.mark.asyncio
async def test_attendance_rejects_unassigned_worker(client, admin_headers, other_site, assigned_worker):
    response = await client.post("/api/attendances", json={
        "siteId": other_site["id"], "date": "2024-05-02",
        "attendances": [{"manpowerId": assigned_worker["id"], "isPresent": True}],
    }, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == f"Manpower not assigned to this site: [{assigned_worker['id']}]"


@pytest.mark.asyncio
async def test_generate_payslips_from_attendance(client, admin_headers, site, assigned_worker):
    for day in ("2024-05-02", "2024-05-03", "2024-05-04"):
        await mark(client, admin_headers, site, day, assigned_worker, isPresent=True)
    await mark(client, admin_headers, site, "2024-05-06", assigned_worker, isIdle=True, ot=2)

    for _ in range(2):
        response = await client.post(
            "/api/payslips", json={"period": "05-2024", "paySlipDate": "2024-06-01"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["slips"] == {"company": 1, "govt": 1}

    response = await client.get(
        "/api/payslips", params={"period": "05-2024", "govt": "false"}, headers=admin_headers
    )
    body = response.json()
    assert body["meta"]["total"] == 1
    [slip] = body["data"]
    assert slip["manpowerName"] == "Suresh Jadhav"
    assert (slip["totalWorkingDays"], slip["totalOt"], slip["totalIdle"]) == (4, 2, 1)
    assert slip["grossWages"] == 2550
    assert slip["netWages"] == 2550

    response = await client.get(
        "/api/payslips", params={"period": "05-2024", "govt": "true"}, headers=admin_headers
    )
    [govt_slip] = response.json()["data"]
    assert govt_slip["totalOt"] == 0
    assert govt_slip["grossWages"] == 2400


@pytest.mark.asyncio
async def test_generate_rejects_bad_period(client, admin_headers):
    response = await client.post("/api/payslips", json={"period": "2024-05"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid period. Expected MM-YYYY"


@pytest.mark.asyncio
async def test_payroll_config_thresholds(client, admin_headers):
    response = await client.get("/api/payroll-config", headers=admin_headers)
    assert response.json()["data"]["govtWorkingDayCap"] == 26

    response = await client.patch("/api/payroll-config", json={"ptThreshold2": 5000}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "ptThreshold2 must not be below ptThreshold1"
