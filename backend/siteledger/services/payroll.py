"""Payroll Services

Pay slip generation from attendance. Two modes exist: ``company`` pays the
worker's agreed wage for every present day, ``govt`` pays the minimum wage
with working days capped by the payroll configuration and no overtime.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.models.manpower import Attendance, Manpower
from siteledger.models.payroll import PayrollConfig, PaySlip, PaySlipDetail
from siteledger.services.calc import month_bounds, parse_month, round2

logger = logging.getLogger(__name__)

MODE_COMPANY = "company"
MODE_GOVT = "govt"
PAYROLL_MODES = (MODE_COMPANY, MODE_GOVT)

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen",
    "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _two_digits(n: int) -> str:
    if n < 20:
        return _ONES[n]
    return f"{_TENS[n // 10]} {_ONES[n % 10]}".strip()


def _three_digits(n: int) -> str:
    hundred, rest = divmod(n, 100)
    parts = []
    if hundred:
        parts.append(f"{_ONES[hundred]} Hundred")
    if rest:
        parts.append(_two_digits(rest))
    return " ".join(parts)


def number_to_words(n: int) -> str:
    """Integer in words using the Indian system (thousand, lakh, crore)"""
    if n == 0:
        return "Zero"
    parts = []
    crore, n = divmod(n, 10_000_000)
    lakh, n = divmod(n, 100_000)
    thousand, n = divmod(n, 1000)
    if crore:
        parts.append(f"{number_to_words(crore)} Crore")
    if lakh:
        parts.append(f"{_two_digits(lakh)} Lakh")
    if thousand:
        parts.append(f"{_two_digits(thousand)} Thousand")
    if n:
        parts.append(_three_digits(n))
    return " ".join(parts)


def amount_in_words(amount: float) -> str:
    rupees = int(round2(amount))
    paise = int(round((round2(amount) - rupees) * 100))
    words = f"Rupees {number_to_words(rupees)}"
    if paise:
        words += f" and {number_to_words(paise)} Paise"
    return words + " Only"


def professional_tax(gross: float, month: int, config: PayrollConfig) -> float:
    """Monthly PT slab; the top slab is charged at the February amount in February"""
    if gross < config.pt_threshold1:
        return 0.0
    if gross < config.pt_threshold2:
        return config.pt_amount1
    return config.feb_pt_amount if month == 2 else config.pt_amount2


def mlwf_due(month: int, config: PayrollConfig) -> bool:
    months = {int(m) for m in config.mlwf_months.split(",") if m.strip().isdigit()}
    return month in months


@dataclass
class SiteAttendance:
    present: float = 0.0
    idle: float = 0.0
    ot: float = 0.0


@dataclass
class WorkerAttendance:
    sites: dict[int, SiteAttendance] = field(default_factory=lambda: defaultdict(SiteAttendance))


class PayrollService:
    """Service for pay slip generation"""

    @staticmethod
    async def get_config(db: AsyncSession) -> PayrollConfig:
        """The single configuration row, created with defaults when missing"""
        result = await db.execute(select(PayrollConfig).order_by(PayrollConfig.id).limit(1))
        config = result.scalar_one_or_none()
        if config is None:
            config = PayrollConfig()
            db.add(config)
            await db.flush()
        return config

    @staticmethod
    async def collect_attendance(db: AsyncSession, period: str) -> dict[int, WorkerAttendance]:
        start, end = month_bounds(period)
        result = await db.execute(
            select(Attendance)
            .where(Attendance.date >= start, Attendance.date <= end)
            .order_by(Attendance.manpower_id, Attendance.site_id, Attendance.date)
        )
        workers: dict[int, WorkerAttendance] = defaultdict(WorkerAttendance)
        for row in result.scalars().all():
            site = workers[row.manpower_id].sites[row.site_id]
            if row.is_present:
                site.present += 1
            if row.is_idle:
                site.idle += 1
            site.ot += row.ot or 0
        return workers

    @staticmethod
    def build_slip(
        manpower: Manpower,
        attendance: WorkerAttendance,
        mode: str,
        month: int,
        config: PayrollConfig,
    ) -> tuple[list[PaySlipDetail], dict]:
        """Compute the per-site detail lines and slip totals for one worker"""
        govt = mode == MODE_GOVT
        rate = (manpower.min_wage or manpower.wage) if govt else manpower.wage
        rate = rate or 0.0
        hours_per_day = manpower.hours or config.hours_per_day
        remaining_days = float(config.govt_working_day_cap)

        details: list[PaySlipDetail] = []
        for site_id in sorted(attendance.sites):
            site = attendance.sites[site_id]
            days = site.present
            ot = 0.0 if govt else site.ot
            if govt:
                days = min(days, remaining_days)
                remaining_days -= days
            if days <= 0 and ot <= 0:
                continue

            wages = round2(days * rate)
            ot_amount = round2(ot * rate / hours_per_day) if hours_per_day else 0.0
            hra = round2(wages * config.hra_percent / 100) if manpower.hra else 0.0
            gross = round2(wages + ot_amount + hra)
            pf = round2(wages * config.pf_percent / 100) if manpower.pf else 0.0
            esic = round2(gross * config.esic_percent / 100) if manpower.esic else 0.0

            details.append(PaySlipDetail(
                site_id=site_id,
                working_days=days,
                ot=ot,
                idle=site.idle,
                wage_rate=rate,
                wages=wages,
                ot_amount=ot_amount,
                hra=hra,
                gross_wages=gross,
                pf=pf,
                esic=esic,
                pt=0.0,
                mlwf=0.0,
                total=round2(gross - pf - esic),
            ))

        if not details:
            return [], {}

        gross_total = round2(sum(d.gross_wages for d in details))
        pt = professional_tax(gross_total, month, config) if manpower.pt else 0.0
        mlwf = config.mlwf_amount if manpower.mlwf and mlwf_due(month, config) else 0.0

        # PT and MLWF are charged once per slip, on the first site line
        first = details[0]
        first.pt = pt
        first.mlwf = mlwf
        first.total = round2(first.total - pt - mlwf)

        deductions = round2(sum(d.pf + d.esic + d.pt + d.mlwf for d in details))
        net = round2(sum(d.total for d in details))
        totals = {
            "total_working_days": sum(d.working_days for d in details),
            "total_ot": sum(d.ot for d in details),
            "total_idle": sum(d.idle for d in details),
            "gross_wages": gross_total,
            "total_deductions": deductions,
            "net_wages": net,
            "amount_in_words": amount_in_words(net),
        }
        return details, totals

    @staticmethod
    async def generate(
        db: AsyncSession,
        period: str,
        pay_slip_date: date,
        modes: list[str] | None = None,
    ) -> dict[str, int]:
        """Generate (or regenerate) the pay slips of a period; returns slips per mode"""
        month, _ = parse_month(period)
        config = await PayrollService.get_config(db)
        attendance = await PayrollService.collect_attendance(db, period)

        workers = {}
        if attendance:
            result = await db.execute(select(Manpower).where(Manpower.id.in_(list(attendance))))
            workers = {m.id: m for m in result.scalars().all()}

        summary: dict[str, int] = {}
        for mode in modes or list(PAYROLL_MODES):
            govt = mode == MODE_GOVT
            await db.execute(
                delete(PaySlip).where(PaySlip.period == period, PaySlip.govt == govt)
            )

            created = 0
            for manpower_id in sorted(attendance):
                manpower = workers.get(manpower_id)
                if manpower is None:
                    continue
                details, totals = PayrollService.build_slip(
                    manpower, attendance[manpower_id], mode, month, config
                )
                if not details:
                    continue
                slip = PaySlip(
                    manpower_id=manpower_id,
                    supplier_id=manpower.supplier_id,
                    period=period,
                    govt=govt,
                    pay_slip_date=pay_slip_date,
                    details=details,
                    **totals,
                )
                db.add(slip)
                created += 1
            summary[mode] = created

        await db.commit()
        logger.info(f"Payroll generated for {period}: {summary}")
        return summary
