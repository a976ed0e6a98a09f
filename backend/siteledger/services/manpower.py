"""Manpower Services

Site assignment of workers and the transfer acceptance transaction. Callers
own the session and commit once the whole operation succeeded.
"""

import logging
from datetime import date
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from siteledger.core.errors import BusinessRuleError
from siteledger.database import utcnow
from siteledger.models.manpower import (
    WAGE_TERM_FIELDS,
    Manpower,
    ManpowerAssignment,
    ManpowerAssignmentLog,
    ManpowerTransfer,
    ManpowerTransferItem,
)

logger = logging.getLogger(__name__)

TRANSFER_PENDING = "Pending"
TRANSFER_ACCEPTED = "Accepted"
TRANSFER_REJECTED = "Rejected"


class ManpowerService:
    """Service for worker assignment operations"""

    @staticmethod
    def apply_wage_terms(manpower: Manpower, terms) -> None:
        """Copy the wage terms that are set onto the worker"""
        for name in WAGE_TERM_FIELDS:
            value = terms.get(name) if isinstance(terms, dict) else getattr(terms, name, None)
            if value is not None:
                setattr(manpower, name, value)

    @staticmethod
    async def current_assignment(db: AsyncSession, manpower_id: int) -> ManpowerAssignment | None:
        result = await db.execute(
            select(ManpowerAssignment).where(ManpowerAssignment.manpower_id == manpower_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def assign(
        db: AsyncSession,
        manpower: Manpower,
        site_id: int,
        assigned_at: date,
        user_id: int | None,
    ) -> ManpowerAssignment:
        if await ManpowerService.current_assignment(db, manpower.id) is not None:
            raise BusinessRuleError(
                f"{manpower.full_name} is already assigned to a site"
            )
        assignment = ManpowerAssignment(
            manpower_id=manpower.id,
            site_id=site_id,
            assigned_at=assigned_at,
            assigned_by_id=user_id,
        )
        db.add(assignment)
        db.add(ManpowerAssignmentLog(
            manpower_id=manpower.id, action="ASSIGN", site_id=site_id, user_id=user_id,
        ))
        manpower.is_assigned = True
        manpower.current_site_id = site_id
        return assignment

    @staticmethod
    async def unassign(db: AsyncSession, manpower: Manpower, user_id: int | None) -> None:
        assignment = await ManpowerService.current_assignment(db, manpower.id)
        if assignment is None:
            raise BusinessRuleError(f"{manpower.full_name} is not assigned to any site")
        db.add(ManpowerAssignmentLog(
            manpower_id=manpower.id, action="UNASSIGN", from_site_id=assignment.site_id,
            user_id=user_id,
        ))
        await db.delete(assignment)
        manpower.is_assigned = False
        manpower.current_site_id = None

    @staticmethod
    async def pending_transfer_ids(db: AsyncSession, manpower_ids: list[int]) -> set[int]:
        """Workers already listed on a pending transfer"""
        result = await db.execute(
            select(ManpowerTransferItem.manpower_id)
            .join(ManpowerTransfer, ManpowerTransfer.id == ManpowerTransferItem.transfer_id)
            .where(
                ManpowerTransfer.status == TRANSFER_PENDING,
                ManpowerTransferItem.manpower_id.in_(manpower_ids),
            )
        )
        return {row[0] for row in result.all()}

    @staticmethod
    async def accept_transfer(db: AsyncSession, transfer: ManpowerTransfer, user_id: int) -> None:
        """Move every worker of the transfer to the destination site.

        For each line the current assignment is removed, a TRANSFER log row
        is written, a new assignment dated on the challan date is created at
        the destination and the line's wage terms are copied to the worker.
        """
        if transfer.status != TRANSFER_PENDING:
            raise BusinessRuleError("Only pending transfers can be updated")

        for item in transfer.items:
            manpower = await db.get(Manpower, item.manpower_id)
            current = await ManpowerService.current_assignment(db, item.manpower_id)
            if current is None or current.site_id != transfer.from_site_id:
                raise BusinessRuleError(
                    f"Manpower {item.manpower_id} is no longer assigned to the source site"
                )

            await db.delete(current)
            await db.flush()

            db.add(ManpowerAssignmentLog(
                manpower_id=item.manpower_id,
                action="TRANSFER",
                site_id=transfer.to_site_id,
                from_site_id=transfer.from_site_id,
                transfer_id=transfer.id,
                user_id=user_id,
            ))
            db.add(ManpowerAssignment(
                manpower_id=item.manpower_id,
                site_id=transfer.to_site_id,
                assigned_at=transfer.challan_date,
                assigned_by_id=user_id,
            ))
            ManpowerService.apply_wage_terms(manpower, item)
            manpower.is_assigned = True
            manpower.current_site_id = transfer.to_site_id

        transfer.status = TRANSFER_ACCEPTED
        transfer.approved_by_id = user_id
        transfer.approved_at = utcnow()
        logger.info(
            f"Transfer {transfer.challan_no} accepted: {len(transfer.items)} workers "
            f"moved from site {transfer.from_site_id} to site {transfer.to_site_id}"
        )

    @staticmethod
    def reject_transfer(transfer: ManpowerTransfer, user_id: int) -> None:
        if transfer.status != TRANSFER_PENDING:
            raise BusinessRuleError("Only pending transfers can be updated")
        transfer.status = TRANSFER_REJECTED
        transfer.approved_by_id = user_id
        transfer.approved_at = utcnow()
