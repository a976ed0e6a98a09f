"""Cashbook budget approval chain

draft -> approved1 -> approved -> accepted. Each step needs its own
permission and only the next step in the chain is allowed.
"""

import logging
from siteledger.core.errors import BusinessRuleError
from siteledger.core.permissions import (
    ACCEPT_CASHBOOK_BUDGETS,
    APPROVE_CASHBOOK_BUDGETS_L1,
    APPROVE_CASHBOOK_BUDGETS_L2,
)
from siteledger.database import utcnow
from siteledger.models.cashbook import CashbookBudget
from siteledger.services.calc import round2

logger = logging.getLogger(__name__)

ACTION_APPROVE_1 = "approve_1"
ACTION_APPROVE = "approve"
ACTION_ACCEPT = "accept"

ACTION_PERMISSIONS = {
    ACTION_APPROVE_1: APPROVE_CASHBOOK_BUDGETS_L1,
    ACTION_APPROVE: APPROVE_CASHBOOK_BUDGETS_L2,
    ACTION_ACCEPT: ACCEPT_CASHBOOK_BUDGETS,
}


def budget_status(budget: CashbookBudget) -> str:
    if budget.accepted_by_id:
        return "accepted"
    if budget.approved_by_id:
        return "approved"
    if budget.approved1_by_id:
        return "approved1"
    return "draft"


def next_action(budget: CashbookBudget) -> str | None:
    return {
        "draft": ACTION_APPROVE_1,
        "approved1": ACTION_APPROVE,
        "approved": ACTION_ACCEPT,
    }.get(budget_status(budget))


def available_actions(budget: CashbookBudget, permissions: set[str] | None = None) -> list[str]:
    """Actions the state chain allows now, limited to ``permissions`` when given"""
    action = next_action(budget)
    if action is None:
        return []
    if permissions is not None and ACTION_PERMISSIONS[action] not in permissions:
        return []
    return [action]


def is_locked(budget: CashbookBudget) -> bool:
    """Budgets cannot be edited or deleted once the first approval is in"""
    return budget.approved1_by_id is not None


class BudgetWorkflow:
    """Applies approval chain actions to a loaded budget"""

    @staticmethod
    def _amounts(budget: CashbookBudget, entries, field: str) -> dict[int, float]:
        if not entries:
            raise BusinessRuleError("Budget items with approved amounts are required")
        item_ids = {item.id for item in budget.items}
        amounts = {}
        for entry in entries:
            if entry.id not in item_ids:
                raise BusinessRuleError(f"Budget item {entry.id} does not belong to this budget")
            amounts[entry.id] = round2(getattr(entry, field))
        return amounts

    @staticmethod
    def apply(budget: CashbookBudget, action: str, entries, user_id: int, permissions: set[str]) -> None:
        permission = ACTION_PERMISSIONS.get(action)
        if permission is None:
            raise BusinessRuleError("Invalid action")
        if permission not in permissions:
            raise BusinessRuleError(f"Missing permission: {permission}", status_code=403)
        if next_action(budget) != action:
            raise BusinessRuleError(
                f"Action {action} is not allowed while budget is {budget_status(budget)}"
            )

        now = utcnow()
        if action == ACTION_APPROVE_1:
            amounts = BudgetWorkflow._amounts(budget, entries, "approved1_amount")
            for item in budget.items:
                if item.id in amounts:
                    item.approved1_amount = amounts[item.id]
            budget.approved1_budget_amount = round2(sum(item.approved1_amount or 0 for item in budget.items))
            budget.approved1_by_id = user_id
            budget.approved1_at = now
        elif action == ACTION_APPROVE:
            amounts = BudgetWorkflow._amounts(budget, entries, "approved_amount")
            for item in budget.items:
                if item.id in amounts:
                    item.approved_amount = amounts[item.id]
            budget.approved_budget_amount = round2(sum(item.approved_amount or 0 for item in budget.items))
            budget.approved_by_id = user_id
            budget.approved_at = now
        else:
            budget.accepted_by_id = user_id
            budget.accepted_at = now

        budget.total_budget = round2(sum(item.amount or 0 for item in budget.items))
        logger.info(f"Cashbook budget {budget.id} {action} by user {user_id}")
