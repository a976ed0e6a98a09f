"""Site Ledger Models"""

from siteledger.models.access import (
    User,
    Role,
    Permission,
    RolePermission,
    UserRole,
    UserPermission,
)
from siteledger.models.organisation import Company, Zone, Site, Department
from siteledger.models.masters import Unit, RentalCategory, CashbookHead, Item, Vendor
from siteledger.models.asset import AssetGroup, AssetCategory, Asset
from siteledger.models.employee import Employee, SiteEmployee, SiteEmployeeLog
from siteledger.models.manpower import (
    ManpowerSupplier,
    Manpower,
    ManpowerAssignment,
    ManpowerAssignmentLog,
    ManpowerTransfer,
    ManpowerTransferItem,
    Attendance,
)
from siteledger.models.payroll import PayrollConfig, PaySlip, PaySlipDetail
from siteledger.models.boq import Boq, BoqItem, BoqBill, BoqBillDetail
from siteledger.models.cashbook import (
    Cashbook,
    CashbookDetail,
    CashbookBudget,
    CashbookBudgetItem,
)
from siteledger.models.procurement import SiteBudget, PurchaseOrder, PurchaseOrderDetail
from siteledger.models.stock import (
    SiteItem,
    StockLedger,
    InwardDeliveryChallan,
    InwardDeliveryChallanDetail,
    OutwardDeliveryChallan,
    OutwardDeliveryChallanDetail,
)

__all__ = [
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "UserRole",
    "UserPermission",
    "Company",
    "Zone",
    "Site",
    "Department",
    "Unit",
    "RentalCategory",
    "CashbookHead",
    "Item",
    "Vendor",
    "AssetGroup",
    "AssetCategory",
    "Asset",
    "Employee",
    "SiteEmployee",
    "SiteEmployeeLog",
    "ManpowerSupplier",
    "Manpower",
    "ManpowerAssignment",
    "ManpowerAssignmentLog",
    "ManpowerTransfer",
    "ManpowerTransferItem",
    "Attendance",
    "PayrollConfig",
    "PaySlip",
    "PaySlipDetail",
    "Boq",
    "BoqItem",
    "BoqBill",
    "BoqBillDetail",
    "Cashbook",
    "CashbookDetail",
    "CashbookBudget",
    "CashbookBudgetItem",
    "SiteBudget",
    "PurchaseOrder",
    "PurchaseOrderDetail",
    "SiteItem",
    "StockLedger",
    "InwardDeliveryChallan",
    "InwardDeliveryChallanDetail",
    "OutwardDeliveryChallan",
    "OutwardDeliveryChallanDetail",
]
