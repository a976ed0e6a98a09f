"""Permission catalogue and API access rules

Permissions are ``VERB:RESOURCE`` strings. Each API path prefix maps HTTP
methods to the permissions a caller must hold (all of them). Paths without a
rule only require an authenticated user.
"""

from dataclasses import dataclass, field

CRUD_VERBS = ("READ", "CREATE", "EDIT", "DELETE")

METHOD_VERBS = {
    "GET": "READ",
    "POST": "CREATE",
    "PUT": "EDIT",
    "PATCH": "EDIT",
    "DELETE": "DELETE",
}

# resource key -> API path prefix
RESOURCES: dict[str, str] = {
    "USERS": "/api/users",
    "ROLES": "/api/access-control/roles",
    "PERMISSIONS": "/api/access-control/permissions",
    "USER:PERMISSIONS": "/api/access-control/users",
    "COMPANIES": "/api/companies",
    "SITES": "/api/sites",
    "DEPARTMENTS": "/api/departments",
    "ZONES": "/api/zones",
    "RENTAL:CATEGORIES": "/api/rental-categories",
    "UNITS": "/api/units",
    "CASHBOOK:HEADS": "/api/cashbook-heads",
    "ITEMS": "/api/items",
    "VENDORS": "/api/vendors",
    "ASSET:GROUPS": "/api/asset-groups",
    "ASSET:CATEGORIES": "/api/asset-categories",
    "ASSETS": "/api/assets",
    "EMPLOYEES": "/api/employees",
    "EMPLOYEE:ASSIGNMENTS": "/api/employee-assignments",
    "MANPOWER:SUPPLIERS": "/api/manpower-suppliers",
    "MANPOWER": "/api/manpower",
    "MANPOWER:ASSIGNMENTS": "/api/manpower-assignments",
    "MANPOWER:TRANSFERS": "/api/manpower-transfers",
    "ATTENDANCES": "/api/attendances",
    "PAYROLL:CONFIG": "/api/payroll-config",
    "PAYSLIPS": "/api/payslips",
    "BOQS": "/api/boqs",
    "BOQ:BILLS": "/api/boq-bills",
    "CASHBOOKS": "/api/cashbooks",
    "CASHBOOK:BUDGETS": "/api/cashbook-budgets",
    "SITE:BUDGETS": "/api/site-budgets",
    "PURCHASE:ORDERS": "/api/purchase-orders",
    "STOCKS": "/api/stocks",
    "INWARD:DELIVERY:CHALLAN": "/api/inward-delivery-challans",
    "OUTWARD:DELIVERY:CHALLAN": "/api/outward-delivery-challans",
    "REPORTS": "/api/reports",
}

APPROVE_CASHBOOK_BUDGETS_L1 = "APPROVE:CASHBOOK:BUDGETS:L1"
APPROVE_CASHBOOK_BUDGETS_L2 = "APPROVE:CASHBOOK:BUDGETS:L2"
ACCEPT_CASHBOOK_BUDGETS = "ACCEPT:CASHBOOK:BUDGETS"
APPROVE_OUTWARD_DELIVERY_CHALLAN = "APPROVE:OUTWARD:DELIVERY:CHALLAN"
ACCEPT_OUTWARD_DELIVERY_CHALLAN = "ACCEPT:OUTWARD:DELIVERY:CHALLAN"
APPROVE_MANPOWER_TRANSFERS = "APPROVE:MANPOWER:TRANSFERS"
EDIT_OUTWARD_DELIVERY_CHALLAN = "EDIT:OUTWARD:DELIVERY:CHALLAN"

WORKFLOW_PERMISSIONS = [
    APPROVE_CASHBOOK_BUDGETS_L1,
    APPROVE_CASHBOOK_BUDGETS_L2,
    ACCEPT_CASHBOOK_BUDGETS,
    APPROVE_OUTWARD_DELIVERY_CHALLAN,
    ACCEPT_OUTWARD_DELIVERY_CHALLAN,
    APPROVE_MANPOWER_TRANSFERS,
]


def permission_name(verb: str, resource: str) -> str:
    return f"{verb}:{resource}"


ALL_PERMISSIONS: list[str] = [
    permission_name(verb, resource) for resource in RESOURCES for verb in CRUD_VERBS
] + WORKFLOW_PERMISSIONS


@dataclass(frozen=True)
class AccessRule:
    """Permissions required per HTTP method below a path pattern.

    Pattern segments equal to ``*`` match any single path segment.
    """

    pattern: str
    methods: dict[str, list[str]] = field(default_factory=dict)

    @property
    def segments(self) -> list[str]:
        return [s for s in self.pattern.split("/") if s]

    def matches(self, path: str) -> bool:
        rule_segments = self.segments
        path_segments = [s for s in path.split("/") if s]
        if len(rule_segments) > len(path_segments):
            return False
        return all(r == "*" or r == p for r, p in zip(rule_segments, path_segments))


def _crud_rule(resource: str, prefix: str) -> AccessRule:
    return AccessRule(
        prefix,
        {method: [permission_name(verb, resource)] for method, verb in METHOD_VERBS.items()},
    )


API_ACCESS_RULES: list[AccessRule] = [_crud_rule(res, prefix) for res, prefix in RESOURCES.items()] + [
    # Workflow endpoints check their own permissions per action
    AccessRule("/api/cashbook-budgets/*/actions", {"POST": []}),
    AccessRule("/api/outward-delivery-challans/*", {"PATCH": []}),
    AccessRule("/api/manpower-transfers/*", {"PATCH": [APPROVE_MANPOWER_TRANSFERS]}),
    # Users may always read their own profile
    AccessRule("/api/users/me", {"GET": []}),
    AccessRule("/api/sites/options", {"GET": []}),
]


def find_access_rule(path: str, method: str) -> AccessRule | None:
    """Most specific rule matching the path that covers the method"""
    candidates = [
        rule
        for rule in API_ACCESS_RULES
        if rule.matches(path) and method.upper() in rule.methods
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda rule: len(rule.segments))


def required_permissions(path: str, method: str) -> list[str] | None:
    """Permissions required for a request, or None when no rule applies"""
    rule = find_access_rule(path, method)
    if rule is None:
        return None
    return rule.methods[method.upper()]


# Built-in roles and their permission sets
ADMIN_ROLE = "admin"
SITE_INCHARGE_ROLE = "site_incharge"
USER_ROLE = "user"

_SITE_INCHARGE_RESOURCES = [
    "SITES",
    "BOQS",
    "BOQ:BILLS",
    "CASHBOOKS",
    "CASHBOOK:BUDGETS",
    "CASHBOOK:HEADS",
    "MANPOWER",
    "MANPOWER:ASSIGNMENTS",
    "MANPOWER:TRANSFERS",
    "ATTENDANCES",
    "STOCKS",
    "INWARD:DELIVERY:CHALLAN",
    "OUTWARD:DELIVERY:CHALLAN",
    "ITEMS",
    "UNITS",
    "REPORTS",
]

ROLE_DEFINITIONS: dict[str, dict] = {
    ADMIN_ROLE: {
        "description": "Full access to every resource",
        "permissions": ALL_PERMISSIONS,
    },
    SITE_INCHARGE_ROLE: {
        "description": "Runs day to day operations of assigned sites",
        "permissions": [
            permission_name("READ", res) for res in _SITE_INCHARGE_RESOURCES
        ]
        + [
            permission_name(verb, res)
            for res in ("CASHBOOKS", "CASHBOOK:BUDGETS", "ATTENDANCES", "MANPOWER:TRANSFERS",
                        "INWARD:DELIVERY:CHALLAN", "OUTWARD:DELIVERY:CHALLAN")
            for verb in ("CREATE", "EDIT")
        ]
        + [ACCEPT_CASHBOOK_BUDGETS, ACCEPT_OUTWARD_DELIVERY_CHALLAN],
    },
    USER_ROLE: {
        "description": "Read only access to master data",
        "permissions": [
            permission_name("READ", res)
            for res in ("SITES", "COMPANIES", "ITEMS", "UNITS", "VENDORS", "BOQS")
        ],
    },
}
