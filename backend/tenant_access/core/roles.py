# tenant_access/core/roles.py

import enum


class Role(str, enum.Enum):
    OWNER = "OWNER"              # creator / ultimate authority
    ADMIN = "ADMIN"              # full access inside the tenant
    MANAGER = "MANAGER"          # supervision
    EMPLOYEE = "EMPLOYEE"        # operational
    BPO = "BPO"                  # outsourced finance partner
    CONSULTANT = "CONSULTANT"
    VIEWER = "VIEWER"            # read-only
    SUPER_ADMIN = "SUPER_ADMIN"  # platform operator


class Permission(str, enum.Enum):
    VIEW_DASHBOARD = "VIEW_DASHBOARD"
    VIEW_TRANSACTIONS = "VIEW_TRANSACTIONS"
    EDIT_TRANSACTIONS = "EDIT_TRANSACTIONS"
    VIEW_GOALS = "VIEW_GOALS"
    VIEW_COST_CENTERS = "VIEW_COST_CENTERS"
    VIEW_ASSETS = "VIEW_ASSETS"
    VIEW_REPORTS = "VIEW_REPORTS"
    USE_AI = "USE_AI"
    VIEW_SETTINGS = "VIEW_SETTINGS"
    MANAGE_USERS = "MANAGE_USERS"
    VIEW_CRM = "VIEW_CRM"
    VIEW_TASKS = "VIEW_TASKS"
    VIEW_LEADS = "VIEW_LEADS"
    MANAGE_COMPANIES = "MANAGE_COMPANIES"


def normalize_role(value: "Role | str") -> Role:
    if isinstance(value, Role):
        return value
    return Role((value or "").strip().upper())


def normalize_permission(value: "Permission | str") -> Permission:
    if isinstance(value, Permission):
        return value
    return Permission((value or "").strip().upper())
