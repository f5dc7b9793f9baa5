from .catalog import (
    CapabilityDefinition,
    RightDefinition,
    GranteeTemplate,
    Plan,
    PlanEntitlement,
    Bundle,
    BundleItem,
    PlanBundle,
)
from .tenant import Tenant
from .role import Role
from .tenant_access import TenantEntitlementGrant, TenantRight, GranteeAssignment
from .assignment_history import AssignmentHistory

__all__ = [
    "CapabilityDefinition",
    "RightDefinition",
    "GranteeTemplate",
    "Plan",
    "PlanEntitlement",
    "Bundle",
    "BundleItem",
    "PlanBundle",
    "Tenant",
    "Role",
    "TenantEntitlementGrant",
    "TenantRight",
    "GranteeAssignment",
    "AssignmentHistory",
]
