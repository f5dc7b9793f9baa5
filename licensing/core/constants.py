# licensing/core/constants.py
from enum import Enum


class Permission(Enum):
    # Catalog authoring (platform operators only)
    MANAGE_CATALOG = "manage_catalog"

    # Tenant administrators customizing grantee assignments
    MANAGE_TENANT_ACCESS = "manage_tenant_access"

    # Billing / checkout flow
    ASSIGN_PLANS = "assign_plans"


class RightAction(Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE = "manage"
    EXPORT = "export"
    IMPORT = "import"
    PUBLISH = "publish"
    APPROVE = "approve"


class RoleKey(Enum):
    """Conventional role keys a grantee template may reference"""

    TENANT_ADMIN = "tenant_admin"
    STAFF = "staff"
    VOLUNTEER = "volunteer"
    MEMBER = "member"


class GrantSource(Enum):
    DIRECT = "direct"
    TRIAL = "trial"
    COMP = "comp"


class CapabilityPhase(Enum):
    ALPHA = "alpha"
    BETA = "beta"
    GA = "ga"
    DEPRECATED = "deprecated"


RIGHT_CODE_PATTERN = r"^[a-z_]+:[a-z_]+$"
ROLE_KEY_PATTERN = r"^[a-z][a-z0-9_]*$"
MIN_CATEGORY_LENGTH = 3

ALLOWED_ACTIONS = frozenset(action.value for action in RightAction)
CONVENTIONAL_ROLE_KEYS = frozenset(key.value for key in RoleKey)

PLAN_SOURCE_PREFIX = "plan:"

DEFAULT_ROLES = {
    RoleKey.TENANT_ADMIN.value: ("Tenant Administrator", "Full administrative access"),
    RoleKey.STAFF.value: ("Staff Member", "Day-to-day operational access"),
    RoleKey.VOLUNTEER.value: ("Volunteer", "Limited access for volunteers"),
    RoleKey.MEMBER.value: ("Member", "Basic member access"),
}
