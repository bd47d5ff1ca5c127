# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
# Staff roles operate the admin console; customers own orders.
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_SUPPORT = "support"
ROLE_FULFILLMENT = "fulfillment"
ROLE_CUSTOMER = "customer"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_SUPPORT,
    ROLE_FULFILLMENT,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_ORDERS_VIEW = "orders.view"
CAP_ORDERS_MANAGE = "orders.manage"          # status transitions, tracking, cancel
CAP_REFUNDS_CREATE = "refunds.create"        # stage a refund for review
CAP_REFUNDS_PROCESS = "refunds.process"      # move money / reject / cancel

ALL_CAPABILITIES = {
    CAP_ORDERS_VIEW,
    CAP_ORDERS_MANAGE,
    CAP_REFUNDS_CREATE,
    CAP_REFUNDS_PROCESS,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        *ALL_CAPABILITIES,
    },
    ROLE_SUPPORT: {
        CAP_ORDERS_VIEW,
        CAP_REFUNDS_CREATE,
        # no refunds.process: staging and payout are separate duties
    },
    ROLE_FULFILLMENT: {
        CAP_ORDERS_VIEW,
        CAP_ORDERS_MANAGE,
    },
    ROLE_CUSTOMER: set(),
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    """
    Capabilities granted by the user's role. Superusers hold everything.
    """
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return capability in effective_capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_REFUNDS_PROCESS
    """

    def has_permission(self, request, view):
        required = getattr(view, "required_capability", None)
        if not required:
            # If not set, deny-by-default to avoid accidental open endpoints
            return False
        return user_has_capability(request.user, required)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a list.

    Usage:
        view.required_any_capabilities = {CAP_ORDERS_VIEW, CAP_REFUNDS_CREATE}
    """

    def has_permission(self, request, view):
        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False
        return any(user_has_capability(request.user, cap) for cap in set(required))
