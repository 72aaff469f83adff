"""Membership role and status enums for tenant access control."""

from enum import Enum as PyEnum


class TenantRole(str, PyEnum):
    """
    Tenant membership roles.

    Role Hierarchy (highest to lowest):
    1. OWNER - Full control, manages invite codes, member roles and tenant settings
    2. ADMIN - Approves and removes members, reconciles contracts
    3. MEMBER - Works leads and contracts
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MembershipStatus(str, PyEnum):
    """
    Membership lifecycle.

    Only ACTIVE memberships grant access to a tenant. INVITED memberships
    wait for approval; LEFT memberships are kept for history and can be
    reactivated through the invite code.
    """

    ACTIVE = "ACTIVE"
    INVITED = "INVITED"
    LEFT = "LEFT"
