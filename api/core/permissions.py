"""
Permission Utilities
====================
Shared authorization helpers and DRF permission classes for API views.

Usage:
    from core.permissions import IsTenantMember, IsCompanyAdmin

    class MyView(TenantAPIView):
        permission_classes = [IsTenantMember, IsCompanyAdmin]

Entity-level rules live in each app's ``policies.py`` as plain boolean
functions; permission classes only wrap them.
"""

from rest_framework.permissions import BasePermission, IsAuthenticated


def same_tenant(user, entity) -> bool:
    """True when ``user`` and ``entity`` belong to the same company"""
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    company_id = getattr(user, 'company_id', None)
    return company_id is not None and company_id == getattr(entity, 'company_id', None)


def is_company_admin(user) -> bool:
    return getattr(user, 'role', None) == 'company_admin'


def matches_hierarchy(user, entity) -> bool:
    """
    Lead roles act only on the unit they are assigned to (exact id match,
    not descendants).
    """
    role = getattr(user, 'role', None)
    if role == 'division_lead':
        return user.division_id is not None and user.division_id == getattr(entity, 'division_id', None)
    if role == 'department_manager':
        return user.department_id is not None and user.department_id == getattr(entity, 'department_id', None)
    if role == 'team_lead':
        return user.team_id is not None and user.team_id == getattr(entity, 'team_id', None)
    return False


class IsTenantMember(IsAuthenticated):
    """
    Authenticated user belonging to the tenant resolved for this request.
    """
    message = 'You are not a member of this company.'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        tenant = getattr(request, 'tenant', None)
        if tenant is None:
            return False
        return request.user.company_id == tenant.company_id

    def has_object_permission(self, request, view, obj):
        company_id = getattr(obj, 'company_id', None)
        return company_id is None or company_id == request.user.company_id


class IsCompanyAdmin(IsTenantMember):
    message = 'Only company administrators can perform this action.'

    def has_permission(self, request, view):
        return super().has_permission(request, view) and is_company_admin(request.user)


class IsTenantManager(IsTenantMember):
    """company_admin or any lead role"""
    message = 'Only managers can perform this action.'

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.is_manager


class IsHqAdmin(IsAuthenticated):
    message = 'HQ administrator access required.'

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.role == 'hq_admin'
