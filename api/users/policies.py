"""
Member Policies
===============
Who may see and manage which members of a company.
"""

from django.db.models import Q

from core.permissions import is_company_admin


def view_any(user) -> bool:
    return user.is_authenticated and user.is_manager


def visible_members(user, queryset):
    """
    Narrow ``queryset`` (already scoped to the tenant) to what ``user`` may see.
    """
    if is_company_admin(user):
        return queryset
    if user.role == 'division_lead' and user.division_id:
        return queryset.filter(
            Q(division_id=user.division_id)
            | Q(department__division_id=user.division_id)
            | Q(team__division_id=user.division_id)
        )
    if user.role == 'department_manager' and user.department_id:
        return queryset.filter(Q(department_id=user.department_id) | Q(team__department_id=user.department_id))
    if user.role == 'team_lead' and user.team_id:
        return queryset.filter(team_id=user.team_id)
    return queryset.none()


def change_role(user, member) -> bool:
    return (
        is_company_admin(user)
        and member.company_id is not None
        and member.company_id == user.company_id
        and not member.is_hq_admin
    )
