"""
Organization Policies
=====================
Pure authorization rules for divisions, departments and teams.

Every function takes the acting user and the target and returns a bool.
"""

from types import SimpleNamespace

from core.permissions import is_company_admin, matches_hierarchy, same_tenant

# role that leads each level
LEAD_ROLE_BY_LEVEL = {
    'division': 'division_lead',
    'department': 'department_manager',
    'team': 'team_lead',
}


def _scope(unit):
    return SimpleNamespace(company_id=unit.company_id, **unit.hierarchy_ids())


def view_any(user, company) -> bool:
    return user.is_authenticated and user.company_id is not None and user.company_id == company.pk


def view(user, unit) -> bool:
    return same_tenant(user, unit)


def create(user, company) -> bool:
    return view_any(user, company) and is_company_admin(user)


def update(user, unit) -> bool:
    if not same_tenant(user, unit):
        return False
    if is_company_admin(user):
        return True
    return matches_hierarchy(user, _scope(unit))


def delete(user, unit) -> bool:
    return same_tenant(user, unit) and is_company_admin(user)


def manage_invitation(user, unit) -> bool:
    """company_admin, or the lead of exactly this unit"""
    if not same_tenant(user, unit):
        return False
    if is_company_admin(user):
        return True
    if user.role != LEAD_ROLE_BY_LEVEL.get(unit.level):
        return False
    return getattr(user, f'{unit.level}_id') == unit.pk
