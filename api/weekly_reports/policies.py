"""
Weekly Report Policies
======================
Pure authorization rules for weekly reports.

The author works on their own report while it is a draft; managers act on
reports whose snapshotted division/department/team matches their own
assignment. A locked report cannot be changed by anyone.
"""

from core.permissions import is_company_admin, matches_hierarchy, same_tenant

LEAD_ROLES = ('division_lead', 'department_manager', 'team_lead')


def _is_author(user, report) -> bool:
    return report.user_id == user.pk


def manages(user, report) -> bool:
    return is_company_admin(user) or matches_hierarchy(user, report)


def view_any(user, company) -> bool:
    return user.is_authenticated and user.company_id is not None and user.company_id == company.pk


def create(user, company) -> bool:
    return view_any(user, company)


def view(user, report) -> bool:
    if not same_tenant(user, report):
        return False
    return _is_author(user, report) or manages(user, report)


def update(user, report) -> bool:
    if not same_tenant(user, report) or report.is_locked:
        return False
    if _is_author(user, report) and report.is_draft:
        return True
    return manages(user, report)


def submit(user, report) -> bool:
    if not same_tenant(user, report) or report.is_locked:
        return False
    if _is_author(user, report) and report.is_draft:
        return True
    return manages(user, report)


def reopen(user, report) -> bool:
    if not same_tenant(user, report):
        return False
    if report.is_draft or report.is_locked:
        return False
    return manages(user, report)


def lock(user, report) -> bool:
    if not same_tenant(user, report) or not report.is_submitted:
        return False
    return manages(user, report)


def delete(user, report) -> bool:
    if not same_tenant(user, report) or report.is_locked:
        return False
    if _is_author(user, report) and report.is_draft:
        return True
    return manages(user, report)


def export(user, report=None) -> bool:
    """Bulk export for any lead; a specific report still needs a hierarchy match."""
    if is_company_admin(user):
        return True
    if report is None:
        return getattr(user, 'role', None) in LEAD_ROLES
    return same_tenant(user, report) and matches_hierarchy(user, report)
