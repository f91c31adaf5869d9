"""
Membership Services
===================
Invitation, registration and role assignment rules shared by the member,
auth and Google OAuth views.
"""
import logging
from typing import Optional

from django.db import transaction
from django.utils.crypto import get_random_string
from rest_framework.exceptions import ValidationError
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import Company, CompanySetting, CompanyStatus
from core.services.notification_service import NotificationService
from organization.models import find_unit_by_invitation_token
from .models import User, Role, RegisteredVia

logger = logging.getLogger(__name__)

# role -> hierarchy level it must be assigned to
ROLE_REQUIRED_LEVEL = {
    Role.DIVISION_LEAD: 'division',
    Role.DEPARTMENT_MANAGER: 'department',
    Role.TEAM_LEAD: 'team',
}


def issue_tokens(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
        'user': {
            'id': str(user.id),
            'email': user.email,
            'full_name': user.full_name,
            'role': user.role,
            'company_slug': user.company.slug if user.company_id else None,
        },
    }


def generate_company_slug() -> str:
    slug = get_random_string(10, allowed_chars='abcdefghijklmnopqrstuvwxyz0123456789')
    while Company.objects.filter(slug=slug).exists():
        slug = get_random_string(10, allowed_chars='abcdefghijklmnopqrstuvwxyz0123456789')
    return slug


def resolve_hierarchy(company, division=None, department=None, team=None) -> dict:
    """
    Check that the given units belong to ``company`` and to each other, and
    fill in missing parents from their children.

    Returns ``{'division': ..., 'department': ..., 'team': ...}``.
    """
    for field, unit in (('division_id', division), ('department_id', department), ('team_id', team)):
        if unit is not None and unit.company_id != company.pk:
            raise ValidationError({field: '必須屬於同一家公司。'})

    if team is not None:
        if team.department_id is not None:
            if department is None:
                department = team.department
            elif department.pk != team.department_id:
                raise ValidationError({'team_id': '小組不屬於所選的部門。'})
        elif department is not None:
            raise ValidationError({'team_id': '小組不屬於所選的部門。'})

        if team.division_id is not None:
            if division is None:
                division = team.division
            elif division.pk != team.division_id:
                raise ValidationError({'team_id': '小組不屬於所選的事業群。'})

    if department is not None:
        if department.division_id is not None:
            if division is None:
                division = department.division
            elif division.pk != department.division_id:
                raise ValidationError({'department_id': '部門不屬於所選的事業群。'})
        elif division is not None:
            raise ValidationError({'department_id': '部門不屬於所選的事業群。'})

    return {'division': division, 'department': department, 'team': team}


def check_role_requirements(role: str, hierarchy: dict) -> None:
    level = ROLE_REQUIRED_LEVEL.get(role)
    if level and hierarchy.get(level) is None:
        raise ValidationError({f'{level}_id': f'{Role(role).label}必須指定所屬的{_level_label(level)}。'})


def _level_label(level: str) -> str:
    return {'division': '事業群', 'department': '部門', 'team': '小組'}[level]


def check_inviter_scope(inviter, role: str, hierarchy: dict) -> None:
    """Non-admin inviters may only invite inside their own unit."""
    if inviter.is_company_admin:
        return
    if role == Role.COMPANY_ADMIN:
        raise ValidationError({'role': '只有公司管理員可以指派公司管理員。'})

    own_level = {
        Role.DIVISION_LEAD: 'division',
        Role.DEPARTMENT_MANAGER: 'department',
        Role.TEAM_LEAD: 'team',
    }.get(inviter.role)
    if own_level is None:
        raise ValidationError({'detail': '您沒有邀請成員的權限。'})

    unit = hierarchy.get(own_level)
    if unit is None or unit.pk != getattr(inviter, f'{own_level}_id'):
        raise ValidationError({f'{own_level}_id': '只能邀請成員加入您所負責的單位。'})


def _lock_company(company) -> Company:
    return Company.objects.select_for_update().get(pk=company.pk)


def _ensure_capacity(company) -> None:
    if company.current_user_count >= company.user_limit:
        raise ValidationError({'detail': '公司人數已達上限。'})


def _ensure_email_available(email: str) -> None:
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError({'email': '此電子郵件已被使用。'})


def invite_member(company, inviter, *, email, full_name, role, hierarchy) -> User:
    """Create an invited member with a deferred password and notify them."""
    with transaction.atomic():
        locked = _lock_company(company)
        _ensure_email_available(email)
        _ensure_capacity(locked)

        user = User(
            company=locked,
            email=User.objects.normalize_email(email),
            full_name=full_name,
            role=role,
            division=hierarchy.get('division'),
            department=hierarchy.get('department'),
            team=hierarchy.get('team'),
            registered_via=RegisteredVia.INVITATION,
        )
        user.set_unusable_password()
        token = user.issue_invitation()
        user.save()
        locked.increment_user_count()

    company.current_user_count = locked.current_user_count
    NotificationService.notify_member_invitation(
        user, locked, token, inviter.full_name or inviter.email
    )
    logger.info("Invited %s to company %s as %s", user.email, locked.slug, role)
    return user


def assign_role(member, role: str, hierarchy: dict) -> User:
    if member.is_hq_admin:
        raise ValidationError({'detail': '無法修改總部管理員。'})
    member.role = role
    member.division = hierarchy.get('division')
    member.department = hierarchy.get('department')
    member.team = hierarchy.get('team')
    member.save(update_fields=['role', 'division', 'department', 'team', 'updated_at'])
    return member


def register_company_admin(*, company_name, full_name, email, password=None, google_id=None,
                           avatar_url=None, registered_via=RegisteredVia.SELF_REGISTER) -> User:
    """Self-service sign-up: a new active company with its first admin."""
    with transaction.atomic():
        _ensure_email_available(email)
        company = Company.objects.create(
            name=company_name,
            slug=generate_company_slug(),
            status=CompanyStatus.ACTIVE,
            current_user_count=1,
        )
        CompanySetting.objects.create(company=company)
        user = User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name,
            company=company,
            role=Role.COMPANY_ADMIN,
            google_id=google_id,
            avatar_url=avatar_url,
            registered_via=registered_via,
        )
    logger.info("Registered company %s with admin %s", company.slug, user.email)
    return user


def register_tenant_member(company, *, full_name, email, password=None, google_id=None, avatar_url=None,
                           registered_via=RegisteredVia.TENANT_REGISTER, unit=None) -> User:
    """Join an existing active company as a plain member."""
    hierarchy = unit.hierarchy_ids() if unit is not None else {}
    with transaction.atomic():
        locked = _lock_company(company)
        if locked.status != CompanyStatus.ACTIVE:
            raise ValidationError({'company_slug': '公司目前未啟用。'})
        _ensure_email_available(email)
        _ensure_capacity(locked)

        user = User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name,
            company=locked,
            role=Role.MEMBER,
            google_id=google_id,
            avatar_url=avatar_url,
            registered_via=registered_via,
            **hierarchy,
        )
        locked.increment_user_count()
    logger.info("Registered member %s in company %s", user.email, locked.slug)
    return user


def find_invited_member(company, token: str) -> Optional[User]:
    if not token:
        return None
    return User.objects.for_tenant(company).pending_invitation(token).select_related('company').first()


def find_organization_invitation(company, token: str, kind: Optional[str]):
    unit = find_unit_by_invitation_token(token, kind)
    if unit is None or unit.company_id != company.pk:
        return None
    return unit

