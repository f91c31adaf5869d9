"""
Organization Models
===================
The optional Division -> Department -> Team hierarchy inside a company.

Deleting a parent nulls the child references; the hierarchy is soft, not
cascading.
"""

import secrets

from django.db import models
from django.utils.text import slugify

from core.tenants.base import TenantAwareModel
from core.tenants.models import OrganizationLevel


def generate_unit_invitation_token() -> str:
    # 32 random bytes -> 64 hex characters
    return secrets.token_hex(32)


class OrganizationUnit(TenantAwareModel):
    """Fields shared by every level of the hierarchy"""
    level = None

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255)
    sort_order = models.PositiveIntegerField(default=0)
    invitation_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    invitation_enabled = models.BooleanField(default=False)

    class Meta:
        abstract = True
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = slugify(self.name, allow_unicode=True)[:255]
        super().save(*args, **kwargs)

    def rotate_invitation_token(self) -> str:
        token = generate_unit_invitation_token()
        while type(self).all_objects.filter(invitation_token=token).exists():
            token = generate_unit_invitation_token()
        self.invitation_token = token
        self.invitation_enabled = True
        self.save(update_fields=['invitation_token', 'invitation_enabled', 'updated_at'])
        return token

    def set_invitation_enabled(self, enabled: bool) -> None:
        if enabled and not self.invitation_token:
            self.rotate_invitation_token()
            return
        self.invitation_enabled = enabled
        self.save(update_fields=['invitation_enabled', 'updated_at'])

    def hierarchy_ids(self) -> dict:
        """division/department/team ids implied by membership in this unit"""
        raise NotImplementedError


class Division(OrganizationUnit):
    """事業群"""
    level = OrganizationLevel.DIVISION

    class Meta(OrganizationUnit.Meta):
        constraints = [
            models.UniqueConstraint(fields=['company', 'slug'], name='uniq_division_slug_per_company'),
        ]

    def hierarchy_ids(self):
        return {'division_id': self.pk, 'department_id': None, 'team_id': None}


class Department(OrganizationUnit):
    """部門"""
    level = OrganizationLevel.DEPARTMENT

    division = models.ForeignKey(
        Division,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='departments'
    )

    class Meta(OrganizationUnit.Meta):
        constraints = [
            models.UniqueConstraint(fields=['company', 'slug'], name='uniq_department_slug_per_company'),
        ]

    def hierarchy_ids(self):
        return {'division_id': self.division_id, 'department_id': self.pk, 'team_id': None}


class Team(OrganizationUnit):
    """小組"""
    level = OrganizationLevel.TEAM

    division = models.ForeignKey(
        Division,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='teams'
    )
    department = models.ForeignKey(
        Department,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='teams'
    )

    class Meta(OrganizationUnit.Meta):
        constraints = [
            models.UniqueConstraint(fields=['company', 'slug'], name='uniq_team_slug_per_company'),
        ]

    def hierarchy_ids(self):
        division_id = self.division_id
        if division_id is None and self.department_id is not None:
            division_id = self.department.division_id
        return {'division_id': division_id, 'department_id': self.department_id, 'team_id': self.pk}


UNIT_MODELS = {
    OrganizationLevel.DIVISION.value: Division,
    OrganizationLevel.DEPARTMENT.value: Department,
    OrganizationLevel.TEAM.value: Team,
}


def find_unit_by_invitation_token(token: str, kind: str = None):
    """Return the enabled unit owning ``token``, or None"""
    if not token:
        return None
    kinds = [kind] if kind else list(UNIT_MODELS)
    for level in kinds:
        model = UNIT_MODELS.get(level)
        if model is None:
            continue
        unit = model.all_objects.select_related('company').filter(
            invitation_token=token, invitation_enabled=True
        ).first()
        if unit is not None:
            return unit
    return None
