"""
Audit Log Models
================
Append-only audit trail of tenant activity.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.tenants.managers import TenantAwareManager, UnscopedManager


class AuditEvent(models.TextChoices):
    CREATED = 'created', 'Created'
    UPDATED = 'updated', 'Updated'
    DELETED = 'deleted', 'Deleted'
    EXPORTED = 'exported', 'Exported'
    SUBMITTED = 'submitted', 'Submitted'
    REOPENED = 'reopened', 'Reopened'
    IP_WHITELIST_REJECTED = 'auth.ip_whitelist.rejected', 'IP whitelist rejected'


class AuditableKind(models.TextChoices):
    """Entity kinds an audit entry may point at"""
    COMPANY = 'company', 'Company'
    COMPANY_SETTING = 'company_setting', 'Company Setting'
    DIVISION = 'division', 'Division'
    DEPARTMENT = 'department', 'Department'
    TEAM = 'team', 'Team'
    USER = 'user', 'User'
    WEEKLY_REPORT = 'weekly_report', 'Weekly Report'


class AuditLogImmutable(Exception):
    pass


class AuditLog(BaseModel):
    """
    稽核紀錄 - 只新增，不修改、不刪除
    """
    company = models.ForeignKey(
        'core.Company',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    event = models.CharField(max_length=64, choices=AuditEvent.choices)
    description = models.TextField(null=True, blank=True)
    properties = models.JSONField(null=True, blank=True)
    auditable_kind = models.CharField(max_length=32, choices=AuditableKind.choices)
    auditable_id = models.UUIDField(null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)
    occurred_at = models.DateTimeField(default=timezone.now)

    objects = TenantAwareManager()
    all_objects = UnscopedManager()

    class Meta:
        ordering = ['-occurred_at']
        indexes = [
            models.Index(fields=['company', 'event'], name='core_auditl_company_5c1f0e_idx'),
            models.Index(fields=['auditable_kind', 'auditable_id'], name='core_auditl_auditab_8a2d4b_idx'),
        ]

    def __str__(self):
        return f"{self.event} {self.auditable_kind}:{self.auditable_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditLogImmutable('Audit log entries cannot be modified.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditLogImmutable('Audit log entries cannot be deleted.')
