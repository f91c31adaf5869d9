"""
Audit Service
=============
Writes append-only audit entries for tenant activity.

Audit writes are best-effort: a database failure is logged and the caller's
operation continues.
"""
import logging
from typing import Any, Dict, Optional

from django.db import DatabaseError, transaction

from core.models_audit import AuditLog, AuditEvent, AuditableKind

logger = logging.getLogger(__name__)

# model label -> auditable kind
AUDITABLE_MODELS = {
    'core.company': AuditableKind.COMPANY,
    'core.companysetting': AuditableKind.COMPANY_SETTING,
    'organization.division': AuditableKind.DIVISION,
    'organization.department': AuditableKind.DEPARTMENT,
    'organization.team': AuditableKind.TEAM,
    'users.user': AuditableKind.USER,
    'weekly_reports.weeklyreport': AuditableKind.WEEKLY_REPORT,
}


def auditable_kind_for(target) -> AuditableKind:
    label = target._meta.label_lower
    try:
        return AUDITABLE_MODELS[label]
    except KeyError:
        raise ValueError(f"{label} is not an auditable model")


def _client_ip(request) -> Optional[str]:
    if request is None:
        return None
    from core.tenants.middleware import client_ip
    return client_ip(request)


class AuditService:
    """
    Helpers for recording audit events
    """

    @classmethod
    def log(
        cls,
        event: str,
        target,
        description: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
        request=None,
        user=None,
        company_id=None,
    ) -> Optional[AuditLog]:
        kind = auditable_kind_for(target)

        if user is None and request is not None:
            request_user = getattr(request, 'user', None)
            if request_user is not None and request_user.is_authenticated:
                user = request_user

        if company_id is None:
            if kind == AuditableKind.COMPANY:
                company_id = target.pk
            else:
                company_id = getattr(target, 'company_id', None) or getattr(user, 'company_id', None)

        try:
            with transaction.atomic():
                return AuditLog.objects.create(
                    company_id=company_id,
                    user=user,
                    event=event,
                    description=description,
                    properties=properties,
                    auditable_kind=kind,
                    auditable_id=target.pk,
                    ip_address=_client_ip(request),
                    user_agent=request.META.get('HTTP_USER_AGENT') if request is not None else None,
                )
        except DatabaseError:
            logger.exception("Failed to write audit log %s for %s:%s", event, kind, target.pk)
            return None

    @classmethod
    def created(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.CREATED, target, description, properties, **kwargs)

    @classmethod
    def updated(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.UPDATED, target, description, properties, **kwargs)

    @classmethod
    def deleted(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.DELETED, target, description, properties, **kwargs)

    @classmethod
    def exported(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.EXPORTED, target, description, properties, **kwargs)

    @classmethod
    def submitted(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.SUBMITTED, target, description, properties, **kwargs)

    @classmethod
    def reopened(cls, target, description=None, properties=None, **kwargs):
        return cls.log(AuditEvent.REOPENED, target, description, properties, **kwargs)

    @classmethod
    def ip_whitelist_rejected(cls, company_settings, ip: Optional[str], **kwargs):
        return cls.log(
            AuditEvent.IP_WHITELIST_REJECTED,
            company_settings,
            description='登入 IP 不在白名單內',
            properties={'ip': ip},
            **kwargs
        )
