import uuid
from django.db import models


class BaseModel(models.Model):
    id = models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True


# Models defined outside this module must be imported here so the app
# registry attaches them to the ``core`` app.
from core.tenants.models import Company, CompanySetting, CompanyStatus  # noqa: E402
from core.models_audit import AuditLog, AuditEvent, AuditableKind  # noqa: E402
from core.models_notifications import (  # noqa: E402
    Notification, NotificationLog, NotificationKind,
)

__all__ = [
    'BaseModel',
    'Company',
    'CompanySetting',
    'CompanyStatus',
    'AuditLog',
    'AuditEvent',
    'AuditableKind',
    'Notification',
    'NotificationLog',
    'NotificationKind',
]
