"""
Tenant-Aware Base Model
=======================
Abstract base model that includes the company FK for tenant isolation.
"""

from django.db import models

from core.models import BaseModel
from .context import get_current_tenant
from .managers import TenantAwareManager, UnscopedManager


class TenantAwareModel(BaseModel):
    """
    Abstract base model for tenant-owned data.

    Every tenant-owned model inherits from this, which gives it:
      - ``objects``: filtered to the active tenant when one is active
      - ``all_objects``: never filtered
      - automatic company stamping on first save
    """
    company = models.ForeignKey(
        'core.Company',
        on_delete=models.CASCADE,
        related_name='%(app_label)s_%(class)s_set',
        help_text='Owning company'
    )

    objects = TenantAwareManager()
    all_objects = UnscopedManager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """Auto-set company from the active tenant if not provided"""
        if not self.company_id:
            tenant = get_current_tenant()
            if tenant is not None:
                self.company_id = tenant.company_id
        super().save(*args, **kwargs)

    def belongs_to(self, tenant) -> bool:
        from .context import company_id_of
        return self.company_id is not None and self.company_id == company_id_of(tenant)
