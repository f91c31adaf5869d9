"""
Tenant-Aware QuerySet Managers
==============================
Scope queries to a company.

``for_tenant`` is the explicit form used at call sites: it takes a
TenantContext, a Company or a company id and always injects the filter.
The default manager additionally applies the context activated by the
tenant middleware, and is a no-op when no tenant is active (HQ surface).
"""

from django.db import models

from .context import get_current_tenant, company_id_of


class TenantAwareQuerySet(models.QuerySet):
    """QuerySet that knows how to scope itself to a company"""

    def for_tenant(self, tenant):
        """Filter queryset by a TenantContext, Company or company id"""
        company_id = company_id_of(tenant)
        if company_id is None:
            return self.none()
        return self.filter(company_id=company_id)

    def for_current_tenant(self):
        """Filter queryset by the tenant active in this request"""
        return self.for_tenant(get_current_tenant())

    def create_for_tenant(self, tenant, **kwargs):
        """Create a row stamped with the given tenant"""
        kwargs['company_id'] = company_id_of(tenant)
        return self.create(**kwargs)


class TenantAwareManager(models.Manager.from_queryset(TenantAwareQuerySet)):
    """
    Manager that auto-scopes queries to the active tenant.

    Usage:
        class Division(TenantAwareModel):
            objects = TenantAwareManager()
            all_objects = UnscopedManager()  # bypass tenant filter
    """

    def get_queryset(self):
        qs = super().get_queryset()
        tenant = get_current_tenant()
        if tenant is not None:
            return qs.filter(company_id=tenant.company_id)
        return qs

    def unscoped(self):
        """Return unscoped queryset (bypass tenant filter)"""
        return TenantAwareQuerySet(self.model, using=self._db)

    def for_tenant(self, tenant):
        """Explicitly scope to a specific tenant, ignoring the active one"""
        return self.unscoped().for_tenant(tenant)


class UnscopedManager(models.Manager.from_queryset(TenantAwareQuerySet)):
    """Manager that does NOT auto-scope to tenant (HQ and batch jobs)"""
